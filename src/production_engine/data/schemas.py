"""Data schemas for field production records.

Uses Pydantic for validation and type safety. These models define
the canonical record structures exchanged with the document store and
consumed by the analytics layer.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from production_engine.data.cells import cell_text, parse_number
from production_engine.data.dates import to_day_key


class RecordType:
    """Collection names used in the document store."""

    WELLS = "wells"
    TANK_GAUGINGS = "tank_gaugings"
    METER_READINGS = "meter_readings"
    BASELINE = "baseline_datasets"


class MeterType(str, Enum):
    """Closed set of meter reading types.

    Values are the labels persisted in the store. Historical records
    may carry case or spacing variants; ``MeterType.parse`` maps them
    back to a member.
    """

    GAS_RATE = "Gas Rate"
    INSTANT_GAS_RATE = "Instant Gas Rate"
    TUBING_PRESSURE = "Tubing Pressure"
    CASING_PRESSURE = "Casing Pressure"
    LINE_PRESSURE = "Line Pressure"

    @property
    def unit(self) -> str:
        """Storage unit for the reading value."""
        if self in (MeterType.GAS_RATE, MeterType.INSTANT_GAS_RATE):
            return "MCF"
        return "PSI"

    @classmethod
    def parse(cls, label: object) -> "MeterType | None":
        """Normalize a meter label (any case/spacing/synonym) to a member."""
        if isinstance(label, cls):
            return label
        key = re.sub(r"[\s_\-]+", "", str(label or "")).lower()
        return _METER_SYNONYMS.get(key)


_METER_SYNONYMS = {
    "gasrate": MeterType.GAS_RATE,
    "gas": MeterType.GAS_RATE,
    "gasmcf": MeterType.GAS_RATE,
    "instantgasrate": MeterType.INSTANT_GAS_RATE,
    "instantgas": MeterType.INSTANT_GAS_RATE,
    "instantaneousgasrate": MeterType.INSTANT_GAS_RATE,
    "tubingpressure": MeterType.TUBING_PRESSURE,
    "tubing": MeterType.TUBING_PRESSURE,
    "tp": MeterType.TUBING_PRESSURE,
    "casingpressure": MeterType.CASING_PRESSURE,
    "casing": MeterType.CASING_PRESSURE,
    "cp": MeterType.CASING_PRESSURE,
    "linepressure": MeterType.LINE_PRESSURE,
    "line": MeterType.LINE_PRESSURE,
    "lp": MeterType.LINE_PRESSURE,
}


def canonical_tank_label(value: object) -> str | None:
    """Normalize a tank cell to ``"Tank N"``.

    ``1``, ``"1"``, ``"tank 1"`` and ``"Tank #1"`` all give ``"Tank 1"``.
    Blank cells give None.
    """
    text = cell_text(value)
    text = re.sub(r"^tank\s*#?\s*", "", text, flags=re.IGNORECASE).strip()
    if not text:
        return None
    number = parse_number(text)
    if number is not None and number.is_integer() and re.fullmatch(r"[\d.]+", text):
        text = str(int(number))
    return f"Tank {text}"


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class Well(BaseModel):
    """Well master record.

    Wells are owned by the roster import and UI; the core only reads them
    to resolve identifiers and look up tank factors.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Store-generated identifier")
    well_number: str = Field(..., description="Primary identifier (API number)")
    name: str = Field("", description="Well Name #1")
    api_alt: list[str] = Field(default_factory=list, description="API-10 / API-14 / API-14 alt")
    secondary_name: str | None = Field(None, description="Well Name #2")
    status: Literal["active", "inactive"] = "active"
    tank_factor: float | None = Field(None, description="Barrels per inch of tank level")
    location: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("well_number", "name", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> str:
        return cell_text(value)

    @field_validator("api_alt", mode="before")
    @classmethod
    def _clean_alternates(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [cell_text(v) for v in value if cell_text(v)]

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> str:
        return "inactive" if cell_text(value).lower() == "inactive" else "active"

    @field_validator("tank_factor", mode="before")
    @classmethod
    def _coerce_tank_factor(cls, value: object) -> float | None:
        return parse_number(value)

    @property
    def is_swd(self) -> bool:
        """Salt water disposal wells carry no production."""
        return "swd" in self.name.lower()


class TankGauging(BaseModel):
    """Tank level measurement, one per well/tank/day after reconciliation."""

    model_config = ConfigDict(extra="ignore")

    id: str
    well_id: str
    tank_label: str = Field(..., description='Canonical tank label, e.g. "Tank 1"')
    level_inches: float = Field(..., description="Liquid level (total inches)")
    timestamp: datetime
    user_id: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator("tank_label", mode="before")
    @classmethod
    def _canonical_tank(cls, value: object) -> str:
        label = canonical_tank_label(value)
        if label is None:
            raise ValueError("tank_label must not be empty")
        return label

    @property
    def day(self) -> str:
        """Field-timezone day key."""
        return to_day_key(self.timestamp)


class MeterReading(BaseModel):
    """Meter reading, one per well/meter type/day after reconciliation."""

    model_config = ConfigDict(extra="ignore")

    id: str
    well_id: str
    meter_type: MeterType
    value: float
    unit: str = ""
    timestamp: datetime
    user_id: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_validator("meter_type", mode="before")
    @classmethod
    def _normalize_meter_type(cls, value: object) -> MeterType:
        meter_type = MeterType.parse(value)
        if meter_type is None:
            raise ValueError(f"Unknown meter type: {value!r}")
        return meter_type

    @model_validator(mode="after")
    def _default_unit(self) -> "MeterReading":
        if not self.unit:
            self.unit = self.meter_type.unit
        return self

    @property
    def day(self) -> str:
        """Field-timezone day key."""
        return to_day_key(self.timestamp)


class BaselineRow(BaseModel):
    """One labeled row of the baseline model, keyed by month-end date."""

    label: str
    values: dict[str, float] = Field(default_factory=dict)


BASELINE_BLOCKS = (
    "prices",
    "pdp_assumptions",
    "pdsi_assumptions",
    "pdp_calculations",
    "pdsi_calculations",
    "other",
    "cash_flows",
)


class BaselineDataset(BaseModel):
    """Financial baseline model. Singleton: each import replaces it."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    prices: list[BaselineRow] = Field(default_factory=list)
    pdp_assumptions: list[BaselineRow] = Field(default_factory=list, description="Proved Developed Producing")
    pdsi_assumptions: list[BaselineRow] = Field(default_factory=list, description="Proved Developed Shut-In")
    pdp_calculations: list[BaselineRow] = Field(default_factory=list)
    pdsi_calculations: list[BaselineRow] = Field(default_factory=list)
    other: list[BaselineRow] = Field(default_factory=list)
    cash_flows: list[BaselineRow] = Field(default_factory=list)
    irr: float | None = None
    net_fcf: float | None = None
    dates: list[str] = Field(default_factory=list, description="Ordered month-end date keys")
    source_sheet: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_dates(self) -> bool:
        """False when the date row could not be read (re-import needed)."""
        return len(self.dates) > 0


class ImportRowError(BaseModel):
    """A located, non-fatal import problem."""

    sheet: str
    row: int = Field(..., description="1-based spreadsheet row, -1 for store failures")
    message: str

    def to_payload(self) -> dict[str, Any]:
        return {"sheet": self.sheet, "row": self.row, "error": self.message}


def to_record(model: BaseModel) -> dict[str, Any]:
    """Serialize a model to a JSON-able store record."""
    return model.model_dump(mode="json")
