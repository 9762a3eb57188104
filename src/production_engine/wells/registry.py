"""Well identifier resolution.

Field sheets refer to wells by whatever the pumper wrote down: an API
number with or without dashes, the well name, or the alternate name.
``WellRegistry`` indexes a well collection once and resolves any of those
spellings to a well id.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from production_engine.data.cells import cell_text
from production_engine.data.schemas import Well
from production_engine.data.storage import load_models

# Legacy metadata keys carrying alternate identifiers
_ALT_NUMBER_KEYS = ("api14", "api10", "api14Alt")
_ALT_NAME_KEYS = ("wellName2",)


def normalize_identifier(value: str) -> str:
    """Lower-case and strip whitespace and dashes.

    Example:
        >>> normalize_identifier("42-123-45678")
        '4212345678'
    """
    return re.sub(r"[-\s]", "", value).lower()


def collapse_whitespace(value: str) -> str:
    """Lower-case with runs of whitespace collapsed to one space."""
    return re.sub(r"\s+", " ", value).strip().lower()


class WellRegistry:
    """Case-insensitive lookup from well identifiers to well ids.

    Lookup order (first hit wins):

    1. exact well number (including API alternates)
    2. well number without whitespace/dashes
    3. exact primary name
    4. primary name with collapsed whitespace
    5. exact secondary name
    6. secondary name with collapsed whitespace
    7. either name without whitespace/dashes

    When two wells share a key, the first one registered keeps it.

    Example:
        >>> registry = WellRegistry(wells)
        >>> registry.resolve_id("smith 1-h")
        'a1b2c3'
    """

    def __init__(self, wells: Iterable[Any] | Mapping[str, Any] | None = None):
        self._numbers: dict[str, str] = {}
        self._names: dict[str, str] = {}
        self._secondary_names: dict[str, str] = {}
        self._normalized_names: dict[str, str] = {}
        self.wells: dict[str, Well] = {}

        for well in load_models(wells, Well):
            self.add(well)

    def __len__(self) -> int:
        return len(self.wells)

    def __contains__(self, well_id: object) -> bool:
        return well_id in self.wells

    @staticmethod
    def _register(index: dict[str, str], key: str, well_id: str) -> None:
        if key:
            index.setdefault(key, well_id)

    def add(self, well: Well) -> None:
        """Index one well under all its identifiers."""
        self.wells.setdefault(well.id, well)

        numbers = [well.well_number, *well.api_alt]
        numbers += [cell_text(well.metadata.get(key)) for key in _ALT_NUMBER_KEYS]
        for number in numbers:
            if number:
                self._register(self._numbers, number.lower(), well.id)
                self._register(self._numbers, normalize_identifier(number), well.id)

        if well.name:
            self._register(self._names, well.name.lower(), well.id)
            self._register(self._names, collapse_whitespace(well.name), well.id)
            self._register(self._normalized_names, normalize_identifier(well.name), well.id)

        secondary = [well.secondary_name or ""]
        secondary += [cell_text(well.metadata.get(key)) for key in _ALT_NAME_KEYS]
        for name in secondary:
            if name:
                self._register(self._secondary_names, name.lower(), well.id)
                self._register(self._secondary_names, collapse_whitespace(name), well.id)
                self._register(self._normalized_names, normalize_identifier(name), well.id)

    def resolve_id(self, identifier: object) -> str | None:
        """Resolve an identifier to a well id, or None when nothing matches."""
        text = cell_text(identifier)
        if not text:
            return None

        lower = text.lower()
        normalized = normalize_identifier(text)
        collapsed = collapse_whitespace(text)

        for index, key in (
            (self._numbers, lower),
            (self._numbers, normalized),
            (self._names, lower),
            (self._names, collapsed),
            (self._secondary_names, lower),
            (self._secondary_names, collapsed),
            (self._normalized_names, normalized),
        ):
            if key in index:
                return index[key]
        return None

    def resolve(self, identifier: object) -> Well | None:
        """Resolve an identifier to the well record."""
        well_id = self.resolve_id(identifier)
        return self.wells.get(well_id) if well_id else None
