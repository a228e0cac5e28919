"""
Row schema for register snapshots.

A register row is whatever columns the published CSV carries (the Home
Office has renamed columns before), plus the snapshot ``date`` taken from
the CSV's URL. The URL date always wins over any ``date`` column in the
file itself.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

DATE_FIELD = "date"


@dataclass(frozen=True)
class RegisterRow:
    """One parsed CSV line stamped with its snapshot date.

    Attributes:
        date: Snapshot date as ``YYYY-MM-DD``.
        fields: Header name to cell value, read-only.
    """

    date: str
    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the mapping so a row cannot be edited after parsing
        if not isinstance(self.fields, MappingProxyType):
            object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def to_document(self) -> dict[str, Any]:
        """Flatten to the stored document shape: all fields plus ``date``."""
        document = dict(self.fields)
        document[DATE_FIELD] = self.date
        return document
