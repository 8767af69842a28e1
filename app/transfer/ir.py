"""
Format-neutral intermediate representation (IR) of a configuration file.

Every adapter parses into a ConfigIR and renders from one, so the resolver,
the reconciliation engine and the exporter never see spreadsheet cells or
JSON/YAML documents directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


class Section(str, Enum):
    PROVIDERS = "Providers"
    MODELS = "Models"
    MAPPINGS = "ModelProviderMappings"

    @property
    def document_key(self) -> str:
        """Key used for this section in JSON/YAML documents."""
        return _DOCUMENT_KEYS[self]


_DOCUMENT_KEYS = {
    Section.PROVIDERS: "providers",
    Section.MODELS: "models",
    Section.MAPPINGS: "modelProviderMappings",
}

# Dependency order: mappings reference providers and models.
SECTION_ORDER: tuple[Section, ...] = (Section.PROVIDERS, Section.MODELS, Section.MAPPINGS)

SECTION_FIELDS: dict[Section, tuple[str, ...]] = {
    Section.PROVIDERS: ("name", "type", "config", "enabled", "weight", "consoleUrl"),
    Section.MODELS: ("name", "remark", "maxRetry", "timeout", "enabled"),
    Section.MAPPINGS: (
        "model",
        "provider",
        "providerModel",
        "toolCall",
        "structuredOutput",
        "image",
        "weight",
        "enabled",
    ),
}

# The association-only workbook used "Associations" for the mapping sheet.
_LEGACY_SECTION_NAMES = {"associations": Section.MAPPINGS}

_FIELD_ALIASES: dict[Section, dict[str, str]] = {
    Section.PROVIDERS: {"providertype": "type", "console": "consoleUrl"},
    Section.MODELS: {"description": "remark", "maxretries": "maxRetry"},
    Section.MAPPINGS: {"modelname": "model", "providername": "provider"},
}

# Row numbers follow what a spreadsheet viewer shows: row 1 is the header.
HEADER_ROW = 1
FIRST_DATA_ROW = 2


def _normalize(name: Any) -> str:
    text = str(name or "").strip().lower()
    return "".join(ch for ch in text if ch not in " _-")


_SECTION_LOOKUP: dict[str, Section] = {
    **{_normalize(section.value): section for section in Section},
    **{_normalize(section.document_key): section for section in Section},
    **_LEGACY_SECTION_NAMES,
}

_FIELD_LOOKUP: dict[Section, dict[str, str]] = {
    section: {
        **{_normalize(name): name for name in names},
        **_FIELD_ALIASES[section],
    }
    for section, names in SECTION_FIELDS.items()
}


def match_section(name: Any) -> Section | None:
    """Map a sheet name or document key onto a Section, or None if unknown."""
    return _SECTION_LOOKUP.get(_normalize(name))


def match_field(section: Section, name: Any) -> str | None:
    """Map a column header or object key onto the canonical field name."""
    return _FIELD_LOOKUP[section].get(_normalize(name))


@dataclass(frozen=True, slots=True)
class RowAddress:
    section: Section
    row: int


@dataclass(slots=True)
class IRRow:
    address: RowAddress
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def row(self) -> int:
        return self.address.row


@dataclass(slots=True)
class ConfigIR:
    providers: list[IRRow] = field(default_factory=list)
    models: list[IRRow] = field(default_factory=list)
    mappings: list[IRRow] = field(default_factory=list)

    def rows(self, section: Section) -> list[IRRow]:
        if section is Section.PROVIDERS:
            return self.providers
        if section is Section.MODELS:
            return self.models
        return self.mappings

    def add(self, section: Section, fields: dict[str, Any], *, row: int | None = None) -> IRRow:
        """
        Append a row. When `row` is omitted the row is numbered as the next
        spreadsheet row after the ones already present.
        """
        rows = self.rows(section)
        if row is None:
            row = rows[-1].row + 1 if rows else FIRST_DATA_ROW
        item = IRRow(address=RowAddress(section=section, row=row), fields=dict(fields))
        rows.append(item)
        return item

    def sections(self) -> Iterator[tuple[Section, list[IRRow]]]:
        for section in SECTION_ORDER:
            yield section, self.rows(section)

    def is_empty(self) -> bool:
        return not (self.providers or self.models or self.mappings)


__all__ = [
    "ConfigIR",
    "FIRST_DATA_ROW",
    "HEADER_ROW",
    "IRRow",
    "RowAddress",
    "SECTION_FIELDS",
    "SECTION_ORDER",
    "Section",
    "match_field",
    "match_section",
]
