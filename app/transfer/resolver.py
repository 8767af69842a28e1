"""
Entity resolver: turn IR rows into natural keys and references.

The KeyIndex built here is scoped to a single import call. It snapshots the
names already in the store and records which names the batch introduces, so
mapping rows can reference providers/models defined earlier in the same file.
Resolution itself never writes to the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.services import config_store

from .errors import RowValidationError, UnresolvedReferenceError
from .fields import NAME_MAX_LENGTH, required_text
from .ir import ConfigIR, IRRow, Section

NATURAL_KEY_FIELDS: dict[Section, tuple[str, ...]] = {
    Section.PROVIDERS: ("name",),
    Section.MODELS: ("name",),
    Section.MAPPINGS: ("model", "provider", "providerModel"),
}


class ReferenceState(str, Enum):
    RESOLVED = "resolved"
    PENDING = "pending"
    UNRESOLVED = "unresolved"


@dataclass(slots=True)
class Reference:
    """A mapping's pointer to a provider or model by name."""

    field: str
    name: str
    state: ReferenceState
    target_id: UUID | None = None


@dataclass(slots=True)
class KeyIndex:
    providers: dict[str, UUID] = field(default_factory=dict)
    models: dict[str, UUID] = field(default_factory=dict)
    mappings: set[tuple[str, ...]] = field(default_factory=set)
    pending_providers: set[str] = field(default_factory=set)
    pending_models: set[str] = field(default_factory=set)

    @classmethod
    def load(cls, session: Session) -> "KeyIndex":
        return cls(
            providers=config_store.load_provider_ids(session),
            models=config_store.load_model_ids(session),
            mappings=set(config_store.load_mapping_keys(session)),
        )

    def contains(self, section: Section, key: tuple[str, ...]) -> bool:
        if section is Section.PROVIDERS:
            return key[0] in self.providers
        if section is Section.MODELS:
            return key[0] in self.models
        return key in self.mappings

    def record(self, section: Section, key: tuple[str, ...], entity_id: UUID | None = None) -> None:
        """Register a key that now exists in the store."""
        if section is Section.PROVIDERS:
            self.providers[key[0]] = entity_id
            self.pending_providers.discard(key[0])
        elif section is Section.MODELS:
            self.models[key[0]] = entity_id
            self.pending_models.discard(key[0])
        else:
            self.mappings.add(key)

    def reference(self, field_name: str, name: str) -> Reference:
        if field_name == "provider":
            known, pending = self.providers, self.pending_providers
        else:
            known, pending = self.models, self.pending_models
        if name in known:
            return Reference(field_name, name, ReferenceState.RESOLVED, known[name])
        if name in pending:
            return Reference(field_name, name, ReferenceState.PENDING)
        return Reference(field_name, name, ReferenceState.UNRESOLVED)

    def bind(self, reference: Reference) -> UUID:
        """
        Turn a reference into a stored id at apply time. A pending reference
        binds only if its defining row was imported.
        """
        if reference.state is ReferenceState.RESOLVED and reference.target_id is not None:
            return reference.target_id
        known = self.providers if reference.field == "provider" else self.models
        target = known.get(reference.name)
        if target is None:
            raise UnresolvedReferenceError(reference.field, reference.name)
        return target


@dataclass(slots=True)
class ResolvedRow:
    source: IRRow
    key: tuple[str, ...] | None = None
    key_error: RowValidationError | None = None
    references: dict[str, Reference] = field(default_factory=dict)

    @property
    def row(self) -> int:
        return self.source.row

    @property
    def fields(self) -> dict[str, Any]:
        return self.source.fields


@dataclass(slots=True)
class ResolvedBatch:
    providers: list[ResolvedRow] = field(default_factory=list)
    models: list[ResolvedRow] = field(default_factory=list)
    mappings: list[ResolvedRow] = field(default_factory=list)

    def rows(self, section: Section) -> list[ResolvedRow]:
        if section is Section.PROVIDERS:
            return self.providers
        if section is Section.MODELS:
            return self.models
        return self.mappings


def natural_key(section: Section, fields: dict[str, Any]) -> tuple[str, ...]:
    """Canonical natural key; raises RowValidationError on the first missing part."""
    return tuple(
        required_text(fields, name, max_length=NAME_MAX_LENGTH) for name in NATURAL_KEY_FIELDS[section]
    )


def _resolve_row(section: Section, item: IRRow) -> ResolvedRow:
    try:
        key = natural_key(section, item.fields)
    except RowValidationError as exc:
        return ResolvedRow(source=item, key_error=exc)
    return ResolvedRow(source=item, key=key)


def resolve(ir: ConfigIR, session: Session) -> tuple[ResolvedBatch, KeyIndex]:
    index = KeyIndex.load(session)
    batch = ResolvedBatch()

    for item in ir.providers:
        resolved = _resolve_row(Section.PROVIDERS, item)
        if resolved.key is not None and resolved.key[0] not in index.providers:
            index.pending_providers.add(resolved.key[0])
        batch.providers.append(resolved)

    for item in ir.models:
        resolved = _resolve_row(Section.MODELS, item)
        if resolved.key is not None and resolved.key[0] not in index.models:
            index.pending_models.add(resolved.key[0])
        batch.models.append(resolved)

    for item in ir.mappings:
        resolved = _resolve_row(Section.MAPPINGS, item)
        if resolved.key is not None:
            model_name, provider_name, _ = resolved.key
            resolved.references = {
                "model": index.reference("model", model_name),
                "provider": index.reference("provider", provider_name),
            }
        batch.mappings.append(resolved)

    return batch, index


__all__ = [
    "KeyIndex",
    "NATURAL_KEY_FIELDS",
    "Reference",
    "ReferenceState",
    "ResolvedBatch",
    "ResolvedRow",
    "natural_key",
    "resolve",
]
