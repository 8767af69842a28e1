"""
Reconciliation engine: apply a resolved batch to the store row by row.

Sections are applied strictly in dependency order (providers, models, then
mappings). Every row is validated and committed on its own, so one bad row
never affects its siblings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.log_sanitizer import sanitize_config_for_log
from app.logging_config import logger
from app.schemas.config_transfer import EntityOutcome, ImportRowError
from app.services import config_store

from .errors import RowLevelError
from .fields import (
    optional_text,
    parse_bool,
    parse_int,
    parse_json_object,
    parse_provider_type,
    parse_weight,
)
from .ir import SECTION_ORDER, Section
from .resolver import KeyIndex, ResolvedBatch, ResolvedRow


@dataclass
class ImportReport:
    providers: EntityOutcome = field(default_factory=EntityOutcome)
    models: EntityOutcome = field(default_factory=EntityOutcome)
    model_provider_mappings: EntityOutcome = field(default_factory=EntityOutcome)

    def outcome(self, section: Section) -> EntityOutcome:
        if section is Section.PROVIDERS:
            return self.providers
        if section is Section.MODELS:
            return self.models
        return self.model_provider_mappings


class _Skip(Exception):
    """Natural key appeared in the store while the row was being created."""


class ReconciliationEngine:
    def __init__(self, session: Session, index: KeyIndex) -> None:
        self.session = session
        self.index = index
        self._handlers: dict[Section, Callable[[ResolvedRow], Any]] = {
            Section.PROVIDERS: self._create_provider,
            Section.MODELS: self._create_model,
            Section.MAPPINGS: self._create_mapping,
        }

    def apply(self, batch: ResolvedBatch) -> ImportReport:
        report = ImportReport()
        for section in SECTION_ORDER:
            outcome = report.outcome(section)
            for row in batch.rows(section):
                self._apply_row(section, row, outcome)
            logger.info(
                "Import %s: total=%d imported=%d skipped=%d errors=%d",
                section.value,
                outcome.total,
                outcome.imported,
                outcome.skipped,
                len(outcome.errors),
            )
        return report

    def _apply_row(self, section: Section, row: ResolvedRow, outcome: EntityOutcome) -> None:
        outcome.total += 1

        if row.key_error is not None:
            self._record_error(outcome, row, row.key_error.field, row.key_error.message)
            return

        assert row.key is not None
        if self.index.contains(section, row.key):
            outcome.skipped += 1
            return

        try:
            entity_id = self._handlers[section](row)
        except RowLevelError as exc:
            self._record_error(outcome, row, exc.field, exc.message)
            return
        except _Skip:
            outcome.skipped += 1
            return
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Import %s row %d failed to persist", section.value, row.row)
            self._record_error(outcome, row, "", f"写入失败：{exc.__class__.__name__}")
            return

        self.index.record(section, row.key, entity_id)
        outcome.imported += 1

    def _record_error(self, outcome: EntityOutcome, row: ResolvedRow, field_name: str, message: str) -> None:
        outcome.errors.append(ImportRowError(row=row.row, field=field_name, error=message))

    # ------------------------------------------------------------------
    # Per-section creators; each returns the stored id of the new entity.
    # ------------------------------------------------------------------

    def _create_provider(self, row: ResolvedRow):
        fields = row.fields
        name = row.key[0]
        provider_type = parse_provider_type(fields)
        config = parse_json_object(fields, "config")
        enabled = parse_bool(fields, "enabled", True)
        weight = parse_weight(fields, enabled=enabled)
        console_url = optional_text(fields, "consoleUrl", max_length=255)

        try:
            provider = config_store.create_provider(
                self.session,
                name=name,
                provider_type=provider_type,
                config=config,
                enabled=enabled,
                weight=weight,
                console_url=console_url,
            )
        except config_store.DuplicateKeyError:
            existing = config_store.find_provider_id(self.session, name)
            if existing is not None:
                self.index.record(Section.PROVIDERS, row.key, existing)
            raise _Skip() from None

        logger.debug(
            "Imported provider %s (%s) config=%s", name, provider_type, sanitize_config_for_log(config)
        )
        return provider.id

    def _create_model(self, row: ResolvedRow):
        fields = row.fields
        name = row.key[0]
        remark = optional_text(fields, "remark", max_length=255)
        max_retry = parse_int(fields, "maxRetry", 3, minimum=0)
        timeout = parse_int(fields, "timeout", 30, minimum=1)
        enabled = parse_bool(fields, "enabled", True)

        try:
            model = config_store.create_model(
                self.session,
                name=name,
                remark=remark,
                max_retry=max_retry,
                timeout=timeout,
                enabled=enabled,
            )
        except config_store.DuplicateKeyError:
            existing = config_store.find_model_id(self.session, name)
            if existing is not None:
                self.index.record(Section.MODELS, row.key, existing)
            raise _Skip() from None
        return model.id

    def _create_mapping(self, row: ResolvedRow):
        fields = row.fields
        _, _, provider_model = row.key
        tool_call = parse_bool(fields, "toolCall", True)
        structured_output = parse_bool(fields, "structuredOutput", True)
        image = parse_bool(fields, "image", False)
        enabled = parse_bool(fields, "enabled", True)
        weight = parse_weight(fields, enabled=enabled)

        model_id = self.index.bind(row.references["model"])
        provider_id = self.index.bind(row.references["provider"])

        try:
            mapping = config_store.create_model_provider(
                self.session,
                model_id=model_id,
                provider_id=provider_id,
                provider_model=provider_model,
                tool_call=tool_call,
                structured_output=structured_output,
                image=image,
                weight=weight,
                enabled=enabled,
            )
        except config_store.DuplicateKeyError:
            self.index.record(Section.MAPPINGS, row.key)
            raise _Skip() from None
        return mapping.id


__all__ = ["ImportReport", "ReconciliationEngine"]
