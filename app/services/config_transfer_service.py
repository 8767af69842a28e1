from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.logging_config import logger
from app.schemas.config_transfer import ImportResult
from app.settings import settings
from app.transfer import (
    ReconciliationEngine,
    SnapshotFilter,
    adapter_for_upload,
    build_result,
    get_adapter,
    resolve,
    snapshot,
    template_snapshot,
)


@dataclass(frozen=True)
class RenderedFile:
    content: bytes
    media_type: str
    filename: str


def _timestamp(now: dt.datetime | None) -> str:
    return (now or dt.datetime.now()).strftime("%Y%m%d_%H%M%S")


def import_config(
    session: Session,
    *,
    data: bytes,
    filename: str | None,
    content_type: str | None = None,
) -> ImportResult:
    """
    Parse an uploaded file and apply it to the store.

    File-level problems raise UnsupportedFormatError / MalformedInputError
    before anything is written; row-level problems end up in the result.
    """
    adapter = adapter_for_upload(filename, content_type)
    ir = adapter.parse(data)
    logger.info(
        "Import %s (%s): providers=%d models=%d mappings=%d",
        filename,
        adapter.name,
        len(ir.providers),
        len(ir.models),
        len(ir.mappings),
    )

    batch, index = resolve(ir, session)
    report = ReconciliationEngine(session, index).apply(batch)
    result = build_result(report)
    logger.info(
        "Import %s finished: imported=%d skipped=%d errors=%d",
        filename,
        result.summary.total_imported,
        result.summary.total_skipped,
        result.summary.total_errors,
    )
    return result


def export_config(
    session: Session,
    *,
    fmt: str | None = None,
    enabled_only: bool = False,
    now: dt.datetime | None = None,
) -> RenderedFile:
    adapter = get_adapter(fmt or settings.export_default_format)
    ir = snapshot(session, SnapshotFilter(enabled_only=enabled_only))
    content = adapter.render(ir)
    filename = f"config_export_{_timestamp(now)}{adapter.extension}"
    logger.info(
        "Exported configuration as %s (enabled_only=%s): providers=%d models=%d mappings=%d",
        filename,
        enabled_only,
        len(ir.providers),
        len(ir.models),
        len(ir.mappings),
    )
    return RenderedFile(content=content, media_type=adapter.media_type, filename=filename)


def export_template(
    *,
    fmt: str | None = None,
    with_sample: bool = False,
    now: dt.datetime | None = None,
) -> RenderedFile:
    adapter = get_adapter(fmt or settings.export_default_format)
    content = adapter.render(template_snapshot(with_sample=with_sample))
    filename = f"config_template_{_timestamp(now)}{adapter.extension}"
    return RenderedFile(content=content, media_type=adapter.media_type, filename=filename)


__all__ = ["RenderedFile", "export_config", "export_template", "import_config"]
