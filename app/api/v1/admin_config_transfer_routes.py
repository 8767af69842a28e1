from __future__ import annotations

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.deps import get_db, get_redis
from app.errors import malformed_input, payload_too_large, unsupported_format
from app.logging_config import logger
from app.schemas import ImportResponse
from app.services.config_cache import bump_config_version
from app.services.config_transfer_service import (
    RenderedFile,
    export_config,
    export_template,
    import_config,
)
from app.settings import settings
from app.transfer import MalformedInputError, UnsupportedFormatError

router = APIRouter(tags=["admin-config-transfer"])


def _attachment(rendered: RenderedFile) -> Response:
    return Response(
        content=rendered.content,
        media_type=rendered.media_type,
        headers={"Content-Disposition": f'attachment; filename="{rendered.filename}"'},
    )


@router.post("/admin/import/config/upload", response_model=ImportResponse)
@router.post("/admin/import/all", response_model=ImportResponse, include_in_schema=False)
async def upload_config_file(
    file: UploadFile = File(..., description="xlsx / json / yaml 配置文件"),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis),
) -> ImportResponse:
    """
    批量导入 Provider / Model / 映射配置。

    已存在的自然键一律跳过，不会覆盖；单行错误只记录在结果里，不影响其它行。
    """
    filename = file.filename or ""
    limit = settings.import_max_upload_bytes
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise payload_too_large(
            f"上传文件超过大小限制（{limit} 字节）", details={"max_bytes": limit}
        )

    try:
        result = await run_in_threadpool(
            import_config,
            db,
            data=data,
            filename=filename,
            content_type=file.content_type,
        )
    except UnsupportedFormatError as exc:
        raise unsupported_format(str(exc)) from exc
    except MalformedInputError as exc:
        logger.info("Rejected malformed import file %s: %s", filename, exc)
        raise malformed_input(str(exc)) from exc

    if result.summary.total_imported > 0:
        await bump_config_version(redis)

    return ImportResponse(filename=filename, result=result)


@router.get("/admin/export/template")
def download_config_template(
    with_sample: bool = Query(False, description="是否包含示例数据"),
    with_sample_camel: bool | None = Query(None, alias="withSample", include_in_schema=False),
    fmt: str | None = Query(None, alias="format", description="xlsx / json / yaml"),
) -> Response:
    if with_sample_camel is not None:
        with_sample = with_sample_camel
    try:
        rendered = export_template(fmt=fmt, with_sample=with_sample)
    except UnsupportedFormatError as exc:
        raise unsupported_format(str(exc)) from exc
    return _attachment(rendered)


@router.get("/admin/export/config")
@router.get("/admin/export/all", include_in_schema=False)
def export_config_file(
    fmt: str | None = Query(None, alias="format", description="xlsx / json / yaml"),
    enabled_only: bool = Query(False, description="仅导出启用的配置"),
    db: Session = Depends(get_db),
) -> Response:
    try:
        rendered = export_config(db, fmt=fmt, enabled_only=enabled_only)
    except UnsupportedFormatError as exc:
        raise unsupported_format(str(exc)) from exc
    return _attachment(rendered)


__all__ = ["router"]
