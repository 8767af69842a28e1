import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api.v1.admin_config_routes import router as admin_config_router
from .api.v1.admin_config_transfer_routes import router as admin_config_transfer_router
from .log_sanitizer import sanitize_headers_for_log
from .logging_config import logger


async def handle_unexpected_error(request: Request, exc: Exception):
    """
    全局异常处理器，统一返回结构化错误响应并打印日志。
    """

    error_id = uuid.uuid4().hex
    logger.exception(
        "Unhandled error %s %s (error_id=%s)",
        request.method,
        request.url.path,
        error_id,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error_code": "internal_error",
            "message": "服务器内部错误，请稍后再试",
            "error_id": error_id,
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理：
    - startup: 执行数据库迁移（仅在显式启用时）
    - shutdown: 目前无额外清理逻辑
    """
    from app.db.migration_runner import auto_upgrade_database

    auto_upgrade_database()
    yield


def create_app() -> FastAPI:
    from fastapi.middleware.cors import CORSMiddleware

    from .settings import settings

    # 解析 CORS 配置
    cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",")] if settings.cors_allow_origins else []
    cors_methods = [method.strip() for method in settings.cors_allow_methods.split(",")] if settings.cors_allow_methods != "*" else ["*"]
    cors_headers = [header.strip() for header in settings.cors_allow_headers.split(",")] if settings.cors_allow_headers != "*" else ["*"]

    docs_url = "/docs" if settings.enable_api_docs else None
    redoc_url = "/redoc" if settings.enable_api_docs else None
    openapi_url = "/openapi.json" if settings.enable_api_docs else None

    app = FastAPI(
        title="AI Gateway Config Admin",
        version="0.1.0",
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
        lifespan=lifespan,
    )
    app.add_exception_handler(Exception, handle_unexpected_error)

    if not settings.enable_api_docs:
        logger.info(
            "API docs routes are disabled (environment=%s); set ENABLE_API_DOCS=true to enable.",
            settings.environment,
        )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=cors_methods,
        allow_headers=cors_headers,
    )

    # 管理端配置路由：列表 / 克隆 / 导入导出
    app.include_router(admin_config_router)
    app.include_router(admin_config_transfer_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        基础请求日志中间件，记录请求和响应状态。
        会对 Authorization / x-api-key / cookie 等敏感头做脱敏处理。
        """

        client_host = request.client.host if request.client else "-"
        headers_for_log = sanitize_headers_for_log(request.headers)

        logger.info(
            "HTTP %s %s from %s, headers=%s",
            request.method,
            request.url.path,
            client_host,
            headers_for_log,
        )
        try:
            response = await call_next(request)
        except Exception as exc:  # pragma: no cover - exercised via tests
            response = await handle_unexpected_error(request, exc)
        logger.info(
            "HTTP %s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    return app
