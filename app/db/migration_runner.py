from __future__ import annotations

import threading
from pathlib import Path

from alembic import command
from alembic.config import Config

from app.logging_config import logger
from app.settings import settings

_PROJECT_DIR = Path(__file__).resolve().parents[2]

_MIGRATION_LOCK = threading.Lock()
_MIGRATION_APPLIED = False


def _should_auto_apply(database_url: str) -> bool:
    """
    只对 Postgres 自动升级；SQLite（测试 / 本地内存库）由 create_all 建表。
    """
    if not settings.auto_apply_db_migrations:
        return False
    return database_url.lower().startswith("postgres")


def _build_alembic_config(base_dir: Path) -> Config:
    cfg = Config(str(base_dir / "alembic.ini"))
    # 使用绝对路径，避免从其它工作目录启动时找不到迁移脚本
    cfg.set_main_option("script_location", str(base_dir / "alembic"))
    cfg.set_main_option("version_locations", str(base_dir / "alembic" / "versions"))
    cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return cfg


def auto_upgrade_database(revision: str = "head") -> None:
    """
    启动时把配置库 schema（providers / models / model_providers）升级到指定版本。
    每个进程只执行一次。
    """
    global _MIGRATION_APPLIED
    if _MIGRATION_APPLIED:
        return
    if not _should_auto_apply(settings.database_url):
        logger.debug("Skip alembic auto-upgrade for %s", settings.database_url.split(":", 1)[0])
        return

    with _MIGRATION_LOCK:
        if _MIGRATION_APPLIED:
            return

        alembic_ini = _PROJECT_DIR / "alembic.ini"
        if not alembic_ini.exists():
            logger.warning("Alembic 配置文件 %s 不存在，跳过自动迁移。", alembic_ini)
            _MIGRATION_APPLIED = True
            return

        logger.info("自动执行 Alembic 迁移（目标版本 %s）...", revision)
        try:
            command.upgrade(_build_alembic_config(_PROJECT_DIR), revision)
        except Exception:
            logger.exception("自动执行 Alembic 迁移失败，请手动运行 'alembic upgrade head'。")
            raise
        logger.info("数据库迁移完成。")
        _MIGRATION_APPLIED = True
