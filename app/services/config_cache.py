from __future__ import annotations

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.logging_config import logger
from app.settings import settings


async def bump_config_version(redis: Redis) -> int | None:
    """
    递增配置版本号，通知网关节点重新加载 provider / model / 映射配置。

    Redis 不可用时只记录警告：导入的数据已经提交，不应因为缓存通知失败而报错。
    """
    key = settings.config_version_key
    try:
        version = await redis.incr(key)
    except (RedisError, OSError) as exc:
        logger.warning("Failed to bump config version key %s: %s", key, exc)
        return None
    logger.info("Config version bumped: %s=%s", key, version)
    return int(version)


__all__ = ["bump_config_version"]
