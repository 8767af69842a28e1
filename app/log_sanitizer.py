from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "***REDACTED***"


_SENSITIVE_HEADER_NAMES = {
    "authorization",
    "proxy-authorization",
    "x-api-key",
    "api-key",
    "x-auth-token",
    "x-access-token",
    "x-session-id",
    "cookie",
    "set-cookie",
}

_SENSITIVE_KEYWORDS = ("key", "token", "secret", "auth", "cookie", "session", "password", "credential")


def _is_sensitive_name(name: str) -> bool:
    lower_name = name.lower()
    return lower_name in _SENSITIVE_HEADER_NAMES or any(
        token in lower_name for token in _SENSITIVE_KEYWORDS
    )


def sanitize_headers_for_log(
    headers: Mapping[str, str], *, mask_token: str = REDACTED
) -> dict[str, str]:
    """
    将请求头做安全脱敏后用于日志输出。

    - 明确敏感的 header 名（authorization / x-api-key / cookie 等）直接打码；
    - 包含敏感关键词（key/token/secret/auth/cookie/session）的 header 名也打码；
    - 其它 header 原样保留，便于排障。
    """
    sanitized: dict[str, str] = {}
    for name, value in headers.items():
        sanitized[name] = mask_token if _is_sensitive_name(name) else value
    return sanitized


def sanitize_config_for_log(
    config: Mapping[str, Any] | None, *, mask_token: str = REDACTED
) -> dict[str, Any]:
    """
    Provider 配置里通常带着上游凭证（apiKey 等），写日志前按字段名递归打码。
    """
    if not config:
        return {}
    sanitized: dict[str, Any] = {}
    for name, value in config.items():
        if _is_sensitive_name(str(name)):
            sanitized[name] = mask_token
        elif isinstance(value, Mapping):
            sanitized[name] = sanitize_config_for_log(value, mask_token=mask_token)
        else:
            sanitized[name] = value
    return sanitized


__all__ = ["REDACTED", "sanitize_config_for_log", "sanitize_headers_for_log"]
