"""
Cell/value coercion shared by the resolver and the engine.

Spreadsheet cells arrive as str/int/float/bool/None, JSON and YAML values as
their native types; every helper accepts all of them and raises
RowValidationError naming the offending field.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import RowValidationError

PROVIDER_TYPES: tuple[str, ...] = ("openai", "anthropic", "gemini", "azure", "deepseek", "ollama")

# Upper bound of the INTEGER columns (weight, max_retry, timeout).
INT_COLUMN_MAX = 2**31 - 1
# Length of the String(100) natural-key columns.
NAME_MAX_LENGTH = 100

_TRUE_VALUES = {"true", "1", "yes", "y", "on", "是"}
_FALSE_VALUES = {"false", "0", "no", "n", "off", "否"}


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def text_value(value: Any) -> str | None:
    """Trimmed string, or None for a blank cell. Whole floats lose their '.0'."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def required_text(fields: dict[str, Any], name: str, *, max_length: int | None = None) -> str:
    value = text_value(fields.get(name))
    if value is None:
        raise RowValidationError(name, f"{name} 不能为空")
    if max_length is not None and len(value) > max_length:
        raise RowValidationError(name, f"{name} 长度不能超过 {max_length}")
    return value


def optional_text(fields: dict[str, Any], name: str, *, max_length: int | None = None) -> str | None:
    value = text_value(fields.get(name))
    if value is not None and max_length is not None and len(value) > max_length:
        raise RowValidationError(name, f"{name} 长度不能超过 {max_length}")
    return value


def parse_bool(fields: dict[str, Any], name: str, default: bool) -> bool:
    value = fields.get(name)
    if is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    lowered = str(value).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise RowValidationError(name, f"{name} 必须是布尔值（true/false）")


def parse_int(
    fields: dict[str, Any],
    name: str,
    default: int,
    *,
    minimum: int | None = None,
    maximum: int | None = INT_COLUMN_MAX,
) -> int:
    value = fields.get(name)
    if is_blank(value):
        return default
    if isinstance(value, bool):
        raise RowValidationError(name, f"{name} 必须是整数")
    if isinstance(value, float):
        if not value.is_integer():
            raise RowValidationError(name, f"{name} 必须是整数")
        number = int(value)
    elif isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        try:
            number = int(text)
        except ValueError:
            try:
                as_float = float(text)
            except ValueError:
                raise RowValidationError(name, f"{name} 必须是整数") from None
            if not as_float.is_integer():
                raise RowValidationError(name, f"{name} 必须是整数") from None
            number = int(as_float)
    if minimum is not None and number < minimum:
        raise RowValidationError(name, f"{name} 不能小于 {minimum}")
    if maximum is not None and number > maximum:
        raise RowValidationError(name, f"{name} 不能大于 {maximum}")
    return number


def parse_weight(fields: dict[str, Any], *, enabled: bool, name: str = "weight") -> int:
    """Weight must be >= 1 on enabled entities; 0 is allowed once disabled."""
    weight = parse_int(fields, name, 1)
    if weight < 0:
        raise RowValidationError(name, f"{name} 不能为负数")
    if weight == 0 and enabled:
        raise RowValidationError(name, f"启用状态下 {name} 必须大于等于 1")
    return weight


def parse_provider_type(fields: dict[str, Any], name: str = "type") -> str:
    value = required_text(fields, name).lower()
    if value not in PROVIDER_TYPES:
        raise RowValidationError(
            name, f"{name} 取值无效：{value}，可选值为 {'/'.join(PROVIDER_TYPES)}"
        )
    return value


def parse_json_object(fields: dict[str, Any], name: str) -> dict[str, Any]:
    """Accept a mapping or JSON text of an object; blank becomes {}."""
    value = fields.get(name)
    if is_blank(value):
        return {}
    if isinstance(value, dict):
        return dict(value)
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            raise RowValidationError(name, f"{name} 不是合法的 JSON") from None
        if isinstance(decoded, dict):
            return decoded
    raise RowValidationError(name, f"{name} 必须是 JSON 对象")


__all__ = [
    "INT_COLUMN_MAX",
    "NAME_MAX_LENGTH",
    "PROVIDER_TYPES",
    "is_blank",
    "optional_text",
    "parse_bool",
    "parse_int",
    "parse_json_object",
    "parse_provider_type",
    "parse_weight",
    "required_text",
    "text_value",
]
