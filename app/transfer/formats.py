"""
Format adapters: a closed set of file formats behind one parse/render interface.

Adapters are picked from the declared filename extension (or, failing that,
the declared content type) and never by sniffing the bytes.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import PurePath
from typing import Any
from zipfile import BadZipFile

import yaml
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException

from .errors import MalformedInputError, UnsupportedFormatError
from .ir import FIRST_DATA_ROW, SECTION_FIELDS, ConfigIR, Section, match_field, match_section

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
JSON_MEDIA_TYPE = "application/json"
YAML_MEDIA_TYPE = "application/x-yaml"

_RECOGNIZED_HINT = "Providers / Models / ModelProviderMappings"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _canonical_fields(section: Section, raw: dict[Any, Any]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in raw.items():
        name = match_field(section, key)
        if name is None or name in fields:
            continue
        fields[name] = value
    return fields


class FormatAdapter(ABC):
    name: str
    extension: str
    media_type: str

    @abstractmethod
    def parse(self, data: bytes) -> ConfigIR:
        """Decode file bytes into the IR; raises MalformedInputError."""

    @abstractmethod
    def render(self, ir: ConfigIR) -> bytes:
        """Encode the IR into file bytes."""


class WorkbookAdapter(FormatAdapter):
    """xlsx workbook with one sheet per section and a header row per sheet."""

    name = "xlsx"
    extension = ".xlsx"
    media_type = XLSX_MEDIA_TYPE

    def parse(self, data: bytes) -> ConfigIR:
        if not data:
            raise MalformedInputError("文件为空")
        # Corrupt XML parts surface as SyntaxError subclasses (ElementTree ParseError, lxml XMLSyntaxError).
        try:
            workbook = load_workbook(BytesIO(data), data_only=True)
        except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError, SyntaxError) as exc:
            raise MalformedInputError("无法解析 Excel 文件，请确认文件未损坏且为 .xlsx 格式") from exc

        try:
            ir = ConfigIR()
            seen: set[Section] = set()
            for sheet in workbook.worksheets:
                section = match_section(sheet.title)
                if section is None:
                    continue
                if section in seen:
                    raise MalformedInputError(f"工作表 {section.value} 重复出现")
                seen.add(section)

                rows = sheet.iter_rows(values_only=True)
                header = next(rows, None)
                if header is None:
                    continue
                columns = [None if _is_blank(h) else match_field(section, h) for h in header]
                for offset, values in enumerate(rows):
                    if all(_is_blank(v) for v in values):
                        continue
                    fields: dict[str, Any] = {}
                    for column, value in zip(columns, values):
                        if column is None or column in fields:
                            continue
                        fields[column] = value
                    ir.add(section, fields, row=FIRST_DATA_ROW + offset)
        finally:
            workbook.close()

        if not seen:
            raise MalformedInputError(f"Excel 文件中没有可识别的工作表：{_RECOGNIZED_HINT}")
        return ir

    def render(self, ir: ConfigIR) -> bytes:
        workbook = Workbook()
        workbook.remove(workbook.active)
        header_font = Font(bold=True)
        for section, rows in ir.sections():
            sheet = workbook.create_sheet(title=section.value)
            columns = SECTION_FIELDS[section]
            sheet.append(list(columns))
            for cell in sheet[1]:
                cell.font = header_font
            sheet.freeze_panes = "A2"
            for row in rows:
                sheet.append([self._cell_value(row.fields.get(column)) for column in columns])

        buffer = BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    @staticmethod
    def _cell_value(value: Any) -> Any:
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        return value


class _DocumentAdapter(FormatAdapter):
    """Shared shape for JSON / YAML: {providers: [...], models: [...], ...}."""

    @abstractmethod
    def _load(self, text: str) -> Any:
        ...

    @abstractmethod
    def _dump(self, document: dict[str, Any]) -> str:
        ...

    def parse(self, data: bytes) -> ConfigIR:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedInputError("文件不是有效的 UTF-8 文本") from exc
        if not text.strip():
            raise MalformedInputError("文件为空")

        document = self._load(text)
        if not isinstance(document, dict):
            raise MalformedInputError("文档顶层必须是对象")

        ir = ConfigIR()
        seen: set[Section] = set()
        for key, value in document.items():
            section = match_section(key)
            if section is None:
                continue
            if section in seen:
                raise MalformedInputError(f"区块 {section.document_key} 重复出现")
            seen.add(section)
            if value is None:
                continue
            if not isinstance(value, list):
                raise MalformedInputError(f"{key} 必须是列表")
            for index, item in enumerate(value):
                if not isinstance(item, dict):
                    raise MalformedInputError(f"{key} 第 {index + 1} 项必须是对象")
                ir.add(section, _canonical_fields(section, item), row=FIRST_DATA_ROW + index)

        if not seen:
            raise MalformedInputError(f"文档中没有可识别的区块：{_RECOGNIZED_HINT}")
        return ir

    def render(self, ir: ConfigIR) -> bytes:
        document = {
            section.document_key: [
                {column: row.fields.get(column) for column in SECTION_FIELDS[section]}
                for row in rows
            ]
            for section, rows in ir.sections()
        }
        return self._dump(document).encode("utf-8")


class JsonAdapter(_DocumentAdapter):
    name = "json"
    extension = ".json"
    media_type = JSON_MEDIA_TYPE

    def _load(self, text: str) -> Any:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedInputError(f"JSON 解析失败：第 {exc.lineno} 行 {exc.msg}") from exc

    def _dump(self, document: dict[str, Any]) -> str:
        return json.dumps(document, ensure_ascii=False, indent=2, default=str)


class YamlAdapter(_DocumentAdapter):
    name = "yaml"
    extension = ".yaml"
    media_type = YAML_MEDIA_TYPE

    def _load(self, text: str) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise MalformedInputError("YAML 解析失败") from exc

    def _dump(self, document: dict[str, Any]) -> str:
        return yaml.safe_dump(document, allow_unicode=True, sort_keys=False)


_ADAPTERS: dict[str, FormatAdapter] = {
    adapter.name: adapter for adapter in (WorkbookAdapter(), JsonAdapter(), YamlAdapter())
}

_FORMAT_ALIASES = {"yml": "yaml", "excel": "xlsx"}

_EXTENSIONS = {".xlsx": "xlsx", ".json": "json", ".yaml": "yaml", ".yml": "yaml"}

_CONTENT_TYPES = {
    XLSX_MEDIA_TYPE: "xlsx",
    "application/json": "json",
    "text/json": "json",
    "application/yaml": "yaml",
    "application/x-yaml": "yaml",
    "text/yaml": "yaml",
    "text/x-yaml": "yaml",
}

SUPPORTED_FORMATS: tuple[str, ...] = tuple(_ADAPTERS)
SUPPORTED_EXTENSIONS: tuple[str, ...] = tuple(_EXTENSIONS)


def get_adapter(fmt: str) -> FormatAdapter:
    """Return the adapter for a format name such as 'xlsx', 'json', 'yaml' or 'yml'."""
    key = (fmt or "").strip().lower().lstrip(".")
    key = _FORMAT_ALIASES.get(key, key)
    adapter = _ADAPTERS.get(key)
    if adapter is None:
        raise UnsupportedFormatError(
            f"不支持的文件格式 {fmt!r}，仅支持 {', '.join(SUPPORTED_FORMATS)}"
        )
    return adapter


def adapter_for_upload(filename: str | None, content_type: str | None = None) -> FormatAdapter:
    """
    Pick the adapter for an uploaded file. A filename extension always wins;
    the content type is only consulted when the filename has no extension.
    """
    suffix = PurePath(filename or "").suffix.lower()
    if suffix:
        fmt = _EXTENSIONS.get(suffix)
        if fmt is None:
            raise UnsupportedFormatError(
                f"不支持的文件类型 {suffix}，请上传 {' / '.join(SUPPORTED_EXTENSIONS)} 文件"
            )
        return _ADAPTERS[fmt]

    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    fmt = _CONTENT_TYPES.get(media_type)
    if fmt is None:
        raise UnsupportedFormatError(
            f"无法识别的文件类型，请上传 {' / '.join(SUPPORTED_EXTENSIONS)} 文件"
        )
    return _ADAPTERS[fmt]


def parse(data: bytes, fmt: str) -> ConfigIR:
    return get_adapter(fmt).parse(data)


def render(ir: ConfigIR, fmt: str) -> bytes:
    return get_adapter(fmt).render(ir)


__all__ = [
    "FormatAdapter",
    "JSON_MEDIA_TYPE",
    "JsonAdapter",
    "SUPPORTED_EXTENSIONS",
    "SUPPORTED_FORMATS",
    "WorkbookAdapter",
    "XLSX_MEDIA_TYPE",
    "YAML_MEDIA_TYPE",
    "YamlAdapter",
    "adapter_for_upload",
    "get_adapter",
    "parse",
    "render",
]
