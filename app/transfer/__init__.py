"""
Bulk configuration import/export: format adapters, resolver, reconciliation
engine, export serializer and result aggregation.
"""

from .aggregator import aggregate, build_result
from .engine import ImportReport, ReconciliationEngine
from .errors import (
    ConfigTransferError,
    MalformedInputError,
    RowLevelError,
    RowValidationError,
    UnresolvedReferenceError,
    UnsupportedFormatError,
)
from .exporter import SnapshotFilter, snapshot, template_snapshot
from .formats import FormatAdapter, adapter_for_upload, get_adapter
from .ir import ConfigIR, IRRow, RowAddress, Section
from .resolver import KeyIndex, ResolvedBatch, resolve

__all__ = [
    "ConfigIR",
    "ConfigTransferError",
    "FormatAdapter",
    "IRRow",
    "ImportReport",
    "KeyIndex",
    "MalformedInputError",
    "ReconciliationEngine",
    "ResolvedBatch",
    "RowAddress",
    "RowLevelError",
    "RowValidationError",
    "Section",
    "SnapshotFilter",
    "UnresolvedReferenceError",
    "UnsupportedFormatError",
    "adapter_for_upload",
    "aggregate",
    "build_result",
    "get_adapter",
    "resolve",
    "snapshot",
    "template_snapshot",
]
