"""Mark resolution: constituent zones, prefixes, numbering and orchestration."""

from __future__ import annotations

from .aggregation import ZoneIndex, aggregate_snapshots, concatenate_values, normalize_size_value
from .marks import (
    MARK_ATTRIBUTE,
    MEP_MARK_ATTRIBUTE,
    format_mark,
    mark_number,
    read_mark,
    split_mark,
    write_mark,
)
from .numbering import NumberingResult, ResetResult, assign_numbers, reset_marks
from .orchestrator import MarkOrchestrator, MarkRequest, MarkRequestError, MarkResult
from .prefix import PrefixResolution, PrefixResolver, resolve_prefix_from_zones

__all__ = [
    "MARK_ATTRIBUTE",
    "MEP_MARK_ATTRIBUTE",
    "MarkOrchestrator",
    "MarkRequest",
    "MarkRequestError",
    "MarkResult",
    "NumberingResult",
    "PrefixResolution",
    "PrefixResolver",
    "ResetResult",
    "ZoneIndex",
    "aggregate_snapshots",
    "assign_numbers",
    "concatenate_values",
    "format_mark",
    "mark_number",
    "normalize_size_value",
    "read_mark",
    "reset_marks",
    "resolve_prefix_from_zones",
    "split_mark",
    "write_mark",
]
