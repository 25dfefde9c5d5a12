"""List pipeline shared by every admin list page."""

from .listing import (
    CategoricalFilter,
    FetchError,
    ListConfig,
    ListPipeline,
    Notification,
    PipelineState,
    get_field,
    validate_envelope,
)
from .timestamps import format_local, parse_timestamp, timestamp_sort_key

__all__ = [
    "CategoricalFilter",
    "FetchError",
    "ListConfig",
    "ListPipeline",
    "Notification",
    "PipelineState",
    "format_local",
    "get_field",
    "parse_timestamp",
    "timestamp_sort_key",
    "validate_envelope",
]
