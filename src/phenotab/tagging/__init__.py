"""Column tagging: identifier matching and tagged tables."""

from phenotab.tagging.matcher import match_columns, tag_table
from phenotab.tagging.tagged_table import TaggedRow, TaggedTable, is_missing, object_series

__all__ = [
    "match_columns",
    "tag_table",
    "TaggedRow",
    "TaggedTable",
    "is_missing",
    "object_series",
]
