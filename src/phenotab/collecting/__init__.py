"""Cross-table, cross-source aggregation of tagged rows into subject records."""

from phenotab.collecting.aggregate import AggregateRecord, FieldValue
from phenotab.collecting.collector import Collector

__all__ = ["AggregateRecord", "Collector", "FieldValue"]
