"""Ordered application of strategies to a tagged table."""

from __future__ import annotations

from loguru import logger

from phenotab.errors import ConfigurationError
from phenotab.models.diagnostics import DiagnosticsReport
from phenotab.tagging.tagged_table import TaggedTable
from phenotab.transforms.base import Strategy

# (earlier, later) pairs: string_correction feeds exact-match keys, date_to_age
# leaves ages that age_to_iso8601 formats.
_ORDER = (
    ("string_correction", "alias_map"),
    ("string_correction", "ontology_normaliser"),
    ("date_to_age", "age_to_iso8601"),
)

# Strategies that may appear more than once (one per ontology or vocabulary).
_REPEATABLE = frozenset({"ontology_normaliser"})


class StrategyPipeline:
    """Applies strategies in declared order; each sees the previous output.

    Raises:
        ConfigurationError: A strategy is placed after one it must precede
            (``string_correction`` before keyed strategies, ``date_to_age``
            before ``age_to_iso8601``), or a non-repeatable strategy is
            listed twice.
    """

    def __init__(self, strategies: list[Strategy]) -> None:
        self._strategies = list(strategies)
        self._check_order()

    def _check_order(self) -> None:
        names = [s.name for s in self._strategies]
        for name in set(names):
            if name not in _REPEATABLE and names.count(name) > 1:
                msg = f"Strategy '{name}' is listed {names.count(name)} times"
                raise ConfigurationError(msg)
        for earlier, later in _ORDER:
            if earlier in names and later in names and names.index(later) < names.index(earlier):
                msg = f"Strategy '{earlier}' must run before '{later}', got order {names}"
                raise ConfigurationError(msg)

    @property
    def strategies(self) -> list[Strategy]:
        return list(self._strategies)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self._strategies]

    def prepare(self, tables: list[TaggedTable]) -> None:
        """Let every strategy see all tables of the run before any is transformed."""
        for strategy in self._strategies:
            strategy.prepare(tables)

    def run(self, table: TaggedTable, diagnostics: DiagnosticsReport) -> TaggedTable:
        """Apply every strategy to ``table`` and return the final table."""
        for strategy in self._strategies:
            table = strategy.apply(table, diagnostics)
        logger.debug("Pipeline {} finished on table {}", self.names, table.name)
        return table

    def __len__(self) -> int:
        return len(self._strategies)
