"""Name-keyed construction of strategies from configuration.

The strategy list in configuration is an ordered list of names; the
order there is the execution order.
"""

from __future__ import annotations

from collections.abc import Callable

from phenotab.config.settings import StrategyConfig
from phenotab.errors import ConfigurationError
from phenotab.models.context import (
    DISEASE_LABEL_OR_ID,
    HPO_LABEL_OR_ID,
    Context,
    ContextKind,
)
from phenotab.ontology.factory import CachedOntologyFactory
from phenotab.ontology.references import KnownPrefixes, OntologyRef
from phenotab.transforms.age_to_iso8601 import AgeToIso8601Strategy
from phenotab.transforms.alias_map import AliasMapStrategy
from phenotab.transforms.base import Strategy
from phenotab.transforms.date_to_age import DateToAgeStrategy
from phenotab.transforms.mapping import MappingStrategy
from phenotab.transforms.multi_hpo_expansion import MultiHpoColExpansionStrategy
from phenotab.transforms.ontology_normaliser import OntologyNormaliserStrategy
from phenotab.transforms.pipeline import StrategyPipeline
from phenotab.transforms.string_correction import CaseMode, StringCorrectionStrategy

_DEFAULT_CONTEXTS: dict[str, Context] = {
    KnownPrefixes.HP: HPO_LABEL_OR_ID,
    KnownPrefixes.MONDO: DISEASE_LABEL_OR_ID,
    KnownPrefixes.OMIM: DISEASE_LABEL_OR_ID,
    KnownPrefixes.ORPHA: DISEASE_LABEL_OR_ID,
    KnownPrefixes.HGNC: Context.of(ContextKind.HGNC_SYMBOL_OR_ID),
}


def _string_correction(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    return StringCorrectionStrategy(contexts=config.contexts, case=CaseMode(config.case))


def _alias_map(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    return AliasMapStrategy()


def _multi_hpo(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    return MultiHpoColExpansionStrategy()


def _date_to_age(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    return DateToAgeStrategy()


def _age_to_iso8601(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    return AgeToIso8601Strategy()


def _ontology_normaliser(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    ref = OntologyRef.from_prefix(config.ontology or KnownPrefixes.HP)
    context = config.context or _DEFAULT_CONTEXTS.get(ref.prefix)
    if context is None:
        msg = f"ontology_normaliser for {ref} needs an explicit context"
        raise ConfigurationError(msg)
    return OntologyNormaliserStrategy(factory.get_bidict(ref), context)


def _sex_mapping(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    return MappingStrategy.sex_mapping(config.vocabulary)


def _vital_status_mapping(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    return MappingStrategy.vital_status_mapping(config.vocabulary)


STRATEGY_BUILDERS: dict[str, Callable[[StrategyConfig, CachedOntologyFactory], Strategy]] = {
    "string_correction": _string_correction,
    "alias_map": _alias_map,
    "multi_hpo_col_expansion": _multi_hpo,
    "date_to_age": _date_to_age,
    "age_to_iso8601": _age_to_iso8601,
    "ontology_normaliser": _ontology_normaliser,
    "sex_mapping": _sex_mapping,
    "vital_status_mapping": _vital_status_mapping,
}


def list_strategies() -> list[str]:
    """Return the registered strategy names."""
    return sorted(STRATEGY_BUILDERS)


def build_strategy(config: StrategyConfig, factory: CachedOntologyFactory) -> Strategy:
    """Build one strategy from its configuration entry.

    Raises:
        ConfigurationError: Unknown strategy name or invalid options.
    """
    builder = STRATEGY_BUILDERS.get(config.name)
    if builder is None:
        msg = f"Unknown strategy '{config.name}'. Available: {list_strategies()}"
        raise ConfigurationError(msg)
    try:
        return builder(config, factory)
    except ValueError as exc:
        msg = f"Invalid options for strategy '{config.name}': {exc}"
        raise ConfigurationError(msg) from exc


def build_pipeline(
    configs: list[StrategyConfig],
    factory: CachedOntologyFactory,
) -> StrategyPipeline:
    """Build the ordered strategy pipeline for a run."""
    return StrategyPipeline([build_strategy(config, factory) for config in configs])
