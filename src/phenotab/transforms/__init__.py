"""Strategy pipeline over tagged tables."""

from phenotab.transforms.age_to_iso8601 import AgeToIso8601Strategy
from phenotab.transforms.alias_map import AliasMapStrategy, coerce
from phenotab.transforms.base import Strategy
from phenotab.transforms.date_to_age import DateToAgeStrategy
from phenotab.transforms.mapping import MappingStrategy
from phenotab.transforms.multi_hpo_expansion import MultiHpoColExpansionStrategy, split_terms
from phenotab.transforms.ontology_normaliser import OntologyNormaliserStrategy
from phenotab.transforms.pipeline import StrategyPipeline
from phenotab.transforms.registry import build_pipeline, build_strategy, list_strategies
from phenotab.transforms.string_correction import CaseMode, StringCorrectionStrategy

__all__ = [
    "AgeToIso8601Strategy",
    "AliasMapStrategy",
    "CaseMode",
    "DateToAgeStrategy",
    "MappingStrategy",
    "MultiHpoColExpansionStrategy",
    "OntologyNormaliserStrategy",
    "Strategy",
    "StrategyPipeline",
    "StringCorrectionStrategy",
    "build_pipeline",
    "build_strategy",
    "coerce",
    "list_strategies",
    "split_terms",
]
