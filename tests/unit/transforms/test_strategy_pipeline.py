"""Tests for strategy ordering, the pipeline runner and the strategy registry."""

from __future__ import annotations

import pandas as pd
import pytest

from phenotab.config.settings import StrategyConfig
from phenotab.errors import ConfigurationError
from phenotab.models.context import (
    DISEASE_LABEL_OR_ID,
    HPO_LABEL_OR_ID,
    SUBJECT_ID,
    SUBJECT_SEX,
)
from phenotab.models.diagnostics import DiagnosticsReport
from phenotab.models.table_context import AliasMap, Identifier, SeriesContext, TableContext
from phenotab.ontology import CachedOntologyFactory, InMemoryOntologyProvider, OntologyRef
from phenotab.tagging import tag_table
from phenotab.transforms import (
    AgeToIso8601Strategy,
    AliasMapStrategy,
    DateToAgeStrategy,
    MappingStrategy,
    MultiHpoColExpansionStrategy,
    OntologyNormaliserStrategy,
    StrategyPipeline,
    StringCorrectionStrategy,
    build_pipeline,
    build_strategy,
    list_strategies,
)


def _factory() -> CachedOntologyFactory:
    labels = {
        OntologyRef.hp(): {"HP:0001250": "Seizure"},
        OntologyRef.omim(): {"OMIM:168600": "Parkinson disease"},
    }
    return CachedOntologyFactory(lambda ref: InMemoryOntologyProvider(ref, labels.get(ref, {})))


class TestOrdering:
    def test_string_correction_must_come_first(self) -> None:
        with pytest.raises(ConfigurationError, match="must run before 'alias_map'"):
            StrategyPipeline([AliasMapStrategy(), StringCorrectionStrategy()])

    def test_string_correction_before_normaliser(self) -> None:
        normaliser = OntologyNormaliserStrategy(_factory().get_bidict("HP"), HPO_LABEL_OR_ID)
        with pytest.raises(ConfigurationError, match="ontology_normaliser"):
            StrategyPipeline([normaliser, StringCorrectionStrategy()])

    def test_date_to_age_before_age_to_iso8601(self) -> None:
        with pytest.raises(ConfigurationError, match="'date_to_age' must run before"):
            StrategyPipeline([AgeToIso8601Strategy(), DateToAgeStrategy()])
        pipeline = StrategyPipeline([DateToAgeStrategy(), AgeToIso8601Strategy()])
        assert pipeline.names == ["date_to_age", "age_to_iso8601"]

    def test_duplicates_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="listed 2 times"):
            StrategyPipeline([AliasMapStrategy(), AliasMapStrategy()])

    def test_normaliser_may_repeat(self) -> None:
        factory = _factory()
        pipeline = StrategyPipeline(
            [
                StringCorrectionStrategy(),
                OntologyNormaliserStrategy(factory.get_bidict("HP"), HPO_LABEL_OR_ID),
                OntologyNormaliserStrategy(factory.get_bidict("OMIM"), DISEASE_LABEL_OR_ID),
            ]
        )
        assert len(pipeline) == 3

    def test_valid_order(self) -> None:
        pipeline = StrategyPipeline(
            [StringCorrectionStrategy(), AliasMapStrategy(), MultiHpoColExpansionStrategy()]
        )
        assert pipeline.names == ["string_correction", "alias_map", "multi_hpo_col_expansion"]


class TestRun:
    def test_each_strategy_sees_previous_output(self) -> None:
        df = pd.DataFrame({"id": ["P1", "P2"], "sex": ["  mann ", "FRAU"]})
        tc = TableContext(
            name="demo",
            context=[
                SeriesContext(identifier=Identifier.exact("id"), data_context=SUBJECT_ID),
                SeriesContext(
                    identifier=Identifier.exact("sex"),
                    data_context=SUBJECT_SEX,
                    alias_map=AliasMap(mapping={"mann": "m", "frau": "f"}),
                ),
            ],
        )
        pipeline = StrategyPipeline(
            [
                StringCorrectionStrategy(case="lower"),
                AliasMapStrategy(),
                MappingStrategy.sex_mapping(),
            ]
        )
        diagnostics = DiagnosticsReport()
        table = tag_table(df, tc)
        result = pipeline.run(table, diagnostics)
        assert list(result.data["sex"]) == ["MALE", "FEMALE"]
        assert list(table.data["sex"]) == ["mann", "FRAU"]
        assert len(diagnostics) == 0


class TestRegistry:
    def test_list_strategies(self) -> None:
        assert list_strategies() == [
            "age_to_iso8601",
            "alias_map",
            "date_to_age",
            "multi_hpo_col_expansion",
            "ontology_normaliser",
            "sex_mapping",
            "string_correction",
            "vital_status_mapping",
        ]

    def test_age_strategies(self) -> None:
        factory = _factory()
        date_to_age = build_strategy(StrategyConfig(name="date_to_age"), factory)
        assert isinstance(date_to_age, DateToAgeStrategy)
        strategy = build_strategy(StrategyConfig(name="age_to_iso8601"), factory)
        assert isinstance(strategy, AgeToIso8601Strategy)
        assert (strategy.min_age, strategy.max_age) == (0, 150)

    def test_unknown_name(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown strategy 'spellcheck'"):
            build_strategy(StrategyConfig(name="spellcheck"), _factory())

    def test_normaliser_defaults_context_by_prefix(self) -> None:
        factory = _factory()
        strategy = build_strategy(
            StrategyConfig(name="ontology_normaliser", ontology="omim"), factory
        )
        assert isinstance(strategy, OntologyNormaliserStrategy)
        assert strategy.context == DISEASE_LABEL_OR_ID
        assert strategy.bidict is factory.get_bidict("OMIM")

    def test_normaliser_defaults_to_hp(self) -> None:
        strategy = build_strategy(StrategyConfig(name="ontology_normaliser"), _factory())
        assert strategy.bidict.ref == OntologyRef.hp()
        assert strategy.context == HPO_LABEL_OR_ID

    def test_normaliser_unknown_prefix_needs_context(self) -> None:
        with pytest.raises(ConfigurationError, match="explicit context"):
            build_strategy(StrategyConfig(name="ontology_normaliser", ontology="NCIT"), _factory())

    def test_bad_case_option(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid options"):
            build_strategy(StrategyConfig(name="string_correction", case="shouty"), _factory())

    def test_build_pipeline_from_names(self) -> None:
        configs = [
            StrategyConfig.model_validate(item)
            for item in [
                "string_correction",
                {"name": "ontology_normaliser", "ontology": "HP@2024-04-26"},
                "sex_mapping",
            ]
        ]
        factory = _factory()
        pipeline = build_pipeline(configs, factory)
        assert pipeline.names == ["string_correction", "ontology_normaliser", "sex_mapping"]
        assert OntologyRef.hp("2024-04-26") in factory

    def test_build_pipeline_rejects_bad_order(self) -> None:
        configs = [StrategyConfig(name="alias_map"), StrategyConfig(name="string_correction")]
        with pytest.raises(ConfigurationError):
            build_pipeline(configs, _factory())
