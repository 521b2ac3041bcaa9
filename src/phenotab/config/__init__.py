"""Pipeline configuration."""

from phenotab.config.settings import (
    Credentials,
    DataSourceConfig,
    DataSourceKind,
    LoaderConfig,
    LoaderKind,
    OntologyConfig,
    PipelineConfig,
    ProviderKind,
    StrategyConfig,
    load_pipeline_config,
    make_provider_builder,
)

__all__ = [
    "Credentials",
    "DataSourceConfig",
    "DataSourceKind",
    "LoaderConfig",
    "LoaderKind",
    "OntologyConfig",
    "PipelineConfig",
    "ProviderKind",
    "StrategyConfig",
    "load_pipeline_config",
    "make_provider_builder",
]
