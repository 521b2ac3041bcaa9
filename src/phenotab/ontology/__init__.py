"""Ontology references, backing providers and memoized id/label dictionaries."""

from phenotab.ontology.bidict import OntologyBiDict
from phenotab.ontology.factory import CachedOntologyFactory, ProviderBuilder
from phenotab.ontology.providers import (
    BioPortalOntologyProvider,
    InMemoryOntologyProvider,
    OlsOntologyProvider,
    OntologyProvider,
    iri_to_curie,
    normalize_key,
)
from phenotab.ontology.references import KnownPrefixes, OntologyRef, id_pattern

__all__ = [
    "BioPortalOntologyProvider",
    "CachedOntologyFactory",
    "InMemoryOntologyProvider",
    "KnownPrefixes",
    "OlsOntologyProvider",
    "OntologyBiDict",
    "OntologyProvider",
    "OntologyRef",
    "ProviderBuilder",
    "id_pattern",
    "iri_to_curie",
    "normalize_key",
]
