"""Shared registry of OntologyBiDicts keyed by OntologyRef.

The factory is an ordinary object passed explicitly to whatever needs
ontology lookups (strategies, the strategy registry, the orchestrator).
There is no module-level instance; tests build their own factory around
a mock provider.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from threading import Lock

from loguru import logger

from phenotab.ontology.bidict import OntologyBiDict
from phenotab.ontology.providers import OntologyProvider
from phenotab.ontology.references import OntologyRef

ProviderBuilder = Callable[[OntologyRef], OntologyProvider]


class CachedOntologyFactory:
    """Builds one OntologyBiDict per (prefix, version) and hands out the same instance.

    Usage::

        factory = CachedOntologyFactory(lambda ref: OlsOntologyProvider(ref))
        hp = factory.get_bidict("HP")
        hp is factory.get_bidict(OntologyRef.hp())  # True
    """

    def __init__(self, provider_builder: ProviderBuilder) -> None:
        self._provider_builder = provider_builder
        self._bidicts: dict[OntologyRef, OntologyBiDict] = {}
        self._lock = Lock()

    def get_bidict(self, ref: OntologyRef | str) -> OntologyBiDict:
        """Return the shared bidict for ``ref``, building it on first request."""
        if isinstance(ref, str):
            ref = OntologyRef.from_prefix(ref)
        with self._lock:
            bidict = self._bidicts.get(ref)
            if bidict is None:
                bidict = OntologyBiDict(ref, self._provider_builder(ref))
                self._bidicts[ref] = bidict
                logger.info("Created ontology dictionary for {}", ref)
            return bidict

    def prepopulate(self, refs: Iterable[OntologyRef | str]) -> list[OntologyBiDict]:
        """Build bidicts for ``refs`` up front."""
        return [self.get_bidict(ref) for ref in refs]

    @property
    def refs(self) -> list[OntologyRef]:
        with self._lock:
            return list(self._bidicts)

    def __contains__(self, ref: object) -> bool:
        if isinstance(ref, str):
            ref = OntologyRef.from_prefix(ref)
        with self._lock:
            return ref in self._bidicts

    def __len__(self) -> int:
        with self._lock:
            return len(self._bidicts)
