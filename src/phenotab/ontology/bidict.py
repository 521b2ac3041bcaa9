"""Bidirectional id <-> label resolution for one ontology version.

Both directions check the lexical form of their input before touching
the provider. An id that does not match the ontology's grammar, or a
CURIE-shaped label such as ``OMIM:ABC``, is rejected synchronously with
InvalidIdError and no provider call is made. Successful lookups are
memoized per direction in a SingleFlightCache; failures are raised as
OntologyLookupError for that key and retried on the next request.
"""

from __future__ import annotations

from collections.abc import Callable

from phenotab.caching import CacheStats, SingleFlightCache
from phenotab.errors import InvalidIdError, OntologyLookupError
from phenotab.ontology.providers import OntologyProvider, normalize_key
from phenotab.ontology.references import KnownPrefixes, OntologyRef, looks_like_curie

_KNOWN = frozenset(p.value for p in KnownPrefixes)


class OntologyBiDict:
    """Memoized id <-> label dictionary backed by an OntologyProvider."""

    def __init__(self, ref: OntologyRef, provider: OntologyProvider) -> None:
        self.ref = ref
        self._provider = provider
        self._labels: SingleFlightCache[str, str] = SingleFlightCache(name=f"{ref} labels")
        self._ids: SingleFlightCache[str, str] = SingleFlightCache(name=f"{ref} ids")

    def is_id(self, value: str) -> bool:
        return self.ref.is_valid_id(value)

    def _claims_id_form(self, value: str) -> bool:
        if not looks_like_curie(value):
            return False
        prefix = value.split(":", 1)[0].upper()
        return prefix == self.ref.prefix or prefix in _KNOWN

    def validate_id(self, term_id: str) -> str:
        """Return the trimmed id, or raise InvalidIdError without side effects."""
        candidate = term_id.strip()
        if not self.is_id(candidate):
            pattern = self.ref.id_pattern.pattern
            raise InvalidIdError(term_id, f"not a valid {self.ref.prefix} id (expected {pattern})")
        return candidate

    def get_label(self, term_id: str) -> str:
        """Primary label of ``term_id``.

        Raises:
            InvalidIdError: ``term_id`` does not match the id grammar.
            OntologyLookupError: The provider could not resolve it.
        """
        candidate = self.validate_id(term_id)
        return self._labels.get_or_compute(
            candidate, lambda: self._call(self._provider.fetch_label, candidate)
        )

    def get_id(self, label_or_synonym: str) -> str:
        """Canonical id for a label, synonym or id.

        A value that already is a valid id is returned as-is. Labels are
        matched case-insensitively after trimming.

        Raises:
            InvalidIdError: The value is CURIE-shaped but malformed.
            OntologyLookupError: Empty input, or the provider could not
                resolve it.
        """
        text = label_or_synonym.strip()
        if not text:
            raise OntologyLookupError(label_or_synonym, "empty label")
        if self._claims_id_form(text):
            return self.validate_id(text)
        key = normalize_key(text)
        return self._ids.get_or_compute(key, lambda: self._call(self._provider.fetch_id, text))

    def get(self, id_or_label: str) -> str:
        """Label for ids, id for everything else."""
        if self.is_id(id_or_label):
            return self.get_label(id_or_label)
        return self.get_id(id_or_label)

    def _call(self, fetch: Callable[[str], str], key: str) -> str:
        try:
            return fetch(key)
        except OntologyLookupError:
            raise
        except Exception as exc:
            raise OntologyLookupError(key, f"{type(exc).__name__}: {exc}") from exc

    @property
    def stats(self) -> dict[str, CacheStats]:
        return {"labels": self._labels.stats, "ids": self._ids.stats}

    def __repr__(self) -> str:
        return f"OntologyBiDict({self.ref}, labels={len(self._labels)}, ids={len(self._ids)})"
