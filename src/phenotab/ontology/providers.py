"""Backing providers behind OntologyBiDict.

A provider answers two questions for one ontology: what is the label of
this id, and which id does this label or synonym name. Providers do no
caching of their own; memoization and single-flight deduplication live
in OntologyBiDict. Every failure is raised as OntologyLookupError scoped
to the requested key.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any
from urllib.parse import quote

import requests
from loguru import logger
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from phenotab.errors import ConfigurationError, OntologyLookupError
from phenotab.ontology.references import OntologyRef

OLS_BASE_URL = "https://www.ebi.ac.uk/ols4/api"
BIOPORTAL_BASE_URL = "https://data.bioontology.org"
BIOPORTAL_API_KEY_ENV = "BIOPORTAL_API_KEY"
BIOPORTAL_IRI_BASE = "http://purl.bioontology.org/ontology"

_TRANSIENT_STATUS = frozenset({429, 500, 502, 503, 504})


def normalize_key(text: str) -> str:
    """Lookup key for labels and synonyms: whitespace-collapsed and case-folded."""
    return " ".join(text.split()).casefold()


def iri_to_curie(iri: str) -> str:
    """Convert an OBO PURL such as ``.../obo/HP_0001250`` to ``HP:0001250``.

    Values that are already CURIEs are returned unchanged.
    """
    if "://" not in iri:
        return iri
    local = iri.rstrip("/").rsplit("/", 1)[-1]
    if "#" in local:
        local = local.rsplit("#", 1)[-1]
    prefix, sep, rest = local.partition("_")
    if not sep:
        return local
    return f"{prefix}:{rest}"


class OntologyProvider(ABC):
    """Fetches labels and ids for one ontology."""

    def __init__(self, ref: OntologyRef) -> None:
        self.ref = ref

    @abstractmethod
    def fetch_label(self, term_id: str) -> str:
        """Return the primary label of ``term_id``.

        Raises:
            OntologyLookupError: Unknown id or backend failure.
        """
        ...

    @abstractmethod
    def fetch_id(self, label: str) -> str:
        """Return the canonical id named by ``label`` or one of its synonyms.

        Raises:
            OntologyLookupError: Unknown label or backend failure.
        """
        ...


class InMemoryOntologyProvider(OntologyProvider):
    """Provider over in-memory term tables.

    Used for offline runs, for pre-downloaded obographs JSON files and as
    the test double for the HTTP providers.
    """

    def __init__(
        self,
        ref: OntologyRef,
        labels: dict[str, str],
        synonyms: dict[str, str] | None = None,
    ) -> None:
        super().__init__(ref)
        self._labels = dict(labels)
        self._ids: dict[str, str] = {}
        for term_id, label in self._labels.items():
            self._ids.setdefault(normalize_key(label), term_id)
        for synonym, term_id in (synonyms or {}).items():
            self._ids.setdefault(normalize_key(synonym), term_id)

    @classmethod
    def from_obographs(cls, ref: OntologyRef, path: Path) -> InMemoryOntologyProvider:
        """Load terms and exact/related synonyms from an obographs JSON file.

        Only nodes whose id carries ``ref.prefix`` are kept; deprecated
        nodes are skipped.
        """
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Cannot read ontology file {path}: {exc}"
            raise ConfigurationError(msg) from exc

        labels: dict[str, str] = {}
        synonyms: dict[str, str] = {}
        for graph in document.get("graphs", []):
            for node in graph.get("nodes", []):
                term_id = iri_to_curie(node.get("id", ""))
                label = node.get("lbl")
                meta = node.get("meta") or {}
                if not label or not term_id.startswith(f"{ref.prefix}:"):
                    continue
                if meta.get("deprecated"):
                    continue
                labels[term_id] = label
                for synonym in meta.get("synonyms", []):
                    if synonym.get("val"):
                        synonyms[synonym["val"]] = term_id

        logger.info(
            "Loaded {} terms and {} synonyms for {} from {}",
            len(labels),
            len(synonyms),
            ref,
            path.name,
        )
        return cls(ref, labels, synonyms)

    def fetch_label(self, term_id: str) -> str:
        label = self._labels.get(term_id.strip())
        if label is None:
            raise OntologyLookupError(term_id, f"unknown {self.ref.prefix} id")
        return label

    def fetch_id(self, label: str) -> str:
        term_id = self._ids.get(normalize_key(label))
        if term_id is None:
            raise OntologyLookupError(label, f"no {self.ref.prefix} term with this label")
        return term_id

    def __len__(self) -> int:
        return len(self._labels)


class TransientHTTPError(requests.HTTPError):
    """Retryable HTTP status (rate limit or server error)."""


class HttpOntologyProvider(OntologyProvider):
    """Shared request handling for REST-backed providers.

    GET requests carry a timeout and are retried on connection errors,
    timeouts and transient statuses. Once retries are exhausted the
    failure is raised as OntologyLookupError for the requested key.
    """

    def __init__(
        self,
        ref: OntologyRef,
        *,
        base_url: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(ref)
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=10),
        retry=retry_if_exception_type(
            (
                requests.ConnectionError,
                requests.Timeout,
                TransientHTTPError,
            )
        ),
        reraise=True,
    )
    def _get_json(self, path: str, params: dict[str, str]) -> Any:
        response = self._session.get(
            f"{self._base_url}/{path.lstrip('/')}",
            params=params,
            timeout=self._timeout,
        )
        if response.status_code in _TRANSIENT_STATUS:
            msg = f"HTTP {response.status_code} from {response.url}"
            raise TransientHTTPError(msg, response=response)
        response.raise_for_status()
        return response.json()

    def _request(self, key: str, path: str, params: dict[str, str]) -> Any:
        try:
            return self._get_json(path, params)
        except (requests.RequestException, ValueError) as exc:
            logger.warning("{} lookup for '{}' failed: {}", self.ref, key, exc)
            raise OntologyLookupError(key, str(exc)) from exc


class OlsOntologyProvider(HttpOntologyProvider):
    """EBI Ontology Lookup Service (OLS4) REST API."""

    def __init__(
        self,
        ref: OntologyRef,
        *,
        base_url: str = OLS_BASE_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(ref, base_url=base_url, timeout=timeout, session=session)
        self._ontology = ref.prefix.lower()

    def fetch_label(self, term_id: str) -> str:
        payload = self._request(
            term_id,
            f"ontologies/{self._ontology}/terms",
            {"obo_id": term_id},
        )
        terms = (payload.get("_embedded") or {}).get("terms") or []
        for term in terms:
            if term.get("obo_id") == term_id and term.get("label"):
                return term["label"]
        raise OntologyLookupError(term_id, f"unknown {self.ref.prefix} id")

    def fetch_id(self, label: str) -> str:
        payload = self._request(
            label,
            "search",
            {
                "q": label,
                "ontology": self._ontology,
                "exact": "true",
                "queryFields": "label,synonym",
                "rows": "10",
            },
        )
        wanted = f"{self.ref.prefix}:"
        for doc in (payload.get("response") or {}).get("docs") or []:
            obo_id = doc.get("obo_id") or ""
            if obo_id.startswith(wanted):
                return obo_id
        raise OntologyLookupError(label, f"no {self.ref.prefix} term with this label")


class BioPortalOntologyProvider(HttpOntologyProvider):
    """NCBO BioPortal REST API. Requires an API key.

    Terms are addressed by BioPortal IRIs
    (``http://purl.bioontology.org/ontology/{ACRONYM}/{local id}``), the
    form OMIM classes are published under.
    """

    def __init__(
        self,
        ref: OntologyRef,
        *,
        api_key: str | None = None,
        base_url: str = BIOPORTAL_BASE_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(ref, base_url=base_url, timeout=timeout, session=session)
        self._iri_prefix = f"{BIOPORTAL_IRI_BASE}/{ref.prefix}/"
        self._api_key = api_key or os.environ.get(BIOPORTAL_API_KEY_ENV)
        if not self._api_key:
            msg = (
                f"BioPortal provider for {ref} needs an API key "
                f"(config credentials or {BIOPORTAL_API_KEY_ENV})"
            )
            raise ConfigurationError(msg)

    def to_curie(self, iri: str) -> str:
        """Map a hit's ``@id`` to a CURIE.

        BioPortal-minted IRIs (``.../ontology/OMIM/147920``) carry the bare
        local id after the acronym; OBO PURLs go through iri_to_curie.
        """
        if iri.startswith(self._iri_prefix):
            local = iri[len(self._iri_prefix) :].strip("/")
            if local:
                return f"{self.ref.prefix}:{local}"
        return iri_to_curie(iri)

    def _search(self, key: str, query: str) -> list[dict[str, Any]]:
        payload = self._request(
            key,
            "search",
            {
                "q": query,
                "ontologies": self.ref.prefix,
                "require_exact_match": "true",
                "apikey": self._api_key,
            },
        )
        return payload.get("collection") or []

    def fetch_label(self, term_id: str) -> str:
        """Read the class resource for ``term_id`` by its BioPortal IRI."""
        iri = self._iri_prefix + term_id.partition(":")[2]
        payload = self._request(
            term_id,
            f"ontologies/{self.ref.prefix}/classes/{quote(iri, safe='')}",
            {"apikey": self._api_key},
        )
        label = payload.get("prefLabel") if isinstance(payload, dict) else None
        if label:
            return label
        raise OntologyLookupError(term_id, f"unknown {self.ref.prefix} id")

    def fetch_id(self, label: str) -> str:
        wanted = f"{self.ref.prefix}:"
        for hit in self._search(label, label):
            curie = self.to_curie(hit.get("@id", ""))
            if curie.startswith(wanted):
                return curie
        raise OntologyLookupError(label, f"no {self.ref.prefix} term with this label")
