"""Tests for the in-memory, obographs and HTTP ontology providers.

HTTP providers are exercised against a mocked ``requests.Session``; no
network access is needed.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests

from phenotab.errors import ConfigurationError, OntologyLookupError
from phenotab.ontology.providers import (
    BIOPORTAL_API_KEY_ENV,
    BioPortalOntologyProvider,
    InMemoryOntologyProvider,
    OlsOntologyProvider,
    iri_to_curie,
    normalize_key,
)
from phenotab.ontology.references import OntologyRef


def _response(payload: object, status: int = 200) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.url = "https://example.org/api"
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status}")
    return response


def _session(*responses: object) -> MagicMock:
    session = MagicMock()
    session.get.side_effect = list(responses)
    return session


@pytest.fixture()
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    """Skip tenacity's exponential backoff."""
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)


class TestHelpers:
    def test_normalize_key(self) -> None:
        assert normalize_key("  Short\tSTATURE ") == "short stature"

    @pytest.mark.parametrize(
        ("iri", "expected"),
        [
            ("http://purl.obolibrary.org/obo/HP_0001250", "HP:0001250"),
            ("http://purl.obolibrary.org/obo/MONDO_0005180/", "MONDO:0005180"),
            ("HP:0001250", "HP:0001250"),
        ],
    )
    def test_iri_to_curie(self, iri: str, expected: str) -> None:
        assert iri_to_curie(iri) == expected


class TestInMemoryProvider:
    def test_lookups(self) -> None:
        provider = InMemoryOntologyProvider(
            OntologyRef.hp(), {"HP:0001250": "Seizure"}, {"Fits": "HP:0001250"}
        )
        assert provider.fetch_label("HP:0001250") == "Seizure"
        assert provider.fetch_id("FITS") == "HP:0001250"
        assert len(provider) == 1

    def test_unknown_keys(self) -> None:
        provider = InMemoryOntologyProvider(OntologyRef.hp(), {})
        with pytest.raises(OntologyLookupError):
            provider.fetch_label("HP:0001250")
        with pytest.raises(OntologyLookupError):
            provider.fetch_id("Seizure")


class TestObographs:
    def _write(self, tmp_path: Path) -> Path:
        document = {
            "graphs": [
                {
                    "nodes": [
                        {
                            "id": "http://purl.obolibrary.org/obo/HP_0001250",
                            "lbl": "Seizure",
                            "meta": {"synonyms": [{"pred": "hasExactSynonym", "val": "Fits"}]},
                        },
                        {
                            "id": "http://purl.obolibrary.org/obo/HP_0000001",
                            "lbl": "All",
                        },
                        {
                            "id": "http://purl.obolibrary.org/obo/HP_0009999",
                            "lbl": "Old term",
                            "meta": {"deprecated": True},
                        },
                        {
                            "id": "http://purl.obolibrary.org/obo/GO_0008150",
                            "lbl": "biological_process",
                        },
                    ]
                }
            ]
        }
        path = tmp_path / "hp.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    def test_loads_terms_and_synonyms(self, tmp_path: Path) -> None:
        provider = InMemoryOntologyProvider.from_obographs(OntologyRef.hp(), self._write(tmp_path))
        assert len(provider) == 2
        assert provider.fetch_id("fits") == "HP:0001250"
        assert provider.fetch_label("HP:0000001") == "All"

    def test_skips_deprecated_and_foreign_nodes(self, tmp_path: Path) -> None:
        provider = InMemoryOntologyProvider.from_obographs(OntologyRef.hp(), self._write(tmp_path))
        with pytest.raises(OntologyLookupError):
            provider.fetch_label("HP:0009999")
        with pytest.raises(OntologyLookupError):
            provider.fetch_id("biological_process")

    def test_unreadable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Cannot read ontology file"):
            InMemoryOntologyProvider.from_obographs(OntologyRef.hp(), path)
        with pytest.raises(ConfigurationError):
            InMemoryOntologyProvider.from_obographs(OntologyRef.hp(), tmp_path / "absent.json")


class TestOlsProvider:
    def test_fetch_label(self) -> None:
        session = _session(
            _response({"_embedded": {"terms": [{"obo_id": "HP:0001250", "label": "Seizure"}]}})
        )
        provider = OlsOntologyProvider(OntologyRef.hp(), session=session, timeout=3.0)
        assert provider.fetch_label("HP:0001250") == "Seizure"
        args, kwargs = session.get.call_args
        assert args[0].endswith("/ontologies/hp/terms")
        assert kwargs["params"] == {"obo_id": "HP:0001250"}
        assert kwargs["timeout"] == 3.0

    def test_fetch_id_filters_foreign_prefixes(self) -> None:
        session = _session(
            _response(
                {
                    "response": {
                        "docs": [
                            {"obo_id": "MP:0001234", "label": "seizures"},
                            {"obo_id": "HP:0001250", "label": "Seizure"},
                        ]
                    }
                }
            )
        )
        provider = OlsOntologyProvider(OntologyRef.hp(), session=session)
        assert provider.fetch_id("Seizure") == "HP:0001250"
        assert session.get.call_args.kwargs["params"]["ontology"] == "hp"

    def test_unknown_label(self) -> None:
        provider = OlsOntologyProvider(
            OntologyRef.hp(), session=_session(_response({"response": {"docs": []}}))
        )
        with pytest.raises(OntologyLookupError, match="no HP term"):
            provider.fetch_id("Nonsense")

    def test_retries_transient_status(self, no_sleep: None) -> None:
        session = _session(
            _response({}, status=503),
            requests.ConnectionError("reset"),
            _response({"_embedded": {"terms": [{"obo_id": "HP:0001250", "label": "Seizure"}]}}),
        )
        provider = OlsOntologyProvider(OntologyRef.hp(), session=session)
        assert provider.fetch_label("HP:0001250") == "Seizure"
        assert session.get.call_count == 3

    def test_gives_up_after_three_attempts(self, no_sleep: None) -> None:
        session = _session(*[requests.Timeout("slow")] * 3)
        provider = OlsOntologyProvider(OntologyRef.hp(), session=session)
        with pytest.raises(OntologyLookupError, match="slow") as exc_info:
            provider.fetch_label("HP:0001250")
        assert exc_info.value.key == "HP:0001250"
        assert session.get.call_count == 3

    def test_client_error_not_retried(self) -> None:
        session = _session(_response({}, status=404))
        provider = OlsOntologyProvider(OntologyRef.hp(), session=session)
        with pytest.raises(OntologyLookupError, match="404"):
            provider.fetch_label("HP:0001250")
        assert session.get.call_count == 1

    def test_invalid_json(self) -> None:
        response = _response({})
        response.json.side_effect = ValueError("Expecting value")
        provider = OlsOntologyProvider(OntologyRef.hp(), session=_session(response))
        with pytest.raises(OntologyLookupError, match="Expecting value"):
            provider.fetch_label("HP:0001250")


class TestBioPortalProvider:
    def test_requires_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv(BIOPORTAL_API_KEY_ENV, raising=False)
        with pytest.raises(ConfigurationError, match=BIOPORTAL_API_KEY_ENV):
            BioPortalOntologyProvider(OntologyRef.omim(), session=MagicMock())

    def test_fetch_id_from_bioportal_iri(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(BIOPORTAL_API_KEY_ENV, "env-key")
        session = _session(
            _response(
                {
                    "collection": [
                        {
                            "@id": "http://purl.bioontology.org/ontology/OMIM/147920",
                            "prefLabel": "KABUKI SYNDROME 1",
                        }
                    ]
                }
            )
        )
        provider = BioPortalOntologyProvider(OntologyRef.omim(), session=session)
        assert provider.fetch_id("Kabuki syndrome 1") == "OMIM:147920"
        params = session.get.call_args.kwargs["params"]
        assert params["apikey"] == "env-key"
        assert params["ontologies"] == "OMIM"

    def test_fetch_id_skips_foreign_hits(self) -> None:
        session = _session(
            _response(
                {
                    "collection": [
                        {"@id": "http://purl.bioontology.org/ontology/MESH/D009069"},
                        {"@id": "http://purl.bioontology.org/ontology/OMIM/168600"},
                    ]
                }
            )
        )
        provider = BioPortalOntologyProvider(OntologyRef.omim(), api_key="k", session=session)
        assert provider.fetch_id("Parkinson disease") == "OMIM:168600"

    def test_fetch_label_reads_class_resource(self) -> None:
        session = _session(
            _response(
                {
                    "@id": "http://purl.bioontology.org/ontology/OMIM/147920",
                    "prefLabel": "KABUKI SYNDROME 1",
                }
            )
        )
        provider = BioPortalOntologyProvider(OntologyRef.omim(), api_key="k", session=session)
        assert provider.fetch_label("OMIM:147920") == "KABUKI SYNDROME 1"
        url = session.get.call_args.args[0]
        assert url.endswith(
            "/ontologies/OMIM/classes/http%3A%2F%2Fpurl.bioontology.org%2Fontology%2FOMIM%2F147920"
        )

    def test_unknown_class_is_lookup_error(self) -> None:
        session = _session(_response({}, status=404))
        provider = BioPortalOntologyProvider(OntologyRef.omim(), api_key="k", session=session)
        with pytest.raises(OntologyLookupError, match="OMIM:999999"):
            provider.fetch_label("OMIM:999999")

    def test_to_curie(self) -> None:
        provider = BioPortalOntologyProvider(OntologyRef.omim(), api_key="k", session=MagicMock())
        assert provider.to_curie("http://purl.bioontology.org/ontology/OMIM/147920") == (
            "OMIM:147920"
        )
        assert provider.to_curie("http://purl.obolibrary.org/obo/HP_0001250") == "HP:0001250"
