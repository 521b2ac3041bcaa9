"""Ontology references and identifier grammars."""

from __future__ import annotations

import re
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

LATEST = "latest"


class KnownPrefixes(StrEnum):
    """Ontologies and vocabularies with a dedicated id grammar."""

    HP = "HP"
    MONDO = "MONDO"
    OMIM = "OMIM"
    ORPHA = "ORPHA"
    HGNC = "HGNC"
    UO = "UO"
    LOINC = "LOINC"


_ID_PATTERNS: dict[str, re.Pattern[str]] = {
    KnownPrefixes.HP: re.compile(r"HP:\d{7}"),
    KnownPrefixes.MONDO: re.compile(r"MONDO:\d{7}"),
    KnownPrefixes.OMIM: re.compile(r"OMIM:\d{6}"),
    KnownPrefixes.ORPHA: re.compile(r"ORPHA:\d+"),
    KnownPrefixes.HGNC: re.compile(r"HGNC:\d+"),
    KnownPrefixes.UO: re.compile(r"UO:\d{7}"),
    KnownPrefixes.LOINC: re.compile(r"LOINC:\d{1,7}-\d"),
}


def id_pattern(prefix: str) -> re.Pattern[str]:
    """Return the full-match grammar for ids of ``prefix``.

    Unknown prefixes get a generic ``PREFIX:local_id`` grammar.
    """
    normalized = prefix.strip().upper()
    if normalized in _ID_PATTERNS:
        return _ID_PATTERNS[normalized]
    return re.compile(re.escape(normalized) + r":[A-Za-z0-9_.-]+")


def looks_like_curie(value: str) -> bool:
    """True when ``value`` has the ``PREFIX:local`` shape of any ontology."""
    return re.fullmatch(r"[A-Za-z][A-Za-z0-9_]*:\S+", value.strip()) is not None


class OntologyRef(BaseModel):
    """An ontology or vocabulary plus the version to resolve against."""

    model_config = ConfigDict(frozen=True)

    prefix: str = Field(..., description="Ontology prefix, upper-case (e.g. 'HP')")
    version: str = Field(default=LATEST, description="Release version or 'latest'")

    @field_validator("prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        normalized = value.strip().upper()
        if not normalized:
            raise ValueError("Ontology prefix must not be empty")
        return normalized

    @field_validator("version")
    @classmethod
    def _default_version(cls, value: str) -> str:
        return value.strip() or LATEST

    @classmethod
    def from_prefix(cls, text: str) -> OntologyRef:
        """Parse ``"hp"`` or ``"HP@2024-04-26"`` (case-insensitive prefix)."""
        prefix, _, version = text.partition("@")
        return cls(prefix=prefix, version=version or LATEST)

    @classmethod
    def hp(cls, version: str = LATEST) -> OntologyRef:
        return cls(prefix=KnownPrefixes.HP, version=version)

    @classmethod
    def mondo(cls, version: str = LATEST) -> OntologyRef:
        return cls(prefix=KnownPrefixes.MONDO, version=version)

    @classmethod
    def omim(cls, version: str = LATEST) -> OntologyRef:
        return cls(prefix=KnownPrefixes.OMIM, version=version)

    @classmethod
    def hgnc(cls, version: str = LATEST) -> OntologyRef:
        return cls(prefix=KnownPrefixes.HGNC, version=version)

    @property
    def id_pattern(self) -> re.Pattern[str]:
        return id_pattern(self.prefix)

    def is_valid_id(self, value: str) -> bool:
        """True when ``value`` matches this ontology's id grammar exactly."""
        return self.id_pattern.fullmatch(value.strip()) is not None

    def __str__(self) -> str:
        if self.version == LATEST:
            return self.prefix
        return f"{self.prefix}@{self.version}"
