"""Semantic column roles.

A Context names what a column header or its cell values mean. The set of
kinds is closed: every consumer that branches on a Context matches all
kinds explicitly, so adding a kind means revisiting ``multiplicity``,
``ontology_prefix`` and the collector.

Contexts are frozen pydantic models, so two contexts with the same kind
and payload compare equal and hash identically, which lets them be used
as dictionary keys when aggregating values.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, assert_never

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TimeElementType(StrEnum):
    """How a timed event is expressed in the source data."""

    AGE = "age"
    DATE = "date"


class Boundary(StrEnum):
    """Which end of a reference range a value describes."""

    START = "start"
    END = "end"


class ContextKind(StrEnum):
    """Payload-free discriminator of a Context."""

    # individual
    SUBJECT_ID = "subject_id"
    SUBJECT_SEX = "subject_sex"
    DATE_OF_BIRTH = "date_of_birth"
    VITAL_STATUS = "vital_status"
    LAST_ENCOUNTER = "last_encounter"
    TIME_OF_DEATH = "time_of_death"
    CAUSE_OF_DEATH = "cause_of_death"
    SURVIVAL_TIME_DAYS = "survival_time_days"

    # ontologies and databases
    HPO_LABEL_OR_ID = "hpo_label_or_id"
    DISEASE_LABEL_OR_ID = "disease_label_or_id"
    HGNC_SYMBOL_OR_ID = "hgnc_symbol_or_id"

    # variants
    HGVS = "hgvs"

    # measurements
    QUANTITATIVE_MEASUREMENT = "quantitative_measurement"
    QUALITATIVE_MEASUREMENT = "qualitative_measurement"
    REFERENCE_RANGE = "reference_range"

    # medical actions
    TREATMENT_TARGET = "treatment_target"
    TREATMENT_INTENT = "treatment_intent"
    RESPONSE_TO_TREATMENT = "response_to_treatment"
    TREATMENT_TERMINATION_REASON = "treatment_termination_reason"
    PROCEDURE_LABEL_OR_ID = "procedure_label_or_id"
    PROCEDURE_BODY_SITE = "procedure_body_site"
    TIME_OF_PROCEDURE = "time_of_procedure"

    # other
    OBSERVATION_STATUS = "observation_status"
    MULTI_HPO_ID = "multi_hpo_id"
    ONSET = "onset"

    NONE = "none"


class Multiplicity(StrEnum):
    """How many values of a context one subject may carry.

    SINGLE: one subject-level value (conflicts are diagnosed).
    MULTI: any number of values, kept as observations.
    IGNORED: untagged, never collected.
    """

    SINGLE = "single"
    MULTI = "multi"
    IGNORED = "ignored"


_TIMED_KINDS = frozenset(
    {
        ContextKind.LAST_ENCOUNTER,
        ContextKind.TIME_OF_DEATH,
        ContextKind.TIME_OF_PROCEDURE,
        ContextKind.ONSET,
    }
)

_PAYLOAD_FIELDS: dict[ContextKind, frozenset[str]] = {
    **{kind: frozenset({"time_element"}) for kind in _TIMED_KINDS},
    ContextKind.REFERENCE_RANGE: frozenset({"boundary"}),
    ContextKind.QUANTITATIVE_MEASUREMENT: frozenset({"assay_id", "unit_ontology_id"}),
    ContextKind.QUALITATIVE_MEASUREMENT: frozenset({"assay_id"}),
}

_ALL_PAYLOAD_FIELDS = ("time_element", "boundary", "assay_id", "unit_ontology_id")


class Context(BaseModel):
    """Semantic tag for a column header or its values.

    Accepts a bare kind string when parsed from configuration, e.g.
    ``"subject_sex"``, or a mapping with payload, e.g.
    ``{"kind": "onset", "time_element": "age"}``.
    """

    model_config = ConfigDict(frozen=True)

    kind: ContextKind = Field(default=ContextKind.NONE, description="Context discriminator")
    time_element: TimeElementType | None = Field(
        default=None, description="Age or date, for timed kinds"
    )
    boundary: Boundary | None = Field(default=None, description="Range end, for reference_range")
    assay_id: str | None = Field(default=None, description="Assay id (e.g. a LOINC code)")
    unit_ontology_id: str | None = Field(default=None, description="Unit ontology id (e.g. UO)")

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_kind(cls, data: Any) -> Any:
        if isinstance(data, (str, ContextKind)):
            return {"kind": data}
        return data

    @model_validator(mode="after")
    def _check_payload(self) -> Context:
        required = _PAYLOAD_FIELDS.get(self.kind, frozenset())
        for name in _ALL_PAYLOAD_FIELDS:
            value = getattr(self, name)
            if name in required and value is None:
                msg = f"Context '{self.kind}' requires '{name}'"
                raise ValueError(msg)
            if name not in required and value is not None:
                msg = f"Context '{self.kind}' does not accept '{name}'"
                raise ValueError(msg)
        return self

    # --- constructors -----------------------------------------------------

    @classmethod
    def of(cls, kind: ContextKind | str) -> Context:
        """Build a payload-free context."""
        return cls(kind=ContextKind(kind))

    @classmethod
    def onset(cls, time_element: TimeElementType) -> Context:
        return cls(kind=ContextKind.ONSET, time_element=time_element)

    @classmethod
    def last_encounter(cls, time_element: TimeElementType) -> Context:
        return cls(kind=ContextKind.LAST_ENCOUNTER, time_element=time_element)

    @classmethod
    def time_of_death(cls, time_element: TimeElementType) -> Context:
        return cls(kind=ContextKind.TIME_OF_DEATH, time_element=time_element)

    @classmethod
    def time_of_procedure(cls, time_element: TimeElementType) -> Context:
        return cls(kind=ContextKind.TIME_OF_PROCEDURE, time_element=time_element)

    @classmethod
    def quantitative_measurement(cls, assay_id: str, unit_ontology_id: str) -> Context:
        return cls(
            kind=ContextKind.QUANTITATIVE_MEASUREMENT,
            assay_id=assay_id,
            unit_ontology_id=unit_ontology_id,
        )

    @classmethod
    def qualitative_measurement(cls, assay_id: str) -> Context:
        return cls(kind=ContextKind.QUALITATIVE_MEASUREMENT, assay_id=assay_id)

    @classmethod
    def reference_range(cls, boundary: Boundary) -> Context:
        return cls(kind=ContextKind.REFERENCE_RANGE, boundary=boundary)

    # --- derived properties -------------------------------------------------

    @property
    def is_none(self) -> bool:
        return self.kind == ContextKind.NONE

    @property
    def is_age(self) -> bool:
        """True for timed contexts whose values are ages."""
        return self.time_element == TimeElementType.AGE

    @property
    def key(self) -> str:
        """Stable string form, used as a field name in output records."""
        parts = [self.kind.value]
        for name in _ALL_PAYLOAD_FIELDS:
            value = getattr(self, name)
            if value is not None:
                parts.append(str(value))
        return ":".join(parts)

    @property
    def multiplicity(self) -> Multiplicity:
        match self.kind:
            case (
                ContextKind.SUBJECT_ID
                | ContextKind.SUBJECT_SEX
                | ContextKind.DATE_OF_BIRTH
                | ContextKind.VITAL_STATUS
                | ContextKind.LAST_ENCOUNTER
                | ContextKind.TIME_OF_DEATH
                | ContextKind.CAUSE_OF_DEATH
                | ContextKind.SURVIVAL_TIME_DAYS
            ):
                return Multiplicity.SINGLE
            case (
                ContextKind.HPO_LABEL_OR_ID
                | ContextKind.DISEASE_LABEL_OR_ID
                | ContextKind.HGNC_SYMBOL_OR_ID
                | ContextKind.HGVS
                | ContextKind.QUANTITATIVE_MEASUREMENT
                | ContextKind.QUALITATIVE_MEASUREMENT
                | ContextKind.REFERENCE_RANGE
                | ContextKind.TREATMENT_TARGET
                | ContextKind.TREATMENT_INTENT
                | ContextKind.RESPONSE_TO_TREATMENT
                | ContextKind.TREATMENT_TERMINATION_REASON
                | ContextKind.PROCEDURE_LABEL_OR_ID
                | ContextKind.PROCEDURE_BODY_SITE
                | ContextKind.TIME_OF_PROCEDURE
                | ContextKind.OBSERVATION_STATUS
                | ContextKind.MULTI_HPO_ID
                | ContextKind.ONSET
            ):
                return Multiplicity.MULTI
            case ContextKind.NONE:
                return Multiplicity.IGNORED
            case _ as unreachable:
                assert_never(unreachable)

    @property
    def ontology_prefix(self) -> str | None:
        """Ontology whose ids this context's values are expected to carry."""
        match self.kind:
            case ContextKind.HPO_LABEL_OR_ID | ContextKind.MULTI_HPO_ID:
                return "HP"
            case ContextKind.HGNC_SYMBOL_OR_ID:
                return "HGNC"
            case (
                ContextKind.SUBJECT_ID
                | ContextKind.SUBJECT_SEX
                | ContextKind.DATE_OF_BIRTH
                | ContextKind.VITAL_STATUS
                | ContextKind.LAST_ENCOUNTER
                | ContextKind.TIME_OF_DEATH
                | ContextKind.CAUSE_OF_DEATH
                | ContextKind.SURVIVAL_TIME_DAYS
                | ContextKind.DISEASE_LABEL_OR_ID
                | ContextKind.HGVS
                | ContextKind.QUANTITATIVE_MEASUREMENT
                | ContextKind.QUALITATIVE_MEASUREMENT
                | ContextKind.REFERENCE_RANGE
                | ContextKind.TREATMENT_TARGET
                | ContextKind.TREATMENT_INTENT
                | ContextKind.RESPONSE_TO_TREATMENT
                | ContextKind.TREATMENT_TERMINATION_REASON
                | ContextKind.PROCEDURE_LABEL_OR_ID
                | ContextKind.PROCEDURE_BODY_SITE
                | ContextKind.TIME_OF_PROCEDURE
                | ContextKind.OBSERVATION_STATUS
                | ContextKind.ONSET
                | ContextKind.NONE
            ):
                return None
            case _ as unreachable:
                assert_never(unreachable)

    def __str__(self) -> str:
        return self.key


NONE = Context.of(ContextKind.NONE)
SUBJECT_ID = Context.of(ContextKind.SUBJECT_ID)
SUBJECT_SEX = Context.of(ContextKind.SUBJECT_SEX)
VITAL_STATUS = Context.of(ContextKind.VITAL_STATUS)
HPO_LABEL_OR_ID = Context.of(ContextKind.HPO_LABEL_OR_ID)
DISEASE_LABEL_OR_ID = Context.of(ContextKind.DISEASE_LABEL_OR_ID)
MULTI_HPO_ID = Context.of(ContextKind.MULTI_HPO_ID)
OBSERVATION_STATUS = Context.of(ContextKind.OBSERVATION_STATUS)
