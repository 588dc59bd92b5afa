"""Data models for field-level matching rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from trustmatch.preprocess import PreprocessingStep, parse_steps
from trustmatch.similarity.models import Aggregation, SimilarityConfig

__all__ = [
    "FieldRole",
    "MissingFieldPolicy",
    "FieldSimilarityConfig",
    "MatchingRule",
    "RuleEvaluationResult",
]


class FieldRole(StrEnum):
    """Semantic role of a field; selects default preprocessing and algorithm."""

    COMPANY_NAME = "company_name"
    PERSON_NAME = "person_name"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    IDENTIFIER = "identifier"
    NUMERIC = "numeric"
    DATE = "date"
    FREE_TEXT = "free_text"


class MissingFieldPolicy(StrEnum):
    """What a rule does when a record lacks its field.

    Attributes
    ----------
    EMPTY : str
        Compare the empty string (default). Two missing values compare equal.
    STRICT : str
        Fail the rule with score 0.
    """

    EMPTY = "empty"
    STRICT = "strict"


@dataclass(frozen=True, slots=True)
class FieldSimilarityConfig:
    """How one field should be compared.

    Attributes
    ----------
    role : FieldRole
        Field role.
    weight : float
        Relative importance in [0, 1]; used as the rule weight when the
        rule does not set one.
    preprocessing : tuple[PreprocessingStep, ...] | None
        Ordered steps; None selects the role's defaults.
    """

    role: FieldRole = FieldRole.FREE_TEXT
    weight: float = 1.0
    preprocessing: tuple[PreprocessingStep, ...] | None = None

    def __post_init__(self) -> None:
        """Validate weight."""
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"field weight must be in [0, 1], got {self.weight}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldSimilarityConfig:
        """Build from a JSON-style mapping."""
        steps = data.get("preprocessing")
        return cls(
            role=FieldRole(data.get("role", FieldRole.FREE_TEXT)),
            weight=float(data.get("weight", 1.0)),
            preprocessing=parse_steps(steps) if steps is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "role": str(self.role),
            "weight": self.weight,
            "preprocessing": (
                [str(s) for s in self.preprocessing] if self.preprocessing is not None else None
            ),
        }


@dataclass(frozen=True, slots=True)
class MatchingRule:
    """A weighted, thresholded field comparison.

    Attributes
    ----------
    rule_id : str
        Unique rule name.
    left_field : str
        Field read from left records (dotted paths reach nested values).
    right_field : str | None
        Field read from right records; defaults to ``left_field``.
    field_config : FieldSimilarityConfig
        Role, field weight and preprocessing.
    similarity : SimilarityConfig | None
        Single-algorithm comparison; None selects the role's default.
    components : tuple[SimilarityConfig, ...]
        When non-empty, the rule uses composite similarity instead.
    aggregation : Aggregation
        Composite aggregation.
    component_weights : tuple[float, ...] | None
        Composite weights (required for ``weighted``).
    threshold : float
        Rule passes when ``score >= threshold``; in [0, 1].
    weight : float | None
        Weight in the confidence score (>= 0); defaults to the field weight.
    required : bool
        A failed required rule forces the pair to unmatched.
    missing_field : MissingFieldPolicy
        Behaviour when a record lacks the field.
    """

    rule_id: str
    left_field: str
    right_field: str | None = None
    field_config: FieldSimilarityConfig = field(default_factory=FieldSimilarityConfig)
    similarity: SimilarityConfig | None = None
    components: tuple[SimilarityConfig, ...] = ()
    aggregation: Aggregation = Aggregation.AVERAGE
    component_weights: tuple[float, ...] | None = None
    threshold: float = 0.8
    weight: float | None = None
    required: bool = False
    missing_field: MissingFieldPolicy = MissingFieldPolicy.EMPTY

    def __post_init__(self) -> None:
        """Validate ranges."""
        if not self.rule_id:
            raise ValueError("rule_id must not be empty")
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be in [0, 1], got {self.threshold}")
        if self.weight is not None and self.weight < 0:
            raise ValueError(f"weight must be >= 0, got {self.weight}")

    @property
    def target_field(self) -> str:
        """Field read from right-hand records."""
        return self.right_field or self.left_field

    @property
    def effective_weight(self) -> float:
        """Weight used by the confidence scorer."""
        return self.weight if self.weight is not None else self.field_config.weight

    @property
    def is_composite(self) -> bool:
        return bool(self.components)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchingRule:
        """Build from a JSON-style mapping.

        Accepts ``field`` as shorthand for ``left_field`` and inlines
        ``role``/``preprocessing`` when no ``field_config`` is given.
        """
        field_data = data.get("field_config")
        if field_data is None:
            field_data = {
                k: data[k] for k in ("role", "preprocessing") if k in data
            }
            if "field_weight" in data:
                field_data["weight"] = data["field_weight"]

        similarity_data = data.get("similarity")
        if similarity_data is None and "algorithm" in data:
            # "composite" without components is rejected by validate_rules
            similarity_data = {"algorithm": data["algorithm"]}

        weights = data.get("component_weights")
        return cls(
            rule_id=(
                data.get("rule_id") or data.get("id") or data.get("left_field") or data["field"]
            ),
            left_field=data.get("left_field") or data["field"],
            right_field=data.get("right_field"),
            field_config=FieldSimilarityConfig.from_dict(field_data),
            similarity=(
                SimilarityConfig.from_dict(similarity_data) if similarity_data is not None else None
            ),
            components=tuple(SimilarityConfig.from_dict(c) for c in data.get("components", [])),
            aggregation=Aggregation(data.get("aggregation", Aggregation.AVERAGE)),
            component_weights=tuple(float(w) for w in weights) if weights is not None else None,
            threshold=float(data.get("threshold", 0.8)),
            weight=float(data["weight"]) if data.get("weight") is not None else None,
            required=bool(data.get("required", False)),
            missing_field=MissingFieldPolicy(data.get("missing_field", MissingFieldPolicy.EMPTY)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "rule_id": self.rule_id,
            "left_field": self.left_field,
            "right_field": self.right_field,
            "field_config": self.field_config.to_dict(),
            "similarity": self.similarity.to_dict() if self.similarity is not None else None,
            "components": [c.to_dict() for c in self.components],
            "aggregation": str(self.aggregation),
            "component_weights": (
                list(self.component_weights) if self.component_weights is not None else None
            ),
            "threshold": self.threshold,
            "weight": self.weight,
            "required": self.required,
            "missing_field": str(self.missing_field),
        }


@dataclass(frozen=True, slots=True)
class RuleEvaluationResult:
    """Verdict of one rule on one candidate pair.

    Attributes
    ----------
    rule_id : str
        Rule that produced the verdict.
    matched : bool
        ``score >= threshold`` (and no strict missing-field failure).
    weight : float
        Rule weight used by the confidence scorer.
    score : float
        Similarity score in [0, 1].
    algorithm : str
        Algorithm that produced the score.
    required : bool
        Whether the rule is required.
    details : tuple[str, ...]
        Similarity details and degradation warnings.
    """

    rule_id: str
    matched: bool
    weight: float
    score: float
    algorithm: str = ""
    required: bool = False
    details: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "rule_id": self.rule_id,
            "matched": self.matched,
            "weight": self.weight,
            "score": self.score,
            "algorithm": self.algorithm,
            "required": self.required,
            "details": list(self.details),
        }
