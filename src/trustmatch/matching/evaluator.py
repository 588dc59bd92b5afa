"""Matching rule evaluation.

Rules are validated once, up front, against the active schemas; any
problem there is a configuration error that aborts before comparison.
Per-record problems (a missing field, an unknown algorithm) never raise:
they degrade to a defined fallback and are reported in ``details``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from trustmatch.errors import ReconciliationError, ReconciliationErrorCode
from trustmatch.matching.models import MatchingRule, MissingFieldPolicy, RuleEvaluationResult
from trustmatch.matching.roles import defaults_for
from trustmatch.models.records import Record, Schema, get_field
from trustmatch.preprocess import apply_steps
from trustmatch.similarity import (
    Aggregation,
    SimilarityConfig,
    composite_similarity,
    similarity,
)

__all__ = ["MatchingRuleEvaluator", "validate_rules", "evaluate_rule", "evaluate_rules"]


def validate_rules(
    rules: Sequence[MatchingRule],
    left_schema: Schema | None = None,
    right_schema: Schema | None = None,
) -> None:
    """Check a rule set before any comparison runs.

    Parameters
    ----------
    rules : Sequence[MatchingRule]
        Rules to check.
    left_schema, right_schema : Schema | None, optional
        Active schemas; when given, every referenced field must exist.

    Raises
    ------
    ReconciliationError
        ``INVALID_RULE`` for an empty or duplicated rule set, negative
        composite weights or an all-zero weighted composite,
        ``EMPTY_COMPOSITE`` for a composite rule without components,
        ``UNKNOWN_FIELD`` for a field absent from a schema,
        ``MISSING_WEIGHTS`` for weighted composites without one weight
        per component.
    """
    if not rules:
        raise ReconciliationError(
            ReconciliationErrorCode.INVALID_RULE,
            "At least one matching rule is required",
        )

    seen: set[str] = set()
    for rule in rules:
        if rule.rule_id in seen:
            raise ReconciliationError(
                ReconciliationErrorCode.INVALID_RULE,
                f"Duplicate rule id: {rule.rule_id!r}",
                context={"rule_id": rule.rule_id},
            )
        seen.add(rule.rule_id)

        if left_schema is not None and not left_schema.has_field(rule.left_field):
            raise ReconciliationError(
                ReconciliationErrorCode.UNKNOWN_FIELD,
                f"Rule {rule.rule_id!r} references field {rule.left_field!r} "
                "missing from the left schema",
                context={"rule_id": rule.rule_id, "field": rule.left_field, "side": "left"},
            )
        if right_schema is not None and not right_schema.has_field(rule.target_field):
            raise ReconciliationError(
                ReconciliationErrorCode.UNKNOWN_FIELD,
                f"Rule {rule.rule_id!r} references field {rule.target_field!r} "
                "missing from the right schema",
                context={"rule_id": rule.rule_id, "field": rule.target_field, "side": "right"},
            )

        if rule.similarity is not None and str(rule.similarity.algorithm) == "composite":
            if not rule.components:
                raise ReconciliationError(
                    ReconciliationErrorCode.EMPTY_COMPOSITE,
                    f"Rule {rule.rule_id!r} uses composite similarity without components",
                    context={"rule_id": rule.rule_id},
                )

        weights = rule.component_weights
        if rule.is_composite and weights is not None and any(w < 0 for w in weights):
            raise ReconciliationError(
                ReconciliationErrorCode.INVALID_RULE,
                f"Rule {rule.rule_id!r} has negative composite weights",
                context={"rule_id": rule.rule_id, "component_weights": list(weights)},
            )

        if rule.is_composite and rule.aggregation is Aggregation.WEIGHTED:
            if weights is None or len(weights) != len(rule.components):
                raise ReconciliationError(
                    ReconciliationErrorCode.MISSING_WEIGHTS,
                    f"Rule {rule.rule_id!r} needs one weight per composite component",
                    context={"rule_id": rule.rule_id},
                )
            if sum(weights) <= 0:
                raise ReconciliationError(
                    ReconciliationErrorCode.INVALID_RULE,
                    f"Rule {rule.rule_id!r} needs a positive composite weight",
                    context={"rule_id": rule.rule_id, "component_weights": list(weights)},
                )


def _read_value(record: Record, field_name: str) -> tuple[Any, bool]:
    value = get_field(record, field_name)
    return value, value is None


def evaluate_rule(rule: MatchingRule, left: Record, right: Record) -> RuleEvaluationResult:
    """Evaluate one rule on one record pair.

    Parameters
    ----------
    rule : MatchingRule
        Rule to apply.
    left, right : Record
        Records from the left and right source.

    Returns
    -------
    RuleEvaluationResult
        Verdict with score, weight and details.
    """
    defaults = defaults_for(rule.field_config.role)
    steps = rule.field_config.preprocessing
    if steps is None:
        steps = defaults.preprocessing

    left_value, left_missing = _read_value(left, rule.left_field)
    right_value, right_missing = _read_value(right, rule.target_field)

    warnings: list[str] = []
    if left_missing:
        warnings.append(f"missing_field:left.{rule.left_field}")
    if right_missing:
        warnings.append(f"missing_field:right.{rule.target_field}")

    if warnings and rule.missing_field is MissingFieldPolicy.STRICT:
        return RuleEvaluationResult(
            rule_id=rule.rule_id,
            matched=False,
            weight=rule.effective_weight,
            score=0.0,
            algorithm=_algorithm_name(rule),
            required=rule.required,
            details=tuple(warnings),
        )

    text_left = apply_steps(left_value, steps)
    text_right = apply_steps(right_value, steps)

    if rule.is_composite:
        result = composite_similarity(
            text_left,
            text_right,
            rule.components,
            rule.aggregation,
            rule.component_weights,
        )
        score, algorithm, details = result.score, result.algorithm, result.details
    else:
        config = rule.similarity or SimilarityConfig(algorithm=defaults.algorithm)
        single = similarity(text_left, text_right, config)
        score, algorithm, details = single.score, single.algorithm, single.details

    return RuleEvaluationResult(
        rule_id=rule.rule_id,
        matched=score >= rule.threshold,
        weight=rule.effective_weight,
        score=score,
        algorithm=algorithm,
        required=rule.required,
        details=tuple(warnings) + tuple(details),
    )


def _algorithm_name(rule: MatchingRule) -> str:
    if rule.is_composite:
        return "composite"
    if rule.similarity is not None:
        return str(rule.similarity.algorithm)
    return str(defaults_for(rule.field_config.role).algorithm)


def evaluate_rules(
    left: Record,
    right: Record,
    rules: Sequence[MatchingRule],
) -> list[RuleEvaluationResult]:
    """Evaluate every rule independently, preserving rule order."""
    return [evaluate_rule(rule, left, right) for rule in rules]


class MatchingRuleEvaluator:
    """Validated, immutable rule set applied to candidate pairs.

    Parameters
    ----------
    rules : Sequence[MatchingRule]
        Rules in presentation order.
    left_schema, right_schema : Schema | None, optional
        Active schemas used to reject rules that reference unknown fields.

    Raises
    ------
    ReconciliationError
        If the rule set is invalid (see :func:`validate_rules`).
    """

    def __init__(
        self,
        rules: Sequence[MatchingRule],
        left_schema: Schema | None = None,
        right_schema: Schema | None = None,
    ) -> None:
        validate_rules(rules, left_schema, right_schema)
        self.rules: tuple[MatchingRule, ...] = tuple(rules)

    def evaluate(self, left: Record, right: Record) -> list[RuleEvaluationResult]:
        """Evaluate all rules on the pair ``(left, right)``."""
        return evaluate_rules(left, right, self.rules)

    def required_failed(self, results: Sequence[RuleEvaluationResult]) -> list[str]:
        """Ids of required rules that did not match."""
        return [r.rule_id for r in results if r.required and not r.matched]
