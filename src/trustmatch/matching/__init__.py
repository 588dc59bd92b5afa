"""Field-level matching rules and their evaluation."""

from trustmatch.matching.evaluator import (
    MatchingRuleEvaluator,
    evaluate_rule,
    evaluate_rules,
    validate_rules,
)
from trustmatch.matching.models import (
    FieldRole,
    FieldSimilarityConfig,
    MatchingRule,
    MissingFieldPolicy,
    RuleEvaluationResult,
)
from trustmatch.matching.roles import ROLE_DEFAULTS, RoleDefaults, defaults_for

__all__ = [
    "FieldRole",
    "FieldSimilarityConfig",
    "MatchingRule",
    "MissingFieldPolicy",
    "RuleEvaluationResult",
    "MatchingRuleEvaluator",
    "ROLE_DEFAULTS",
    "RoleDefaults",
    "defaults_for",
    "evaluate_rule",
    "evaluate_rules",
    "validate_rules",
]
