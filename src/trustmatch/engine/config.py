"""Run configuration for reconciliation.

A :class:`RunConfig` is validated as a whole when it is constructed, so
an invalid configuration fails before any connector is touched or any
record pair is compared.
"""

import json
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import jsonschema

from trustmatch.candidates.models import BlockingConfig
from trustmatch.errors import ReconciliationError, ReconciliationErrorCode
from trustmatch.matching.evaluator import validate_rules
from trustmatch.matching.models import MatchingRule

__all__ = [
    "RunConfig",
    "load_run_config",
    "load_run_config_schema",
    "validate_run_config_data",
    "DEFAULT_MATCH_THRESHOLD",
    "DEFAULT_REVIEW_THRESHOLD",
]

DEFAULT_MATCH_THRESHOLD = 90.0
DEFAULT_REVIEW_THRESHOLD = 60.0

_SCHEMA_RESOURCE = "run_config.schema.json"


@dataclass
class RunConfig:
    """Configuration of one reconciliation run.

    Attributes
    ----------
    rules : tuple[MatchingRule, ...]
        Matching rules; at least one must carry a positive weight.
    blocking : BlockingConfig | None
        Blocking strategy. None compares every left record with every
        right record.
    match_threshold : float
        Confidence at or above which a pair is matched (default: 90).
    review_threshold : float
        Confidence below which a pair is unmatched (default: 60). Pairs
        in between go to review.
    left_key_field : str
        Identifier field of left records (default: "id").
    right_key_field : str
        Identifier field of right records (default: "id").
    one_to_one : bool
        Keep only the best match per record (default: False).
    max_workers : int
        Threads used to evaluate pairs; 1 evaluates sequentially.

    Raises
    ------
    ReconciliationError
        ``INVALID_THRESHOLDS`` unless ``0 <= review <= match <= 100``,
        ``INVALID_RULE`` for an empty, duplicated or zero-weight rule
        set, ``INVALID_OPTIONS`` for a non-positive worker count.
    """

    rules: tuple[MatchingRule, ...] = ()
    blocking: BlockingConfig | None = None
    match_threshold: float = DEFAULT_MATCH_THRESHOLD
    review_threshold: float = DEFAULT_REVIEW_THRESHOLD
    left_key_field: str = "id"
    right_key_field: str = "id"
    one_to_one: bool = False
    max_workers: int = 1

    def __post_init__(self) -> None:
        """Validate thresholds, rules and options."""
        self.rules = tuple(self.rules)

        if not 0.0 <= self.review_threshold <= self.match_threshold <= 100.0:
            raise ReconciliationError(
                ReconciliationErrorCode.INVALID_THRESHOLDS,
                "Thresholds must satisfy 0 <= review_threshold <= match_threshold <= 100, "
                f"got review_threshold={self.review_threshold}, "
                f"match_threshold={self.match_threshold}",
                context={
                    "review_threshold": self.review_threshold,
                    "match_threshold": self.match_threshold,
                },
            )

        validate_rules(self.rules)

        if not any(rule.effective_weight > 0 for rule in self.rules):
            raise ReconciliationError(
                ReconciliationErrorCode.INVALID_RULE,
                "At least one matching rule must have a weight greater than 0",
            )

        if self.max_workers < 1:
            raise ReconciliationError(
                ReconciliationErrorCode.INVALID_OPTIONS,
                f"max_workers must be >= 1, got {self.max_workers}",
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunConfig":
        """Build from a JSON-style mapping.

        Raises
        ------
        ReconciliationError
            ``INVALID_RULE`` when a rule cannot be built,
            ``INVALID_OPTIONS`` for malformed blocking options.
        """
        rules = []
        for index, rule_data in enumerate(data.get("rules", [])):
            try:
                rules.append(MatchingRule.from_dict(rule_data))
            except (KeyError, TypeError, ValueError) as exc:
                raise ReconciliationError(
                    ReconciliationErrorCode.INVALID_RULE,
                    f"Invalid matching rule at index {index}: {exc}",
                    context={"index": index},
                ) from exc

        blocking = None
        if data.get("blocking") is not None:
            try:
                blocking = BlockingConfig.from_dict(data["blocking"])
            except (KeyError, TypeError, ValueError) as exc:
                raise ReconciliationError(
                    ReconciliationErrorCode.INVALID_OPTIONS,
                    f"Invalid blocking configuration: {exc}",
                ) from exc

        return cls(
            rules=tuple(rules),
            blocking=blocking,
            match_threshold=float(data.get("match_threshold", DEFAULT_MATCH_THRESHOLD)),
            review_threshold=float(data.get("review_threshold", DEFAULT_REVIEW_THRESHOLD)),
            left_key_field=data.get("left_key_field", "id"),
            right_key_field=data.get("right_key_field", "id"),
            one_to_one=bool(data.get("one_to_one", False)),
            max_workers=int(data.get("max_workers", 1)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "blocking": self.blocking.to_dict() if self.blocking is not None else None,
            "match_threshold": self.match_threshold,
            "review_threshold": self.review_threshold,
            "left_key_field": self.left_key_field,
            "right_key_field": self.right_key_field,
            "one_to_one": self.one_to_one,
            "max_workers": self.max_workers,
        }


def load_run_config_schema() -> dict[str, Any]:
    """Load the packaged JSON schema of run configuration files."""
    text = resources.files("trustmatch.schemas").joinpath(_SCHEMA_RESOURCE).read_text("utf-8")
    schema: dict[str, Any] = json.loads(text)
    return schema


def validate_run_config_data(data: Any) -> None:
    """Validate raw configuration data against the packaged schema.

    Raises
    ------
    ReconciliationError
        ``INVALID_OPTIONS`` with the offending JSON path in ``context``.
    """
    try:
        jsonschema.validate(instance=data, schema=load_run_config_schema())
    except jsonschema.ValidationError as exc:
        path = "/".join(str(p) for p in exc.absolute_path)
        raise ReconciliationError(
            ReconciliationErrorCode.INVALID_OPTIONS,
            f"Run configuration does not match schema: {exc.message}",
            context={"path": path or "/"},
        ) from exc


def load_run_config(path: Path) -> RunConfig:
    """Read, validate and build a run configuration from a JSON file.

    Parameters
    ----------
    path : Path
        JSON configuration file.

    Returns
    -------
    RunConfig
        Validated configuration.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ReconciliationError
        If the file is not valid JSON or violates the schema or the
        run-level validation rules.
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ReconciliationError(
                ReconciliationErrorCode.INVALID_OPTIONS,
                f"Run configuration is not valid JSON: {exc}",
                context={"path": str(path)},
            ) from exc

    validate_run_config_data(data)
    return RunConfig.from_dict(data)
