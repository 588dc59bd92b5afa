"""Data models for blocking and candidate pairs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

__all__ = [
    "BlockingAlgorithm",
    "BlockingOptions",
    "BlockingConfig",
    "BlockingStats",
    "CandidatePair",
    "MAX_PREFIX_LENGTH",
]

MAX_PREFIX_LENGTH = 32


class BlockingAlgorithm(StrEnum):
    """Ways of deriving a blocking key from a field value."""

    EXACT = "exact"
    PREFIX = "prefix"
    COLOGNE_PHONETIC = "cologne_phonetic"
    SOUNDEX = "soundex"


@dataclass(frozen=True, slots=True)
class BlockingOptions:
    """Key-derivation options.

    Attributes
    ----------
    case_sensitive : bool
        Keep string case (default: False, keys are lowercased).
    max_length : int | None
        Truncate the normalised text before the algorithm runs.
    prefix_length : int | None
        Characters kept by ``prefix`` blocking (default: 4, minimum 1).
    """

    case_sensitive: bool = False
    max_length: int | None = None
    prefix_length: int | None = None

    def __post_init__(self) -> None:
        """Validate prefix length."""
        if self.prefix_length is not None and not 1 <= self.prefix_length <= MAX_PREFIX_LENGTH:
            raise ValueError(
                f"prefix_length must be in [1, {MAX_PREFIX_LENGTH}], got {self.prefix_length}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockingOptions:
        """Build from a JSON-style mapping."""
        return cls(
            case_sensitive=bool(data.get("case_sensitive", False)),
            max_length=data.get("max_length"),
            prefix_length=data.get("prefix_length"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass(frozen=True, slots=True)
class BlockingConfig:
    """Blocking strategy for one reconciliation run.

    Attributes
    ----------
    left_field : str
        Field used on the left records.
    algorithm : BlockingAlgorithm | str
        Key algorithm; unknown names fall back to the normalised text.
    options : BlockingOptions
        Key-derivation options.
    right_field : str | None
        Field used on the right records; defaults to ``left_field``.

    Notes
    -----
    Records whose key differs are never compared, even when they denote
    the same entity. Coarser algorithms (``prefix`` with a short length,
    phonetic codes) trade comparison cost for recall.
    """

    left_field: str
    algorithm: BlockingAlgorithm | str = BlockingAlgorithm.EXACT
    options: BlockingOptions = field(default_factory=BlockingOptions)
    right_field: str | None = None

    @property
    def target_field(self) -> str:
        """Field read from right-hand records."""
        return self.right_field or self.left_field

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockingConfig:
        """Build from a JSON-style mapping."""
        algorithm = data.get("algorithm", BlockingAlgorithm.EXACT)
        if algorithm in BlockingAlgorithm._value2member_map_:
            algorithm = BlockingAlgorithm(algorithm)
        return cls(
            left_field=data.get("left_field") or data["field"],
            algorithm=algorithm,
            options=BlockingOptions.from_dict(data.get("options") or {}),
            right_field=data.get("right_field"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "field": self.left_field,
            "right_field": self.right_field,
            "algorithm": str(self.algorithm),
            "options": self.options.to_dict(),
        }


@dataclass
class BlockingStats:
    """Counters collected while blocking two record sets.

    Attributes
    ----------
    left_records : int
        Left records seen.
    right_records : int
        Right records seen.
    left_keyed : int
        Left records that produced a non-null key.
    right_keyed : int
        Right records that produced a non-null key.
    unique_keys : int
        Distinct keys across both sides.
    cross_buckets : int
        Buckets holding records from both sides.
    max_bucket : int
        Largest cross bucket (left + right records).
    candidate_pairs : int
        Cross-set pairs emitted.
    warnings : list[str]
        Degradations such as an unknown algorithm.
    """

    left_records: int = 0
    right_records: int = 0
    left_keyed: int = 0
    right_keyed: int = 0
    unique_keys: int = 0
    cross_buckets: int = 0
    max_bucket: int = 0
    candidate_pairs: int = 0
    warnings: list[str] = field(default_factory=list)

    def counters(self) -> dict[str, int]:
        """Integer counters only, for stage audit events."""
        data = asdict(self)
        data.pop("warnings")
        return data

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict."""
        return asdict(self)


@dataclass(frozen=True, slots=True)
class CandidatePair:
    """One left/right record pair proposed for evaluation.

    Attributes
    ----------
    left_index : int
        Position of the record in the left set.
    right_index : int
        Position of the record in the right set.
    block_key : str | None
        Shared blocking key, None when blocking is disabled.
    """

    left_index: int
    right_index: int
    block_key: str | None = None
