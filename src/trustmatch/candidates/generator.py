"""Cross-source candidate pair generation.

Records from both sides are bucketed by blocking key; only buckets that
hold records from *both* sides emit pairs, and only left × right pairs
are emitted. Same-side pairs are never compared.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence

from trustmatch.audit.logger import AuditLogger
from trustmatch.candidates.keys import KEY_REGISTRY, blocking_key
from trustmatch.candidates.models import BlockingConfig, BlockingStats, CandidatePair
from trustmatch.models.records import Record, get_field
from trustmatch.utils.hashing import calculate_string_sha256

__all__ = [
    "generate_candidate_pairs",
    "DEFAULT_MAX_BLOCK_SIZE",
    "STAGE_NAME",
    "UNKNOWN_BLOCKING_ALGORITHM",
]

DEFAULT_MAX_BLOCK_SIZE = 1000
STAGE_NAME = "blocking"
UNKNOWN_BLOCKING_ALGORITHM = "unknown_blocking_algorithm"


def generate_candidate_pairs(
    left: Sequence[Record],
    right: Sequence[Record],
    config: BlockingConfig | None,
    *,
    logger: AuditLogger | None = None,
    max_block_size: int = DEFAULT_MAX_BLOCK_SIZE,
    mask_keys: bool = False,
) -> tuple[list[CandidatePair], BlockingStats]:
    """Produce the left × right pairs that share a blocking key.

    Parameters
    ----------
    left : Sequence[Record]
        Records of the first source.
    right : Sequence[Record]
        Records of the second source.
    config : BlockingConfig | None
        Blocking strategy. None compares every left record with every
        right record.
    logger : AuditLogger | None, optional
        Audit logger for oversized-bucket warnings.
    max_block_size : int, optional
        Log a warning when a bucket exceeds this many records.
    mask_keys : bool, optional
        Replace keys in pairs and log events with their sha256 digest,
        for blocking fields whose values must stay hidden.

    Returns
    -------
    tuple[list[CandidatePair], BlockingStats]
        Pairs ordered by (key, left index, right index), plus counters.
    """
    stats = BlockingStats(left_records=len(left), right_records=len(right))

    if config is None:
        pairs = [CandidatePair(i, j) for i in range(len(left)) for j in range(len(right))]
        stats.left_keyed = len(left)
        stats.right_keyed = len(right)
        stats.cross_buckets = 1 if pairs else 0
        stats.max_bucket = len(left) + len(right) if pairs else 0
        stats.candidate_pairs = len(pairs)
        return pairs, stats

    if config.algorithm not in KEY_REGISTRY:
        stats.warnings.append(
            f"{UNKNOWN_BLOCKING_ALGORITHM}:{config.algorithm}; using normalized text as key"
        )

    # Phase 1: inverted index, key → ([left idx], [right idx])
    index: dict[str, tuple[list[int], list[int]]] = defaultdict(lambda: ([], []))

    for i, record in enumerate(left):
        key = blocking_key(get_field(record, config.left_field), config.algorithm, config.options)
        if key is None:
            continue
        stats.left_keyed += 1
        index[key][0].append(i)

    for j, record in enumerate(right):
        key = blocking_key(get_field(record, config.target_field), config.algorithm, config.options)
        if key is None:
            continue
        stats.right_keyed += 1
        index[key][1].append(j)

    stats.unique_keys = len(index)

    # Phase 2: emit cross pairs from buckets populated on both sides
    pairs: list[CandidatePair] = []

    for key in sorted(index):
        left_ids, right_ids = index[key]
        if not left_ids or not right_ids:
            continue
        shown_key = calculate_string_sha256(key) if mask_keys else key

        bucket_size = len(left_ids) + len(right_ids)
        stats.cross_buckets += 1
        stats.max_bucket = max(stats.max_bucket, bucket_size)

        if bucket_size > max_block_size and logger:
            logger.event(
                "oversized_block",
                data={
                    "block_key": shown_key[:100],
                    "block_size": bucket_size,
                    "max_block_size": max_block_size,
                },
                level="WARN",
                stage=STAGE_NAME,
            )

        for i in left_ids:
            for j in right_ids:
                pairs.append(CandidatePair(i, j, shown_key))

    stats.candidate_pairs = len(pairs)
    return pairs, stats
