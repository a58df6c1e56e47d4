from __future__ import annotations

import enum
import logging
from dataclasses import asdict, dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from joinlens.analyze.metrics import (
    TableMetrics,
    coerce_metrics,
    index_metrics,
)
from joinlens.analyze.sql_parser import JoinPredicate, extract_joins

logger = logging.getLogger(__name__)

SMALL_TABLE_ROWS = 100_000
HIGH_SKEW_ROWS = 20
STALE_STATS_PCT = 10
LARGE_TABLE_ROWS = 1_000_000


class JoinStatus(str, enum.Enum):
    OPTIMAL = "optimal"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class JoinAnalysis(JoinPredicate):
    status: JoinStatus = JoinStatus.OPTIMAL
    status_message: str = ""
    optimization: str = ""


@dataclass(frozen=True)
class JoinProfile:
    large_table: bool
    dist_key_mismatch: bool


Verdict = Tuple[JoinStatus, str, str]

MISSING_METRICS: Verdict = (
    JoinStatus.WARNING,
    "Missing table metrics",
    "Verify table existence and permissions",
)
DIST_KEY_MISMATCH: Verdict = (
    JoinStatus.CRITICAL,
    "Distribution key mismatch",
    "Align distribution keys or redistribute smaller table",
)
HIGH_SKEW: Verdict = (
    JoinStatus.WARNING,
    "High data skew detected",
    "Review distribution strategy and key selection",
)
MISSING_SORT_KEYS: Verdict = (
    JoinStatus.WARNING,
    "Missing sort keys",
    "Add sort keys to improve join performance",
)
STALE_STATS: Verdict = (
    JoinStatus.WARNING,
    "Stale statistics",
    "Run ANALYZE to update table statistics",
)
OPTIMAL: Verdict = (
    JoinStatus.OPTIMAL,
    "Optimal join configuration",
    "No optimization needed",
)

MetricsLookup = Union[Mapping[str, TableMetrics], Iterable[TableMetrics]]


def classify_join(
    left: Optional[TableMetrics], right: Optional[TableMetrics]
) -> Verdict:
    """
    First matching rule wins.

    A distribution style mismatch is critical only when both tables hold at
    least ``SMALL_TABLE_ROWS`` rows. One large table joined to a small one is
    not flagged, even though a broadcast of the small side may still occur.
    """
    if left is None or right is None:
        return MISSING_METRICS
    both_large = min(left.tbl_rows, right.tbl_rows) >= SMALL_TABLE_ROWS
    if left.diststyle != right.diststyle and both_large:
        return DIST_KEY_MISMATCH
    if left.skew_rows > HIGH_SKEW_ROWS or right.skew_rows > HIGH_SKEW_ROWS:
        return HIGH_SKEW
    if not (left.has_sort_key and right.has_sort_key):
        return MISSING_SORT_KEYS
    if left.stats_off > STALE_STATS_PCT or right.stats_off > STALE_STATS_PCT:
        return STALE_STATS
    return OPTIMAL


def _as_index(metrics: MetricsLookup) -> Mapping[str, TableMetrics]:
    if isinstance(metrics, Mapping):
        return metrics
    return index_metrics(metrics)


def annotate_joins(
    joins: Iterable[JoinPredicate], metrics: MetricsLookup
) -> List[JoinAnalysis]:
    index = _as_index(metrics)
    out: List[JoinAnalysis] = []
    for join in joins:
        status, message, optimization = classify_join(
            index.get(join.left_table), index.get(join.right_table)
        )
        out.append(
            JoinAnalysis(
                **asdict(join),
                status=status,
                status_message=message,
                optimization=optimization,
            )
        )
    return out


def analyze_joins(sql: Optional[str], metrics: Optional[Iterable[Any]]) -> List[JoinAnalysis]:
    """
    Extract joins from ``sql`` and classify each one against per-table metrics.
    ``metrics`` may hold validated rows or raw mappings; rows that fail
    validation count as missing.
    """
    joins = extract_joins(sql)
    index = index_metrics(coerce_metrics(metrics))
    analyses = annotate_joins(joins, index)
    logger.debug(
        "Analyzed %d join(s) against metrics for %d table(s)", len(analyses), len(index)
    )
    return analyses


def profile_join(
    join: JoinPredicate, metrics: MetricsLookup
) -> Optional[JoinProfile]:
    index = _as_index(metrics)
    left = index.get(join.left_table)
    right = index.get(join.right_table)
    if left is None or right is None:
        return None
    both_key = left.is_key_distributed and right.is_key_distributed
    return JoinProfile(
        large_table=max(left.tbl_rows, right.tbl_rows) > LARGE_TABLE_ROWS,
        dist_key_mismatch=left.diststyle.upper() != right.diststyle.upper()
        or (both_key and left.dist_key != right.dist_key),
    )
