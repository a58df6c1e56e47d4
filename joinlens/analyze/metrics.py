from __future__ import annotations

import enum
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from joinlens.analyze.sql_parser import TableReference

logger = logging.getLogger(__name__)

KEY_DISTSTYLE = "KEY"


class MetricsFormatError(ValueError):
    pass


class TableMetrics(BaseModel):
    """One row of svv_table_info, as pasted or posted by the client."""

    model_config = ConfigDict(extra="ignore")

    dbname: str = ""
    schemaname: str = "public"
    tablename: str
    encoded: bool = False
    diststyle: str
    dist_key: Optional[str] = None
    sortkey1: Optional[str] = None
    sortkey1_enc: Optional[str] = None
    sortkey_num: int = 0
    size_gb: float = 0.0
    pct_empty: float = 0.0
    unsorted_pct: Optional[float] = None
    stats_off: float
    tbl_rows: int
    skew_sortkey1: Optional[float] = None
    skew_rows: float
    estimated_visible_rows: Optional[int] = None
    risk_event: Optional[str] = None

    @property
    def has_sort_key(self) -> bool:
        return bool(self.sortkey1)

    @property
    def is_key_distributed(self) -> bool:
        return self.diststyle.upper() == KEY_DISTSTYLE


class HealthLevel(str, enum.Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class MetricKind(str, enum.Enum):
    STATS = "stats"
    SORTED = "sorted"
    SKEW = "skew"


class MetricReading(BaseModel):
    value: Optional[float] = None
    level: Optional[HealthLevel] = None


class TableHealth(BaseModel):
    schemaname: str
    tablename: str
    tbl_rows: int
    size_gb: float
    distribution: str
    sort_key: str
    stats_fresh: MetricReading
    pct_sorted: MetricReading
    dist_skew: MetricReading
    sort_skew: MetricReading


def load_metrics(raw: Any) -> List[TableMetrics]:
    """
    Validate a JSON array of metrics rows.
    Rows that do not validate are dropped, so joins touching them are
    reported as having missing metrics.
    """
    if not isinstance(raw, (list, tuple)):
        raise MetricsFormatError("Invalid metrics data format")

    out: List[TableMetrics] = []
    for i, item in enumerate(raw):
        if isinstance(item, TableMetrics):
            out.append(item)
            continue
        try:
            out.append(TableMetrics.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Ignoring metrics entry %d: %d validation error(s)", i, e.error_count()
            )
    return out


def index_metrics(metrics: Iterable[TableMetrics]) -> Dict[str, TableMetrics]:
    """Lookup by table name only; the first row for a name wins."""
    index: Dict[str, TableMetrics] = {}
    for m in metrics:
        index.setdefault(m.tablename, m)
    return index


def metric_level(value: Optional[float], kind: MetricKind) -> Optional[HealthLevel]:
    if value is None:
        return None
    kind = MetricKind(kind)
    if kind is MetricKind.STATS:
        if value < 50:
            return HealthLevel.CRITICAL
        if value < 80:
            return HealthLevel.WARNING
        return HealthLevel.GOOD
    if kind is MetricKind.SORTED:
        if value < 65:
            return HealthLevel.CRITICAL
        if value < 85:
            return HealthLevel.WARNING
        return HealthLevel.GOOD
    if value > 5:
        return HealthLevel.CRITICAL
    if value > 2:
        return HealthLevel.WARNING
    return HealthLevel.GOOD


def truncate_text(text: Optional[str], max_length: int = 12) -> str:
    if not text or len(text) <= max_length:
        return text or ""
    return text[: max_length - 3] + "..."


def _reading(value: Optional[float], kind: MetricKind, digits: int) -> MetricReading:
    if value is None:
        return MetricReading()
    return MetricReading(value=round(value, digits), level=metric_level(value, kind))


def _percent_complement(value: Optional[float]) -> Optional[float]:
    return None if value is None else 100 - value


def table_health(m: TableMetrics) -> TableHealth:
    if m.is_key_distributed and m.dist_key:
        distribution = f"{KEY_DISTSTYLE}({truncate_text(m.dist_key)})"
    else:
        distribution = m.diststyle

    return TableHealth(
        schemaname=m.schemaname,
        tablename=m.tablename,
        tbl_rows=m.tbl_rows,
        size_gb=m.size_gb,
        distribution=distribution,
        sort_key=m.sortkey1 or "None",
        stats_fresh=_reading(_percent_complement(m.stats_off), MetricKind.STATS, 1),
        pct_sorted=_reading(_percent_complement(m.unsorted_pct), MetricKind.SORTED, 1),
        dist_skew=_reading(m.skew_rows, MetricKind.SKEW, 2),
        sort_skew=_reading(m.skew_sortkey1, MetricKind.SKEW, 2),
    )


def visible_metrics(
    metrics: Iterable[TableMetrics], tables: Iterable[TableReference]
) -> List[TableMetrics]:
    """Hide metrics of tables the user currently flags as views."""
    views = {(t.schema, t.name) for t in tables if t.is_view}
    return [m for m in metrics if (m.schemaname, m.tablename) not in views]


def summarize_health(
    metrics: Iterable[TableMetrics], tables: Iterable[TableReference] = ()
) -> List[TableHealth]:
    return [table_health(m) for m in visible_metrics(metrics, tables)]


def coerce_metrics(metrics: Optional[Iterable[Any]]) -> List[TableMetrics]:
    """Accept validated rows, raw mappings or a mix of both."""
    if metrics is None:
        return []
    if isinstance(metrics, Mapping):
        metrics = metrics.values()
    return load_metrics(list(metrics))
