import pytest

from joinlens.analyze.join_risk import (
    JoinProfile,
    JoinStatus,
    analyze_joins,
    annotate_joins,
    classify_join,
    profile_join,
)
from joinlens.analyze.metrics import TableMetrics
from joinlens.analyze.sql_parser import JoinPredicate, JoinType

ORDERS_USERS_SQL = (
    "SELECT * FROM sales.orders o JOIN public.users u ON o.user_id = u.id"
)


def _metrics(name: str, **overrides) -> TableMetrics:
    row = {
        "dbname": "DATAWAREHOUSE",
        "schemaname": "public",
        "tablename": name,
        "diststyle": "KEY",
        "dist_key": "id",
        "sortkey1": "date_id",
        "tbl_rows": 5_000_000,
        "skew_rows": 1.0,
        "stats_off": 1.0,
    }
    row.update(overrides)
    return TableMetrics(**row)


@pytest.fixture
def join():
    return JoinPredicate("orders", "users", "user_id", "id", JoinType.INNER)


def test_missing_metrics_wins_over_everything(join):
    analyses = annotate_joins([join], [_metrics("orders", skew_rows=99, diststyle="EVEN")])
    assert len(analyses) == 1
    assert analyses[0].status == JoinStatus.WARNING
    assert analyses[0].status_message == "Missing table metrics"
    assert analyses[0].optimization == "Verify table existence and permissions"


def test_dist_mismatch_on_large_tables_is_critical(join):
    analyses = annotate_joins(
        [join],
        [_metrics("orders", diststyle="KEY"), _metrics("users", diststyle="EVEN")],
    )
    assert analyses[0].status == JoinStatus.CRITICAL
    assert analyses[0].status_message == "Distribution key mismatch"
    assert (
        analyses[0].optimization
        == "Align distribution keys or redistribute smaller table"
    )


def test_dist_mismatch_beats_skew_and_stale_stats():
    status, message, _ = classify_join(
        _metrics("orders", diststyle="ALL", skew_rows=50, stats_off=80, sortkey1=""),
        _metrics("users", diststyle="EVEN", tbl_rows=100_000),
    )
    assert status == JoinStatus.CRITICAL
    assert message == "Distribution key mismatch"


def test_dist_mismatch_with_small_table_is_not_critical():
    status, message, _ = classify_join(
        _metrics("orders", diststyle="KEY"),
        _metrics("users", diststyle="ALL", tbl_rows=99_999),
    )
    assert status == JoinStatus.OPTIMAL
    assert message == "Optimal join configuration"


@pytest.mark.parametrize(
    "overrides, message, optimization",
    [
        (
            {"skew_rows": 20.5},
            "High data skew detected",
            "Review distribution strategy and key selection",
        ),
        (
            {"sortkey1": ""},
            "Missing sort keys",
            "Add sort keys to improve join performance",
        ),
        (
            {"sortkey1": None, "stats_off": 50},
            "Missing sort keys",
            "Add sort keys to improve join performance",
        ),
        (
            {"stats_off": 10.1},
            "Stale statistics",
            "Run ANALYZE to update table statistics",
        ),
    ],
)
def test_warning_rules(join, overrides, message, optimization):
    analyses = annotate_joins(
        [join], [_metrics("orders"), _metrics("users", **overrides)]
    )
    assert analyses[0].status == JoinStatus.WARNING
    assert analyses[0].status_message == message
    assert analyses[0].optimization == optimization


def test_thresholds_are_exclusive(join):
    analyses = annotate_joins(
        [join], [_metrics("orders", skew_rows=20, stats_off=10), _metrics("users")]
    )
    assert analyses[0].status == JoinStatus.OPTIMAL
    assert analyses[0].optimization == "No optimization needed"


def test_annotation_keeps_join_fields(join):
    analysis = annotate_joins([join], [_metrics("orders"), _metrics("users")])[0]
    assert (
        analysis.left_table,
        analysis.right_table,
        analysis.left_column,
        analysis.right_column,
        analysis.join_type,
    ) == ("orders", "users", "user_id", "id", JoinType.INNER)


def test_lookup_ignores_schema_and_first_row_wins(join):
    analyses = annotate_joins(
        [join],
        [
            _metrics("orders", schemaname="sales"),
            _metrics("orders", schemaname="archive", skew_rows=90),
            _metrics("users"),
        ],
    )
    assert analyses[0].status == JoinStatus.OPTIMAL


def test_analyze_joins_with_raw_rows():
    analyses = analyze_joins(
        ORDERS_USERS_SQL,
        [_metrics("orders").model_dump(), _metrics("users").model_dump()],
    )
    assert [a.status for a in analyses] == [JoinStatus.OPTIMAL]


def test_analyze_joins_malformed_row_counts_as_missing():
    analyses = analyze_joins(
        ORDERS_USERS_SQL,
        [_metrics("orders").model_dump(), {"tablename": "users", "diststyle": "KEY"}],
    )
    assert analyses[0].status == JoinStatus.WARNING
    assert analyses[0].status_message == "Missing table metrics"


def test_analyze_joins_keeps_order_and_length():
    sql = (
        "select * from a join b on a.id = b.id; "
        "select * from c left join d on c.x = d.x"
    )
    analyses = analyze_joins(sql, [])
    assert [(a.left_table, a.right_table) for a in analyses] == [("a", "b"), ("c", "d")]
    assert all(a.status_message == "Missing table metrics" for a in analyses)


def test_analyze_joins_empty_input():
    assert analyze_joins("", None) == []
    assert analyze_joins(None, []) == []


def test_inputs_not_mutated(join):
    metrics = [_metrics("orders"), _metrics("users")]
    before = [m.model_copy() for m in metrics]
    annotate_joins([join], metrics)
    assert metrics == before


def test_profile_join(join):
    profile = profile_join(
        join,
        [
            _metrics("orders", dist_key="user_id", tbl_rows=2_000_000),
            _metrics("users", dist_key="id", tbl_rows=10),
        ],
    )
    assert profile == JoinProfile(large_table=True, dist_key_mismatch=True)

    profile = profile_join(
        join,
        [
            _metrics("orders", tbl_rows=1_000_000),
            _metrics("users", tbl_rows=1_000_000),
        ],
    )
    assert profile == JoinProfile(large_table=False, dist_key_mismatch=False)


def test_profile_join_lowercase_key_style(join):
    profile = profile_join(
        join,
        [
            _metrics("orders", diststyle="key", dist_key="user_id"),
            _metrics("users", diststyle="KEY", dist_key="id"),
        ],
    )
    assert profile.dist_key_mismatch is True

    profile = profile_join(
        join,
        [
            _metrics("orders", diststyle="key", dist_key="id"),
            _metrics("users", diststyle="KEY", dist_key="id"),
        ],
    )
    assert profile.dist_key_mismatch is False


def test_profile_join_missing_metrics(join):
    assert profile_join(join, [_metrics("orders")]) is None
