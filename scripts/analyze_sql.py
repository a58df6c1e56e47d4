#!/usr/bin/env python3
import sys, json, pathlib, enum
from dataclasses import asdict

from joinlens.analyze.join_risk import annotate_joins
from joinlens.analyze.metrics import MetricsFormatError, index_metrics, load_metrics
from joinlens.analyze.sql_parser import extract_joins, extract_tables

USAGE = "Usage: analyze_sql.py <payload.json | query.sql>"


def _load_payload(path: pathlib.Path) -> dict:
    """
    *.json -> {"sql": "...", "metrics": [...]}
    anything else is read as plain SQL text without metrics
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() != ".json":
        return {"sql": raw, "metrics": []}
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise MetricsFormatError("Payload must be a JSON object")
    return payload


def _plain(obj) -> dict:
    return {
        k: v.value if isinstance(v, enum.Enum) else v for k, v in asdict(obj).items()
    }


def build_report(payload: dict) -> dict:
    sql = payload.get("sql") or ""
    metrics = load_metrics(payload.get("metrics") or [])
    index = index_metrics(metrics)
    analyses = annotate_joins(extract_joins(sql), index)
    return {
        "tables": [_plain(t) for t in extract_tables(sql)],
        "joins": [_plain(a) for a in analyses],
        "metrics_tables": sorted(index),
    }


def main():
    if len(sys.argv) != 2:
        print(USAGE)
        sys.exit(2)

    src = pathlib.Path(sys.argv[1])
    if not src.exists():
        print(f"[ERROR] File not found: {src}\n{USAGE}")
        sys.exit(2)

    try:
        report = build_report(_load_payload(src))
    except (json.JSONDecodeError, MetricsFormatError) as e:
        print(f"[ERROR] {src}: {e}")
        sys.exit(2)

    out = src.with_suffix(".analysis.json")
    out.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")

    print(f"OK: analysis written to {out}")
    print(f"Tables: {len(report['tables'])}, joins: {len(report['joins'])}")
    for j in report["joins"]:
        print(
            f"  [{j['status']}] {j['left_table']}.{j['left_column']} "
            f"{j['join_type']} {j['right_table']}.{j['right_column']}: {j['status_message']}"
        )


if __name__ == "__main__":
    main()
