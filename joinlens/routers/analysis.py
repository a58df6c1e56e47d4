import logging

from fastapi import APIRouter

from joinlens.analyze.join_risk import annotate_joins, profile_join
from joinlens.analyze.metrics import coerce_metrics, index_metrics, summarize_health
from joinlens.analyze.sql_parser import extract_joins, extract_tables
from joinlens.model import (
    AnalyzeRequest,
    AnalyzeResponse,
    HealthRequest,
    HealthResponse,
    JoinAnalysisModel,
    JoinPredicateModel,
    JoinsResponse,
    SqlRequest,
    TableReferenceModel,
    TablesResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["analysis"],
    responses={401: {"description": "Unauthorized"}},
)


@router.post("/tables", response_model=TablesResponse)
def tables(req: SqlRequest):
    found = extract_tables(req.sql)
    return {"tables": [TableReferenceModel.from_reference(t) for t in found]}


@router.post("/joins", response_model=JoinsResponse)
def joins(req: SqlRequest):
    found = extract_joins(req.sql)
    return {"joins": [JoinPredicateModel.from_predicate(j) for j in found]}


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze(req: AnalyzeRequest):
    index = index_metrics(coerce_metrics(req.metrics))
    analyses = annotate_joins(extract_joins(req.sql), index)
    logger.info(
        "Analyzed %d join(s), metrics for %d table(s)", len(analyses), len(index)
    )
    return {
        "tables": [
            TableReferenceModel.from_reference(t) for t in extract_tables(req.sql)
        ],
        "joins": [
            JoinAnalysisModel.from_analysis(a, profile_join(a, index))
            for a in analyses
        ],
    }


@router.post("/health", response_model=HealthResponse)
def health(req: HealthRequest):
    metrics = coerce_metrics(req.metrics)
    tables = [t.to_reference() for t in req.tables]
    return {"tables": summarize_health(metrics, tables)}
