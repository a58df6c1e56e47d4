from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from joinlens.analyze.join_risk import JoinAnalysis, JoinProfile, JoinStatus
from joinlens.analyze.metrics import TableHealth
from joinlens.analyze.sql_parser import JoinPredicate, JoinType, TableReference


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SqlRequest(BaseModel):
    sql: str = Field("", description="Free-form SQL text")


class AnalyzeRequest(SqlRequest):
    metrics: List[Any] = Field(
        default_factory=list, description="svv_table_info rows, one per table"
    )


class TableReferenceModel(CamelModel):
    name: str
    schema_name: str = Field(..., alias="schema")
    is_view: bool = False

    @classmethod
    def from_reference(cls, ref: TableReference) -> "TableReferenceModel":
        return cls(name=ref.name, schema_name=ref.schema, is_view=ref.is_view)

    def to_reference(self) -> TableReference:
        return TableReference(name=self.name, schema=self.schema_name, is_view=self.is_view)


class JoinPredicateModel(CamelModel):
    left_table: str
    right_table: str
    left_column: str
    right_column: str
    join_type: JoinType

    @classmethod
    def from_predicate(cls, join: JoinPredicate) -> "JoinPredicateModel":
        return cls(
            left_table=join.left_table,
            right_table=join.right_table,
            left_column=join.left_column,
            right_column=join.right_column,
            join_type=join.join_type,
        )


class JoinProfileModel(CamelModel):
    large_table: bool
    dist_key_mismatch: bool


class JoinAnalysisModel(JoinPredicateModel):
    status: JoinStatus
    status_message: str
    optimization: str
    profile: Optional[JoinProfileModel] = None

    @classmethod
    def from_analysis(
        cls, analysis: JoinAnalysis, profile: Optional[JoinProfile] = None
    ) -> "JoinAnalysisModel":
        return cls(
            left_table=analysis.left_table,
            right_table=analysis.right_table,
            left_column=analysis.left_column,
            right_column=analysis.right_column,
            join_type=analysis.join_type,
            status=analysis.status,
            status_message=analysis.status_message,
            optimization=analysis.optimization,
            profile=(
                JoinProfileModel(
                    large_table=profile.large_table,
                    dist_key_mismatch=profile.dist_key_mismatch,
                )
                if profile
                else None
            ),
        )


class TablesResponse(BaseModel):
    tables: List[TableReferenceModel]


class JoinsResponse(BaseModel):
    joins: List[JoinPredicateModel]


class AnalyzeResponse(BaseModel):
    tables: List[TableReferenceModel]
    joins: List[JoinAnalysisModel]


class HealthRequest(BaseModel):
    metrics: List[Any] = Field(default_factory=list)
    tables: List[TableReferenceModel] = Field(
        default_factory=list, description="Tables with their current view flags"
    )


class HealthResponse(BaseModel):
    tables: List[TableHealth]
