"""SQLAlchemy mapping metadata for the cleanse domain model."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from functools import cache
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from cleanse.domain.model import (
    AnalysisRun,
    AnalysisRunStatus,
    Issue,
    IssueAction,
    IssueHistoryEntry,
    ResolutionStatus,
)

log = logging.getLogger(__name__)

ID_LENGTH = 64


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JsonText(TypeDecorator[Any]):
    """JSON document stored as text; ``None`` stays SQL ``NULL``."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: Dialect) -> str | None:  # noqa: ANN401
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, sort_keys=True, default=str)

    def process_result_value(self, value: str | None, dialect: Dialect) -> Any:  # noqa: ANN401
        _ = dialect
        if value is None:
            return None
        return json.loads(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

issue_table = Table(
    "issue",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("operation_id", String(ID_LENGTH), nullable=False, default=""),
    Column("cts_lid_full_identifier", String, nullable=False, default=""),
    Column("cph", String, nullable=False),
    Column("issue_code", String(ID_LENGTH), nullable=False),
    Column("rule_code", String(ID_LENGTH), nullable=False),
    Column("error_code", String(ID_LENGTH), nullable=False),
    Column("error_description", Text, nullable=False, default=""),
    Column("email_cts", JsonText, nullable=True),
    Column("email_sam", String, nullable=True),
    Column("tel_cts", JsonText, nullable=True),
    Column("tel_sam", String, nullable=True),
    Column("fsa", String, nullable=True),
    Column("context_data", JsonText, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("last_updated_at", UTCDateTime, nullable=False),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("is_ignored", Boolean, nullable=False, default=False),
    Column(
        "resolution_status",
        Enum(ResolutionStatus, native_enum=False),
        nullable=False,
        default=ResolutionStatus.NONE,
    ),
    Column("assigned_to", String, nullable=True),
    Index("ix_issue_active_code_cph", "is_active", "issue_code", "cph"),
    Index("ix_issue_operation_id", "operation_id"),
)

issue_history_table = Table(
    "issue_history",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("issue_id", String(ID_LENGTH), ForeignKey("issue.id"), nullable=False),
    Column("action", Enum(IssueAction, native_enum=False), nullable=False),
    Column("performed_by", String, nullable=False),
    Column("detail", Text, nullable=True),
    Column("occurred_at", UTCDateTime, nullable=False),
    Index("ix_issue_history_issue_occurred", "issue_id", "occurred_at"),
)

analysis_run_table = Table(
    "analysis_run",
    mapper_registry.metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("status", Enum(AnalysisRunStatus, native_enum=False), nullable=False),
    Column("started_at", UTCDateTime, nullable=False),
    Column("completed_at", UTCDateTime, nullable=True),
    Column("progress_percentage", Float, nullable=False, default=0.0),
    Column("status_description", String, nullable=False, default=""),
    Column("records_analyzed", Integer, nullable=False, default=0),
    Column("total_records", Integer, nullable=False, default=0),
    Column("issues_found", Integer, nullable=False, default=0),
    Column("issues_resolved", Integer, nullable=False, default=0),
    Column("error", Text, nullable=True),
    Column("duration_ms", Integer, nullable=True),
    Column("report_object_key", String, nullable=True),
    Column("report_url", String, nullable=True),
    Index("ix_analysis_run_started_at", "started_at"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Issue, issue_table)
    mapper_registry.map_imperatively(IssueHistoryEntry, issue_history_table)
    mapper_registry.map_imperatively(AnalysisRun, analysis_run_table)

    orm.configure_mappers()
    return mapper_registry
