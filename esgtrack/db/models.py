"""SQLAlchemy async database models for ESGTrack.

One row of ``esg_records`` is one version of a company's record for one ESG
record type. Exactly one version per (company_id, record_type) is active;
the partial unique index below makes the database reject a second one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class EsgRecordModel(Base):
    """Versioned per-company record holding the metrics of one ESG area."""

    __tablename__ = "esg_records"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    record_type: Mapped[str] = mapped_column(Text, nullable=False)  # "irrigation_efficiency"
    company_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    # Version chain
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    previous_version_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True))
    restored_from_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True))
    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)
    restore_notes: Mapped[str | None] = mapped_column(Text)

    # Reporting period ("2022", "2025")
    data_period_start: Mapped[str | None] = mapped_column(Text)
    data_period_end: Mapped[str | None] = mapped_column(Text)

    # Provenance
    import_source: Mapped[str] = mapped_column(Text, nullable=False, default="manual")
    source_file_name: Mapped[str | None] = mapped_column(Text)
    original_source: Mapped[str | None] = mapped_column(Text)
    import_batch_id: Mapped[str | None] = mapped_column(Text, index=True)
    import_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    source_files: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Verification workflow
    verification_status: Mapped[str] = mapped_column(Text, nullable=False, default="unverified")
    verified_by: Mapped[str | None] = mapped_column(Text)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verification_notes: Mapped[str | None] = mapped_column(Text)

    # Automatic validation
    validation_status: Mapped[str] = mapped_column(Text, nullable=False, default="not_validated")
    validation_errors: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    validation_notes: Mapped[str | None] = mapped_column(Text)
    data_quality_score: Mapped[int | None] = mapped_column(Integer)

    # Derived and supplementary data
    summary_stats: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    gri_references: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    forecast_data: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    risk_assessment: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    # Audit
    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    last_updated_by: Mapped[str | None] = mapped_column(Text)
    last_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    metrics: Mapped[list["EsgMetricModel"]] = relationship(
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="EsgMetricModel.position",
        lazy="selectin",
    )

    __table_args__ = (
        # One active version per (company_id, record_type)
        Index(
            "idx_esg_record_active_unique",
            "company_id",
            "record_type",
            unique=True,
            postgresql_where=text("is_active = true"),
            sqlite_where=text("is_active = 1"),
        ),
        UniqueConstraint("company_id", "record_type", "version", name="uq_esg_record_version"),
        Index("idx_esg_record_lookup", "company_id", "record_type", "is_active"),
    )


class EsgMetricModel(Base):
    """Metric belonging to one record version.

    ``payload`` holds the data-type specific part (yearly_data, single_value,
    list_data or summary_value) as validated JSON.
    """

    __tablename__ = "esg_metrics"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    record_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("esg_records.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    category: Mapped[str] = mapped_column(Text, nullable=False)
    subcategory: Mapped[str | None] = mapped_column(Text)
    metric_name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    data_type: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    is_active: Mapped[bool] = mapped_column(nullable=False, default=True)  # soft delete

    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_updated_by: Mapped[str | None] = mapped_column(Text)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    record: Mapped[EsgRecordModel] = relationship(back_populates="metrics")

    __table_args__ = (Index("idx_esg_metric_key", "record_id", "category", "metric_name"),)
