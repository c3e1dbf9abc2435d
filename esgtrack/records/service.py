"""Versioned record service for ESGTrack.

Each company has one active record per ESG record type. Imports, manual
creation and restores install a new version and expire the previous one
inside the caller's transaction; metric upserts and deletes modify the
active version in place. Soft-deleted metrics and superseded versions are
kept for the audit trail.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from esgtrack.categories.layout import CategoryDefinition
from esgtrack.db.models import EsgMetricModel, EsgRecordModel
from esgtrack.errors import (
    ESGTrackError,
    NotFoundError,
    ValidationError,
    wrap_errors,
)
from esgtrack.ingestion import (
    data_period,
    import_source_for,
    new_batch_id,
    parse_file,
    transform_rows,
)
from esgtrack.models import (
    BulkItemResult,
    BulkResult,
    DataType,
    ImportMetadata,
    ImportSource,
    Metric,
    MetricIn,
    RecordCreate,
    RecordImport,
    SourceFile,
    ValidationReport,
    ValidationStatus,
    VerificationStatus,
    VersionSummary,
    YearlySeriesPayload,
    YearlyValue,
)
from esgtrack.records.audit import stamp_actor, utcnow
from esgtrack.records.store import RecordStore
from esgtrack.records.summary import compute_summary_stats
from esgtrack.records.validation import score_metrics

logger = logging.getLogger(__name__)

# Content carried over when a historical version is restored
CLONED_FIELDS = (
    "data_period_start",
    "data_period_end",
    "import_source",
    "source_file_name",
    "original_source",
    "import_batch_id",
    "import_date",
    "source_files",
    "verification_status",
    "verified_by",
    "verified_at",
    "verification_notes",
    "validation_status",
    "validation_errors",
    "validation_notes",
    "data_quality_score",
    "summary_stats",
    "gri_references",
    "forecast_data",
    "risk_assessment",
)

CLONED_METRIC_FIELDS = (
    "position",
    "category",
    "subcategory",
    "metric_name",
    "description",
    "data_type",
    "payload",
    "is_active",
    "created_by",
    "created_at",
    "last_updated_by",
    "updated_at",
)


class VersionedRecordService:
    """Lifecycle of one record type's versioned records.

    The service never commits; callers own the transaction (see
    ``esgtrack.db.get_session``), so each public operation is atomic.
    """

    def __init__(
        self,
        session: AsyncSession,
        definition: CategoryDefinition,
        default_source: str = "CSV Import",
    ):
        """Initialize the service for one record type.

        Args:
            session: SQLAlchemy async session
            definition: Record type (categories, import layout, summary rules)
            default_source: Source label when an import names none
        """
        self.session = session
        self.definition = definition
        self.default_source = default_source
        self.store = RecordStore(session, definition.key)

    # ========================================================================
    # Version installation
    # ========================================================================

    @wrap_errors("CREATE_FAILED", "Failed to create record")
    async def create_record(
        self, company_id: str, data: RecordCreate | dict[str, Any], actor_id: str
    ) -> EsgRecordModel:
        """Create a record from a full manual payload.

        Like imports, this supersedes the company's current version if one
        exists.

        Args:
            company_id: Owning company
            data: Record body with a non-empty ``metrics`` list
            actor_id: User performing the change

        Returns:
            The new active record

        Raises:
            ValidationError: If metrics are missing or malformed
        """
        document = (
            data.model_copy(deep=True)
            if isinstance(data, RecordCreate)
            else RecordCreate.model_validate(data)
        )
        return await self._install_document(
            company_id, document, actor_id, import_source=ImportSource.MANUAL
        )

    @wrap_errors("IMPORT_FAILED", "Failed to import file")
    async def import_from_file(
        self,
        buffer: bytes,
        file_name: str,
        company_id: str,
        actor_id: str,
        metadata: ImportMetadata | None = None,
    ) -> EsgRecordModel:
        """Import a CSV, Excel or JSON file as the company's new version.

        Args:
            buffer: Raw file bytes
            file_name: Original file name; its extension selects the parser
            company_id: Owning company
            actor_id: User performing the import
            metadata: Optional period bounds and source label

        Returns:
            The new active record, summary stats included

        Raises:
            ValidationError: Unsupported or unreadable file, or no metrics found
        """
        metadata = metadata or ImportMetadata()
        parsed = await asyncio.to_thread(parse_file, buffer, file_name)
        source = metadata.original_source or file_name or self.default_source

        if parsed.document is not None:
            document = RecordImport.model_validate(parsed.document)
        else:
            metrics = transform_rows(
                parsed.raw_data, self.definition, source=source, columns=parsed.columns
            )
            if not metrics:
                raise ValidationError(
                    f"No {self.definition.label} metrics found in '{file_name}'",
                    code="NO_METRICS_FOUND",
                )
            document = RecordImport(metrics=metrics)

        document.original_source = document.original_source or metadata.original_source
        document.data_period_start = document.data_period_start or metadata.data_period_start
        document.data_period_end = document.data_period_end or metadata.data_period_end
        document.source_files.append(
            SourceFile(
                name=file_name,
                type=parsed.extension.lstrip("."),
                size=parsed.size,
                uploaded_at=utcnow(),
            )
        )

        return await self._install_document(
            company_id,
            document,
            actor_id,
            import_source=import_source_for(file_name),
            source_file_name=file_name,
            batch_id=new_batch_id(parsed.extension.lstrip(".")),
        )

    @wrap_errors("IMPORT_FAILED", "Failed to import JSON data")
    async def import_from_json(
        self,
        payload: dict[str, Any],
        company_id: str,
        actor_id: str,
        metadata: ImportMetadata | None = None,
    ) -> EsgRecordModel:
        """Import a JSON document holding a ``metrics`` array.

        The payload is validated into new objects first, so the caller's
        dictionary is never modified.

        Raises:
            ValidationError: If ``metrics`` is missing or malformed
        """
        if not isinstance(payload, dict) or not isinstance(payload.get("metrics"), list):
            raise ValidationError(
                "JSON payload must contain a metrics array", code="MISSING_METRICS"
            )
        metadata = metadata or ImportMetadata()
        document = RecordImport.model_validate(payload)
        document.original_source = document.original_source or metadata.original_source
        document.data_period_start = document.data_period_start or metadata.data_period_start
        document.data_period_end = document.data_period_end or metadata.data_period_end

        return await self._install_document(
            company_id,
            document,
            actor_id,
            import_source=ImportSource.MANUAL,
            source_file_name=metadata.file_name,
            batch_id=new_batch_id("manual"),
        )

    @wrap_errors("RESTORE_FAILED", "Failed to restore version")
    async def restore_version(
        self, company_id: str, version_id: UUID, actor_id: str
    ) -> EsgRecordModel:
        """Make a copy of a historical version the active one.

        The target version itself is left as it is; restoring is repeatable.

        Args:
            company_id: Owning company
            version_id: Any version of this company's record
            actor_id: User performing the restore

        Returns:
            The new active record (a clone of the target)

        Raises:
            NotFoundError: If the version does not exist for this company
        """
        target = await self.store.get(version_id, company_id)
        if target is None:
            raise NotFoundError(
                "Version not found or belongs to different company",
                code="VERSION_NOT_FOUND",
            )

        now = utcnow()
        clone = EsgRecordModel(
            id=uuid4(),
            record_type=self.definition.key,
            company_id=company_id,
            is_active=True,
            restored_from_id=target.id,
            restore_notes=f"Restored from version {target.version} on {now.isoformat()}",
            created_by=actor_id,
            created_at=now,
            last_updated_by=actor_id,
            last_updated_at=now,
            **{name: copy.deepcopy(getattr(target, name)) for name in CLONED_FIELDS},
        )
        clone.metrics = [
            EsgMetricModel(
                id=uuid4(),
                **{name: copy.deepcopy(getattr(row, name)) for name in CLONED_METRIC_FIELDS},
            )
            for row in target.metrics
        ]

        await self._install(company_id, clone)
        logger.info(
            "Restored %s version %d for company %s as version %d",
            self.definition.key,
            target.version,
            company_id,
            clone.version,
        )
        return clone

    # ========================================================================
    # Metric mutation on the active version
    # ========================================================================

    @wrap_errors("UPSERT_FAILED", "Failed to upsert metric")
    async def upsert_metric(
        self, company_id: str, metric_data: MetricIn | dict[str, Any], actor_id: str
    ) -> EsgRecordModel:
        """Insert or update one metric of the active record.

        Metrics are matched on (category, metric_name). Fields sent for an
        existing metric replace the stored ones wholesale, so a new
        ``yearly_data`` replaces the whole series. ``created_by`` is never
        changed by an update.

        Args:
            company_id: Owning company
            metric_data: Metric body
            actor_id: User performing the change

        Returns:
            The active record (version 1 if the company had none)

        Raises:
            ValidationError: Malformed metric or category not valid here
        """
        metric = (
            metric_data.model_copy(deep=True)
            if isinstance(metric_data, MetricIn)
            else MetricIn.model_validate(metric_data)
        )
        self._check_categories([metric])

        record = await self.store.get_active(company_id, for_update=True)
        existing = None
        if record is not None:
            existing = next(
                (
                    row
                    for row in record.metrics
                    if row.is_active
                    and row.category == metric.category
                    and row.metric_name == metric.metric_name
                ),
                None,
            )

        if existing is None or metric.touches_payload:
            metric = metric.resolved(existing.data_type if existing is not None else None)
        now = utcnow()
        stamp_actor(metric, actor_id, now)

        if existing is not None:
            sent = metric.model_fields_set
            for name in ("subcategory", "description", "is_active"):
                if name in sent:
                    setattr(existing, name, getattr(metric, name))
            if metric.touches_payload:
                payload = metric.to_payload()
                existing.data_type = payload.data_type
                existing.payload = payload.model_dump(mode="json")
            existing.last_updated_by = actor_id
            existing.updated_at = now
            action = "updated"
        else:
            row = self._metric_row(metric, 0, now)
            row.created_by = actor_id
            row.is_active = True
            if record is None:
                record = self._new_record(company_id, actor_id, now, metrics=[row])
                await self._install(company_id, record)
            else:
                row.position = len(record.metrics)
                record.metrics.append(row)
            action = "added"

        record.last_updated_by = actor_id
        record.last_updated_at = now
        self._refresh_summary(record)
        await self.session.flush()

        logger.info(
            "Metric %s/%s %s on %s version %d",
            metric.category,
            metric.metric_name,
            action,
            self.definition.key,
            record.version,
        )
        return record

    @wrap_errors("UPSERT_FAILED", "Bulk metric update failed")
    async def bulk_upsert_metrics(
        self, company_id: str, items: list[MetricIn | dict[str, Any]], actor_id: str
    ) -> BulkResult:
        """Upsert many metrics, each in its own savepoint.

        A failing item is rolled back and reported; the others still apply.
        """
        results: list[BulkItemResult] = []
        for item in items:
            name = item.metric_name if isinstance(item, MetricIn) else (item or {}).get("metric_name")
            try:
                async with self.session.begin_nested():
                    record = await self.upsert_metric(company_id, item, actor_id)
            except ESGTrackError as exc:
                logger.warning("Bulk upsert of %r failed: %s", name, exc.message)
                results.append(BulkItemResult(metric_name=name, success=False, error=exc.message))
            else:
                results.append(BulkItemResult(metric_name=name, success=True, record_id=record.id))

        successful = sum(1 for result in results if result.success)
        return BulkResult(results=results, successful=successful, failed=len(results) - successful)

    @wrap_errors("DELETE_FAILED", "Failed to delete metric")
    async def delete_metric(
        self, company_id: str, metric_id: UUID, actor_id: str
    ) -> EsgRecordModel:
        """Soft-delete a metric of the active record.

        Deleting an already deleted metric succeeds without changes.

        Raises:
            NotFoundError: If the active record has no metric with this id
        """
        record = await self.store.get_active(company_id, for_update=True)
        row = None
        if record is not None:
            row = next((m for m in record.metrics if m.id == metric_id), None)
        if row is None:
            raise NotFoundError(
                "Metric not found in active record", code="METRIC_NOT_FOUND"
            )

        if row.is_active:
            now = utcnow()
            row.is_active = False
            row.last_updated_by = actor_id
            row.updated_at = now
            record.last_updated_by = actor_id
            record.last_updated_at = now
            self._refresh_summary(record)
            await self.session.flush()
            logger.info("Metric %s soft-deleted by %s", metric_id, actor_id)
        return record

    # ========================================================================
    # Workflow
    # ========================================================================

    @wrap_errors("VALIDATION_FAILED", "Failed to validate data")
    async def validate_data(self, company_id: str) -> ValidationReport:
        """Score the active record's completeness and store the outcome.

        Raises:
            NotFoundError: If the company has no active record
        """
        record = await self._require_active(company_id, for_update=True)
        report = score_metrics(self.to_metrics(record))

        record.validation_status = report.validation_status.value
        record.validation_errors = [issue.model_dump(mode="json") for issue in report.errors]
        record.data_quality_score = report.data_quality_score
        record.validation_notes = f"Auto-validated on {utcnow().isoformat()}"
        await self.session.flush()

        logger.info(
            "Validated %s for company %s: %s (score %d)",
            self.definition.key,
            company_id,
            report.validation_status.value,
            report.data_quality_score,
        )
        return report

    @wrap_errors("VERIFICATION_FAILED", "Failed to update verification status")
    async def update_verification_status(
        self, company_id: str, status: VerificationStatus | str, actor_id: str, notes: str = ""
    ) -> EsgRecordModel:
        try:
            status = VerificationStatus(status)
        except ValueError:
            raise ValidationError(
                f"Invalid verification status '{status}'",
                code="INVALID_STATUS",
                details={"allowed": [s.value for s in VerificationStatus]},
            ) from None

        record = await self._require_active(company_id, for_update=True)
        now = utcnow()
        record.verification_status = status.value
        record.verified_by = actor_id
        record.verified_at = now
        record.verification_notes = notes
        record.last_updated_by = actor_id
        record.last_updated_at = now
        await self.session.flush()
        return record

    # ========================================================================
    # Queries
    # ========================================================================

    @wrap_errors("QUERY_FAILED", "Failed to get company records")
    async def get_company_records(
        self, company_id: str, include_inactive: bool = False
    ) -> list[EsgRecordModel]:
        return await self.store.list_for_company(company_id, include_inactive)

    @wrap_errors("QUERY_FAILED", "Failed to get record")
    async def get_record(self, record_id: UUID, company_id: str) -> EsgRecordModel:
        record = await self.store.get(record_id, company_id)
        if record is None:
            raise NotFoundError("Record not found", code="RECORD_NOT_FOUND")
        return record

    @wrap_errors("QUERY_FAILED", "Failed to get active record")
    async def get_active_record(self, company_id: str) -> EsgRecordModel:
        return await self._require_active(company_id)

    @wrap_errors("QUERY_FAILED", "Failed to get metrics by category")
    async def get_metrics_by_category(self, company_id: str, category: str) -> list[Metric]:
        return [m for m in await self._active_metrics(company_id) if m.category == category]

    @wrap_errors("QUERY_FAILED", "Failed to get metrics by data type")
    async def get_metrics_by_data_type(
        self, company_id: str, data_type: DataType | str
    ) -> list[Metric]:
        try:
            data_type = DataType(data_type)
        except ValueError:
            raise ValidationError(
                f"Invalid data type '{data_type}'",
                details={"allowed": [d.value for d in DataType]},
            ) from None
        return [m for m in await self._active_metrics(company_id) if m.data_type is data_type]

    @wrap_errors("QUERY_FAILED", "Failed to get time series data")
    async def get_time_series(
        self, company_id: str, metric_name: str, category: str | None = None
    ) -> list[YearlyValue]:
        """Yearly values of the first active metric with this name, or []."""
        for metric in await self._active_metrics(company_id):
            if metric.metric_name != metric_name:
                continue
            if category and metric.category != category:
                continue
            if isinstance(metric.payload, YearlySeriesPayload):
                return metric.payload.yearly_data
            return []
        return []

    @wrap_errors("QUERY_FAILED", "Failed to get summary stats")
    async def get_summary_stats(self, company_id: str) -> dict[str, Any]:
        record = await self._require_active(company_id)
        stats = compute_summary_stats(
            self.definition, self.to_metrics(record), record.last_updated_at or utcnow()
        )
        return {
            "summary_stats": stats,
            "data_period_start": record.data_period_start,
            "data_period_end": record.data_period_end,
            "last_updated": record.last_updated_at,
        }

    @wrap_errors("QUERY_FAILED", "Failed to fetch versions")
    async def get_versions(self, company_id: str) -> list[VersionSummary]:
        records = await self.store.list_for_company(company_id, include_inactive=True)
        return [VersionSummary.model_validate(record) for record in records]

    # ========================================================================
    # Helpers
    # ========================================================================

    def _check_categories(self, metrics: list[MetricIn]) -> None:
        for metric in metrics:
            if not self.definition.allows(metric.category):
                raise ValidationError(
                    f"Category '{metric.category}' is not valid for {self.definition.label}",
                    code="INVALID_CATEGORY",
                    details={"allowed": list(self.definition.categories)},
                )

    async def _require_active(self, company_id: str, for_update: bool = False) -> EsgRecordModel:
        record = await self.store.get_active(company_id, for_update=for_update)
        if record is None:
            raise NotFoundError(
                f"No active {self.definition.label} record for company {company_id}",
                code="RECORD_NOT_FOUND",
            )
        return record

    async def _active_metrics(self, company_id: str) -> list[Metric]:
        record = await self.store.get_active(company_id)
        if record is None:
            return []
        return [m for m in self.to_metrics(record) if m.is_active]

    @staticmethod
    def to_metrics(record: EsgRecordModel) -> list[Metric]:
        return [Metric.model_validate(row) for row in record.metrics]

    def _refresh_summary(self, record: EsgRecordModel) -> None:
        record.summary_stats = compute_summary_stats(
            self.definition, self.to_metrics(record), utcnow()
        )

    @staticmethod
    def _metric_row(metric: MetricIn, position: int, now: datetime) -> EsgMetricModel:
        payload = metric.resolved().to_payload()
        return EsgMetricModel(
            id=uuid4(),
            position=position,
            category=metric.category,
            subcategory=metric.subcategory,
            metric_name=metric.metric_name,
            description=metric.description,
            data_type=payload.data_type,
            payload=payload.model_dump(mode="json"),
            is_active=metric.is_active,
            created_by=metric.created_by,
            created_at=now,
        )

    def _new_record(
        self,
        company_id: str,
        actor_id: str,
        now: datetime,
        metrics: list[EsgMetricModel],
        import_source: ImportSource = ImportSource.MANUAL,
        **fields: Any,
    ) -> EsgRecordModel:
        return EsgRecordModel(
            id=uuid4(),
            record_type=self.definition.key,
            company_id=company_id,
            is_active=True,
            import_source=import_source.value,
            import_date=now,
            verification_status=VerificationStatus.UNVERIFIED.value,
            validation_status=ValidationStatus.NOT_VALIDATED.value,
            source_files=[],
            validation_errors=[],
            summary_stats={},
            gri_references=[],
            forecast_data=[],
            risk_assessment=[],
            created_by=actor_id,
            created_at=now,
            last_updated_by=actor_id,
            last_updated_at=now,
            metrics=metrics,
            **fields,
        )

    async def _install_document(
        self,
        company_id: str,
        document: RecordImport,
        actor_id: str,
        *,
        import_source: ImportSource,
        source_file_name: str | None = None,
        batch_id: str | None = None,
    ) -> EsgRecordModel:
        self._check_categories(document.metrics)
        now = utcnow()
        stamp_actor(document.metrics, actor_id, now)

        period_start, period_end = data_period(document.metrics)
        record = self._new_record(
            company_id,
            actor_id,
            now,
            metrics=[
                self._metric_row(metric, position, now)
                for position, metric in enumerate(document.metrics)
            ],
            import_source=import_source,
            source_file_name=source_file_name,
            import_batch_id=batch_id,
            data_period_start=document.data_period_start or period_start,
            data_period_end=document.data_period_end or period_end,
            original_source=document.original_source,
        )
        record.source_files = [f.model_dump(mode="json") for f in document.source_files]
        record.verification_status = document.verification_status.value
        record.gri_references = list(document.gri_references)
        record.forecast_data = copy.deepcopy(document.forecast_data)
        record.risk_assessment = copy.deepcopy(document.risk_assessment)
        self._refresh_summary(record)

        await self._install(company_id, record)
        logger.info(
            "Installed %s version %d for company %s (%s, %d metrics)",
            self.definition.key,
            record.version,
            company_id,
            import_source.value,
            len(record.metrics),
        )
        return record

    async def _install(self, company_id: str, record: EsgRecordModel) -> EsgRecordModel:
        """Insert ``record`` as the active version, chaining it to the current one."""
        current = await self.store.get_active(company_id, for_update=True)
        if current is None:
            record.version = 1
            return await self.store.add(record)

        record.version = current.version + 1
        record.previous_version_id = current.id
        logger.info(
            "Superseding %s version %d for company %s",
            self.definition.key,
            current.version,
            company_id,
        )
        return await self.store.supersede(current, record)
