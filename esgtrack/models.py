"""ESGTrack Pydantic models for type-safe data validation.

A Metric carries exactly one payload, selected by ``data_type``:

- yearly_series: ``yearly_data`` (list of YearlyValue)
- single_value: ``single_value``
- list: ``list_data``
- summary: ``summary_value``

``MetricPayload`` is a discriminated union, so a stored metric cannot hold
more than one payload shape. ``MetricIn`` is the flat shape accepted from
clients and importers; it rejects payload fields that do not match its
``data_type``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

from esgtrack.core.parsing import first_year, parse_number


class DataType(str, Enum):
    """Payload kinds a metric can hold."""

    YEARLY_SERIES = "yearly_series"
    SINGLE_VALUE = "single_value"
    LIST = "list"
    SUMMARY = "summary"


class ImportSource(str, Enum):
    """How a record entered the system."""

    CSV = "csv"
    EXCEL = "excel"
    MANUAL = "manual"
    API = "api"
    PDF_EXTRACTION = "pdf_extraction"


class VerificationStatus(str, Enum):
    """Human verification workflow state."""

    UNVERIFIED = "unverified"
    PENDING_REVIEW = "pending_review"
    VERIFIED = "verified"
    AUDITED = "audited"
    DISPUTED = "disputed"


class ValidationStatus(str, Enum):
    """Automatic completeness check state."""

    NOT_VALIDATED = "not_validated"
    VALIDATING = "validating"
    VALIDATED = "validated"
    FAILED_VALIDATION = "failed_validation"


class Severity(str, Enum):
    """Validation issue severity."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


CellValue = Union[int, float, str, None]


# ============================================================================
# Payload values
# ============================================================================


class YearlyValue(BaseModel):
    """One observation in a yearly series."""

    year: str  # "2024" or a range such as "2022→2023"
    value: CellValue = None
    numeric_value: float | None = None
    unit: str | None = None
    source: str
    notes: str | None = None
    fiscal_year: int | None = None

    added_by: str | None = None
    added_at: datetime | None = None
    last_updated_by: str | None = None
    last_updated_at: datetime | None = None

    @field_validator("year", mode="before")
    @classmethod
    def year_as_text(cls, v: Any) -> Any:
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        if isinstance(v, int):
            return str(v)
        return v

    @model_validator(mode="after")
    def derive_numbers(self) -> YearlyValue:
        if self.numeric_value is None:
            self.numeric_value = parse_number(self.value)
        if self.fiscal_year is None:
            self.fiscal_year = first_year(self.year)
        return self


class SingleValue(BaseModel):
    """A point-in-time value such as a status or a named auditor."""

    value: CellValue = None
    numeric_value: float | None = None
    unit: str | None = None
    source: str | None = None
    notes: str | None = None
    as_of_date: datetime | None = None

    added_by: str | None = None
    added_at: datetime | None = None

    @model_validator(mode="after")
    def derive_number(self) -> SingleValue:
        if self.numeric_value is None:
            self.numeric_value = parse_number(self.value)
        return self

    @property
    def is_empty(self) -> bool:
        return self.value is None or (isinstance(self.value, str) and not self.value.strip())


class ListItem(BaseModel):
    """Entry of a list metric.

    Layout-specific fields (board member ``role``, initiative
    ``beneficiaries``) are kept as extra attributes.
    """

    model_config = ConfigDict(extra="allow")

    item: str | None = None
    count: float | None = None
    details: str | None = None
    source: str | None = None

    added_by: str | None = None
    added_at: datetime | None = None


class SummaryValue(BaseModel):
    """Headline figure with its trend note."""

    key_metric: str | None = None
    latest_value: CellValue = None
    numeric_value: float | None = None
    trend: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def derive_number(self) -> SummaryValue:
        if self.numeric_value is None:
            self.numeric_value = parse_number(self.latest_value)
        return self


# ============================================================================
# Metric payload (tagged union)
# ============================================================================


class YearlySeriesPayload(BaseModel):
    data_type: Literal["yearly_series"] = "yearly_series"
    yearly_data: list[YearlyValue] = Field(default_factory=list)


class SingleValuePayload(BaseModel):
    data_type: Literal["single_value"] = "single_value"
    single_value: SingleValue | None = None


class ListPayload(BaseModel):
    data_type: Literal["list"] = "list"
    list_data: list[ListItem] = Field(default_factory=list)


class SummaryPayload(BaseModel):
    data_type: Literal["summary"] = "summary"
    summary_value: SummaryValue | None = None


MetricPayload = Annotated[
    Union[YearlySeriesPayload, SingleValuePayload, ListPayload, SummaryPayload],
    Field(discriminator="data_type"),
]

PAYLOAD_FIELDS: dict[DataType, str] = {
    DataType.YEARLY_SERIES: "yearly_data",
    DataType.SINGLE_VALUE: "single_value",
    DataType.LIST: "list_data",
    DataType.SUMMARY: "summary_value",
}


class MetricIn(BaseModel):
    """Metric as sent by clients, JSON imports and file importers."""

    model_config = ConfigDict(extra="ignore")

    category: str
    subcategory: str | None = None
    metric_name: str
    description: str | None = None
    # None means "keep the stored type" on updates, yearly_series otherwise
    data_type: DataType | None = None

    yearly_data: list[YearlyValue] | None = None
    single_value: SingleValue | None = None
    list_data: list[ListItem] | None = None
    summary_value: SummaryValue | None = None

    is_active: bool = True
    created_by: str | None = None

    @model_validator(mode="after")
    def single_payload(self) -> MetricIn:
        if self.data_type is None:
            return self
        expected = PAYLOAD_FIELDS[self.data_type]
        stray = [
            name
            for name in PAYLOAD_FIELDS.values()
            if name != expected and getattr(self, name) not in (None, [])
        ]
        if stray:
            raise ValueError(
                f"{', '.join(stray)} not allowed for data_type '{self.data_type.value}'"
            )
        return self

    @property
    def touches_payload(self) -> bool:
        """True when the caller sent a data type or any payload field."""
        sent = self.model_fields_set
        return "data_type" in sent or any(name in sent for name in PAYLOAD_FIELDS.values())

    def resolved(self, data_type: DataType | str | None = None) -> MetricIn:
        """Return a copy whose data type is fixed.

        An explicit ``data_type`` on the metric wins; otherwise the given
        one (the stored metric's, on updates) is used, then yearly_series.
        The payload is re-checked against the result.

        Raises:
            pydantic.ValidationError: If the payload does not fit the type
        """
        if self.data_type is not None:
            return self
        fields = self.model_dump(exclude_unset=True)
        fields["data_type"] = DataType(data_type or DataType.YEARLY_SERIES)
        return MetricIn.model_validate(fields)

    def to_payload(self) -> YearlySeriesPayload | SingleValuePayload | ListPayload | SummaryPayload:
        data_type = self.data_type or DataType.YEARLY_SERIES
        if data_type is DataType.YEARLY_SERIES:
            return YearlySeriesPayload(yearly_data=self.yearly_data or [])
        if data_type is DataType.SINGLE_VALUE:
            return SingleValuePayload(single_value=self.single_value)
        if data_type is DataType.LIST:
            return ListPayload(list_data=self.list_data or [])
        return SummaryPayload(summary_value=self.summary_value)


class Metric(BaseModel):
    """Stored metric as read back from a record."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    category: str
    subcategory: str | None = None
    metric_name: str
    description: str | None = None
    payload: MetricPayload
    is_active: bool = True

    created_by: str | None = None
    created_at: datetime | None = None
    last_updated_by: str | None = None
    updated_at: datetime | None = None

    @property
    def data_type(self) -> DataType:
        return DataType(self.payload.data_type)

    def as_dict(self) -> dict[str, Any]:
        """Flat wire shape: payload fields sit beside the metric fields."""
        data = self.model_dump(mode="json", exclude={"payload"})
        data.update(self.payload.model_dump(mode="json"))
        return data


# ============================================================================
# Record inputs
# ============================================================================


class SourceFile(BaseModel):
    name: str
    type: str | None = None
    size: int | None = None
    uploaded_at: datetime | None = None


class RecordImport(BaseModel):
    """Body of a JSON import."""

    model_config = ConfigDict(extra="ignore")

    metrics: list[MetricIn]
    data_period_start: str | None = None
    data_period_end: str | None = None
    original_source: str | None = None
    source_files: list[SourceFile] = Field(default_factory=list)
    verification_status: VerificationStatus = VerificationStatus.UNVERIFIED
    gri_references: list[str] = Field(default_factory=list)
    forecast_data: list[dict[str, Any]] = Field(default_factory=list)
    risk_assessment: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("data_period_start", "data_period_end", mode="before")
    @classmethod
    def period_as_text(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class RecordCreate(RecordImport):
    """Full replacement payload for manual entry."""

    metrics: list[MetricIn] = Field(min_length=1)


class ImportMetadata(BaseModel):
    """Caller-supplied context for an import."""

    file_name: str | None = None
    original_source: str | None = None
    data_period_start: str | None = None
    data_period_end: str | None = None


# ============================================================================
# Results
# ============================================================================


class ValidationIssue(BaseModel):
    metric_name: str | None
    field: str
    severity: Severity
    error_message: str


class ValidationReport(BaseModel):
    validation_status: ValidationStatus
    data_quality_score: int
    error_count: int
    errors: list[ValidationIssue]
    has_critical_errors: bool


class BulkItemResult(BaseModel):
    metric_name: str | None
    success: bool
    record_id: UUID | None = None
    error: str | None = None


class BulkResult(BaseModel):
    results: list[BulkItemResult]
    successful: int
    failed: int


class VersionSummary(BaseModel):
    """One entry of a company's version history."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    version: int
    is_active: bool
    created_at: datetime | None = None
    created_by: str | None = None
    verification_status: VerificationStatus
    data_period_start: str | None = None
    data_period_end: str | None = None
    previous_version_id: UUID | None = None
    restored_from_id: UUID | None = None
    summary_stats: dict[str, Any] = Field(default_factory=dict)


class RecordView(BaseModel):
    """Full record as returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    record_type: str
    company_id: str
    version: int
    previous_version_id: UUID | None = None
    restored_from_id: UUID | None = None
    is_active: bool

    data_period_start: str | None = None
    data_period_end: str | None = None

    import_source: ImportSource
    source_file_name: str | None = None
    original_source: str | None = None
    import_batch_id: str | None = None
    import_date: datetime | None = None
    source_files: list[dict[str, Any]] = Field(default_factory=list)

    verification_status: VerificationStatus
    verified_by: str | None = None
    verified_at: datetime | None = None
    verification_notes: str | None = None
    validation_status: ValidationStatus
    validation_errors: list[dict[str, Any]] = Field(default_factory=list)
    validation_notes: str | None = None
    data_quality_score: int | None = None

    summary_stats: dict[str, Any] = Field(default_factory=dict)
    gri_references: list[str] = Field(default_factory=list)
    forecast_data: list[dict[str, Any]] = Field(default_factory=list)
    risk_assessment: list[dict[str, Any]] = Field(default_factory=list)
    restore_notes: str | None = None

    created_by: str | None = None
    created_at: datetime | None = None
    last_updated_by: str | None = None
    last_updated_at: datetime | None = None

    metrics: list[Metric] = Field(default_factory=list)

    @field_serializer("metrics")
    def flatten_metrics(self, metrics: list[Metric]) -> list[dict[str, Any]]:
        return [metric.as_dict() for metric in metrics]
