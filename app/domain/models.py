from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic import Field as PydanticField
from pydantic.alias_generators import to_camel
from sqlalchemy import JSON, BigInteger, DateTime
from sqlmodel import Field, SQLModel

GPS_UNAVAILABLE = "GPS location unavailable"

# Record ids travel as JSON numbers, so they stay inside the exact integer range of a double.
_JS_SAFE_INTEGER_MASK = (1 << 53) - 1

TEXT_FIELDS = (
    "report_number",
    "district",
    "cap_practitioner",
    "address_of_infraction",
    "nearest_landmark",
    "gps_coordinates",
    "date_of_identification",
    "number_of_floors",
    "stage_of_work",
    "observations_rich_text",
    "executive_summary",
    "site_location",
    "type_of_building",
    "recommendation_status",
    "challenges_and_limitations",
)


# Locale-formatted timestamps written by older clients.
LEGACY_TIMESTAMP_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",
    "%d/%m/%Y, %H:%M:%S",
    "%m/%d/%Y, %H:%M:%S",
)


def now_utc() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value: Any) -> Any:
    """Read ISO 8601 and legacy locale timestamps; anything else is returned unchanged."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in LEGACY_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return value


def new_record_id() -> int:
    return uuid4().int & _JS_SAFE_INTEGER_MASK


def new_photo_id() -> str:
    return uuid4().hex


class Collection(StrEnum):
    DRAFTS = "drafts"
    REPORTS = "reports"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class BuildingState(CamelModel):
    abandoned: bool = False
    completed: bool = False
    under_construction: bool = False
    distressed: bool = False


class ObservationChecklist(CamelModel):
    notice_letter: bool = False
    no_planning_permit: bool = False
    no_stage_certification: bool = False
    no_insurance: bool = False
    no_project_board: bool = False
    non_conformity: bool = False
    harassment: bool = False
    false_information: bool = False
    break_of_seal: bool = False
    no_certificate_of_completion: bool = False
    no_fire_safety: bool = False
    distressed_structure: bool = False
    no_demolition_permit: bool = False
    no_authorization_to_demolish: bool = False
    other_observations: str = ""


class PhotoAttachment(CamelModel):
    id: str = PydanticField(default_factory=new_photo_id)
    data: str
    gps: str = GPS_UNAVAILABLE
    timestamp: str = ""
    title: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _legacy_numeric_id(cls, value: Any) -> Any:
        # Older clients minted photo ids as floating point numbers.
        if isinstance(value, int | float):
            return str(value)
        return value

    @field_validator("title", mode="before")
    @classmethod
    def _none_title(cls, value: Any) -> Any:
        return "" if value is None else value


class ReportFields(CamelModel):
    id: int | None = None
    report_number: str = ""
    district: str = ""
    cap_practitioner: str = ""
    address_of_infraction: str = ""
    nearest_landmark: str = ""
    gps_coordinates: str = ""
    date_of_identification: str = ""
    number_of_floors: str = ""
    stage_of_work: str = ""
    state_of_building: BuildingState = PydanticField(default_factory=BuildingState)
    observations: ObservationChecklist = PydanticField(default_factory=ObservationChecklist)
    observations_rich_text: str = ""
    executive_summary: str = ""
    site_location: str = ""
    type_of_building: str = ""
    recommendation_status: str = ""
    challenges_and_limitations: str = ""
    photos: list[PhotoAttachment] = PydanticField(default_factory=list)

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("state_of_building", "observations", mode="before")
    @classmethod
    def _none_group(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("photos", mode="before")
    @classmethod
    def _none_photos(cls, value: Any) -> Any:
        return [] if value is None else value


class DraftRecord(ReportFields):
    saved_at: datetime | None = None

    @field_validator("saved_at", mode="before")
    @classmethod
    def _legacy_saved_at(cls, value: Any) -> Any:
        return parse_timestamp(value)

    @field_validator("saved_at")
    @classmethod
    def _saved_at_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class ReportRecord(ReportFields):
    generated_at: datetime | None = None

    @field_validator("generated_at", mode="before")
    @classmethod
    def _legacy_generated_at(cls, value: Any) -> Any:
        return parse_timestamp(value)

    @field_validator("generated_at")
    @classmethod
    def _generated_at_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None


class DraftSummary(DraftRecord):
    """List entry: ``photo_count`` says how many photos the stored draft holds, even when ``photos`` is empty."""

    photos: list[PhotoAttachment] = PydanticField(default_factory=list, exclude=True)
    photo_count: int = 0

    @model_validator(mode="after")
    def _count_loaded_photos(self) -> DraftSummary:
        self.photo_count = max(self.photo_count, len(self.photos))
        return self

    @property
    def photos_loaded(self) -> bool:
        return len(self.photos) >= self.photo_count

    @classmethod
    def from_record(cls, record: DraftRecord) -> DraftSummary:
        return cls.model_validate({**record.model_dump(), "photo_count": len(record.photos)})


class ReportSummary(ReportRecord):
    photos: list[PhotoAttachment] = PydanticField(default_factory=list, exclude=True)
    photo_count: int = 0

    @model_validator(mode="after")
    def _count_loaded_photos(self) -> ReportSummary:
        self.photo_count = max(self.photo_count, len(self.photos))
        return self

    @property
    def photos_loaded(self) -> bool:
        return len(self.photos) >= self.photo_count

    @classmethod
    def from_record(cls, record: ReportRecord) -> ReportSummary:
        return cls.model_validate({**record.model_dump(), "photo_count": len(record.photos)})


class RecordAck(BaseModel):
    success: bool = True


class RecordColumns(SQLModel):
    id: int = Field(primary_key=True, sa_type=BigInteger, sa_column_kwargs={"autoincrement": False})
    report_number: str | None = Field(default=None, index=True)
    district: str | None = None
    cap_practitioner: str | None = None
    address_of_infraction: str | None = None
    nearest_landmark: str | None = None
    gps_coordinates: str | None = None
    date_of_identification: str | None = None
    number_of_floors: str | None = None
    stage_of_work: str | None = None
    state_of_building: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    observations: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    observations_rich_text: str | None = None
    executive_summary: str | None = None
    site_location: str | None = None
    type_of_building: str | None = None
    recommendation_status: str | None = None
    challenges_and_limitations: str | None = None
    photos: list[dict[str, Any]] = Field(default_factory=list, sa_type=JSON)


class DraftRow(RecordColumns, table=True):
    __tablename__ = "drafts"

    saved_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True), index=True)


class ReportRow(RecordColumns, table=True):
    __tablename__ = "reports"

    generated_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True), index=True)
