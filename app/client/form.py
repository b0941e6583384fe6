from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from app.adapters.base import LocationError, LocationProvider, Position
from app.adapters.location_adapter import UnavailableLocationAdapter
from app.domain.models import GPS_UNAVAILABLE, DraftRecord, PhotoAttachment, ReportFields
from app.domain.rich_text import NarrativeEditor
from app.domain.state_machine import ReportState, can_transition
from app.services.export_service import validate_exportable

logger = logging.getLogger(__name__)

LOCATION_TIMEOUT_SECONDS = 5.0
PHOTO_TIMESTAMP_FORMAT = "%m/%d/%Y, %I:%M:%S %p"

# Identity, timestamps and photos have dedicated operations.
_RESERVED_FIELDS = {"id", "saved_at", "photos"}


class FormError(Exception):
    pass


class UnknownFieldError(FormError):
    pass


class InvalidFieldValueError(FormError):
    pass


class InvalidTransitionError(FormError):
    pass


def format_gps(position: Position) -> str:
    return f"Lat: {position.latitude:.6f}, Long: {position.longitude:.6f}"


def _field_names(model: type[BaseModel]) -> dict[str, str]:
    names: dict[str, str] = {}
    for name, info in model.model_fields.items():
        names[name] = name
        if info.alias:
            names[info.alias] = name
    return names


def _group_model(name: str) -> type[BaseModel] | None:
    annotation = ReportFields.model_fields[name].annotation
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


class ReportForm:
    """The one record currently being edited, plus its lifecycle state."""

    def __init__(self, location: LocationProvider | None = None) -> None:
        self._location = location or UnavailableLocationAdapter()
        self._record = DraftRecord()
        self._state = ReportState.EMPTY
        self.narrative = NarrativeEditor(on_change=self._apply_narrative)

    @property
    def record(self) -> DraftRecord:
        return self._record.model_copy(deep=True)

    @property
    def state(self) -> ReportState:
        return self._state

    def _move(self, target: ReportState) -> None:
        if not can_transition(self._state, target):
            raise InvalidTransitionError(f"cannot move report from {self._state} to {target}")
        self._state = target

    def _resolve_path(self, path: str) -> tuple[str, str | None]:
        parts = path.split(".")
        if len(parts) > 2 or not all(parts):
            raise UnknownFieldError(f"unknown field path: {path}")
        top = _field_names(DraftRecord).get(parts[0])
        if top is None or top in _RESERVED_FIELDS:
            raise UnknownFieldError(f"unknown field path: {path}")
        group = _group_model(top)
        if len(parts) == 1:
            if group is not None:
                raise UnknownFieldError(f"{path} is a group; address one of its fields")
            return top, None
        if group is None:
            raise UnknownFieldError(f"{parts[0]} has no nested fields")
        leaf = _field_names(group).get(parts[1])
        if leaf is None:
            raise UnknownFieldError(f"unknown field path: {path}")
        return top, leaf

    def update_field(self, path: str, value: Any) -> None:
        """Set one flat field or one ``group.field`` leaf, leaving everything else untouched."""
        top, leaf = self._resolve_path(path)
        data = self._record.model_dump()
        if leaf is None:
            data[top] = value
        else:
            data[top] = {**data[top], leaf: value}
        try:
            updated = DraftRecord.model_validate(data)
        except ValidationError as exc:
            raise InvalidFieldValueError(f"invalid value for {path}") from exc
        self._move(ReportState.EDITING)
        self._record = updated
        if top == "observations_rich_text":
            self.narrative.load_html(updated.observations_rich_text)

    def _apply_narrative(self, html: str) -> None:
        self._move(ReportState.EDITING)
        self._record = self._record.model_copy(update={"observations_rich_text": html})

    async def _capture_gps(self) -> str:
        try:
            position = await asyncio.wait_for(
                self._location.current_position(high_accuracy=True, timeout_seconds=LOCATION_TIMEOUT_SECONDS),
                timeout=LOCATION_TIMEOUT_SECONDS,
            )
        except (LocationError, TimeoutError) as exc:
            logger.warning("Location unavailable for photo: %s", str(exc) or "timed out")
            return GPS_UNAVAILABLE
        return format_gps(position)

    async def add_photo(self, content: bytes, content_type: str) -> PhotoAttachment | None:
        if not content_type.startswith("image/"):
            logger.info("Skipping non-image attachment of type %r", content_type)
            return None
        gps = await self._capture_gps()
        encoded = await asyncio.to_thread(base64.b64encode, content)
        photo = PhotoAttachment(
            data=f"data:{content_type};base64,{encoded.decode('ascii')}",
            gps=gps,
            timestamp=datetime.now().strftime(PHOTO_TIMESTAMP_FORMAT),
        )
        self._move(ReportState.EDITING)
        update: dict[str, Any] = {"photos": [*self._record.photos, photo]}
        if gps != GPS_UNAVAILABLE and not self._record.gps_coordinates.strip():
            update["gps_coordinates"] = gps
        self._record = self._record.model_copy(update=update)
        return photo

    async def add_photos(self, files: Iterable[tuple[bytes, str]]) -> list[PhotoAttachment]:
        added: list[PhotoAttachment] = []
        for content, content_type in files:
            photo = await self.add_photo(content, content_type)
            if photo is not None:
                added.append(photo)
        return added

    def remove_photo(self, photo_id: str) -> None:
        remaining = [photo for photo in self._record.photos if photo.id != photo_id]
        if len(remaining) == len(self._record.photos):
            return
        self._move(ReportState.EDITING)
        self._record = self._record.model_copy(update={"photos": remaining})

    def set_photo_caption(self, photo_id: str, text: str) -> None:
        if not any(photo.id == photo_id for photo in self._record.photos):
            return
        self._move(ReportState.EDITING)
        photos = [
            photo.model_copy(update={"title": text}) if photo.id == photo_id else photo
            for photo in self._record.photos
        ]
        self._record = self._record.model_copy(update={"photos": photos})

    def load(self, draft: DraftRecord) -> None:
        self._move(ReportState.EDITING)
        self._record = draft.model_copy(deep=True)
        self.narrative.load_html(self._record.observations_rich_text)

    def mark_draft_saved(self, draft: DraftRecord) -> None:
        self._move(ReportState.DRAFT_SAVED)
        self._record = draft.model_copy(deep=True)

    def mark_finalized(self) -> None:
        self._move(ReportState.FINALIZED)

    def reset(self) -> None:
        self._record = DraftRecord()
        self._state = ReportState.EMPTY
        self.narrative.load_html("")

    def ensure_exportable(self) -> None:
        validate_exportable(self._record)
