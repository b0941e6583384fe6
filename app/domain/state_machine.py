from __future__ import annotations

from enum import StrEnum


class ReportState(StrEnum):
    EMPTY = "EMPTY"
    EDITING = "EDITING"
    DRAFT_SAVED = "DRAFT_SAVED"
    FINALIZED = "FINALIZED"


ALLOWED_TRANSITIONS: dict[ReportState, set[ReportState]] = {
    ReportState.EMPTY: {ReportState.EDITING, ReportState.DRAFT_SAVED},
    ReportState.EDITING: {ReportState.EDITING, ReportState.DRAFT_SAVED, ReportState.FINALIZED},
    ReportState.DRAFT_SAVED: {ReportState.EDITING, ReportState.DRAFT_SAVED, ReportState.FINALIZED},
    ReportState.FINALIZED: set(),
}


def can_transition(source: ReportState, target: ReportState) -> bool:
    return target in ALLOWED_TRANSITIONS.get(source, set())
