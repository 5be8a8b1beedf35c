# liability_engine/services/inspection_source.py
from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db
from ..domain.entry_diff import EntrySnapshot
from ..errors import UpstreamFailure
from ..models import InspectionEntry

log = logging.getLogger(__name__)


class InspectionEntrySource(Protocol):
    """Inspection capture lives elsewhere; the core only reads entry snapshots."""

    def fetch_entries(self, inspection_id: int) -> list[EntrySnapshot]: ...


def _malformed(entry_id: Any, why: str) -> UpstreamFailure:
    return UpstreamFailure(f"inspection entry {entry_id} is malformed: {why}", field="inspection_entries")


def snapshot_from_row(r: InspectionEntry) -> EntrySnapshot:
    section = (r.section_ref or "").strip()
    field_key = (r.field_key or "").strip()
    if not section or not field_key:
        raise _malformed(r.id, "section_ref and field_key are required")

    value: Any = None
    if r.value_json:
        try:
            value = json.loads(r.value_json)
        except ValueError:
            raise _malformed(r.id, "value_json is not JSON")

    photos: list[str] = []
    if r.photos_json:
        try:
            raw = json.loads(r.photos_json)
        except ValueError:
            raise _malformed(r.id, "photos_json is not JSON")
        if not isinstance(raw, list) or not all(isinstance(x, str) for x in raw):
            raise _malformed(r.id, "photos_json must be a list of urls")
        photos = raw

    return EntrySnapshot(
        id=int(r.id),
        inspection_id=int(r.inspection_id),
        section_ref=section,
        item_ref=(r.item_ref or None),
        field_key=field_key,
        value=value,
        note=r.note,
        photos=tuple(photos),
        maintenance_flag=bool(r.maintenance_flag),
        marked_for_review=bool(r.marked_for_review),
    )


class DbInspectionEntrySource:
    """Reads entries from the shared inspection_entries table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def fetch_entries(self, inspection_id: int) -> list[EntrySnapshot]:
        try:
            rows = self.db.scalars(
                select(InspectionEntry)
                .where(InspectionEntry.inspection_id == int(inspection_id))
                .order_by(InspectionEntry.id)
            ).all()
        except SQLAlchemyError as e:
            log.warning("inspection entry lookup failed", extra={"inspection_id": inspection_id}, exc_info=True)
            raise UpstreamFailure(f"inspection entry lookup failed: {e.__class__.__name__}", field="inspection_entries")
        return [snapshot_from_row(r) for r in rows]


def get_inspection_source(db: Session = Depends(get_db)) -> InspectionEntrySource:
    return DbInspectionEntrySource(db)
