from __future__ import annotations

import json
import logging
import uuid
from functools import lru_cache
from typing import Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from seating_layout.collaborators import CollaboratorError
from seating_layout.config import get_settings

from .models import LayoutRecord, _utc_now

logger = logging.getLogger(__name__)


@lru_cache()
def get_engine() -> Engine:
    url = get_settings().database_url()
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


def init_db(engine: Optional[Engine] = None) -> None:
    SQLModel.metadata.create_all(engine or get_engine())


class SqlLayoutStore:
    """Layout store backed by the local database, one row per saved document."""

    name = "layout store"

    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine or get_engine()

    def _missing(self, layout_id: str) -> CollaboratorError:
        return CollaboratorError(f"layout {layout_id} not found", status_code=404)

    def get_layouts_by_venue_id(self, venue_id: str) -> list[dict]:
        with Session(self.engine) as session:
            records = session.exec(
                select(LayoutRecord).where(LayoutRecord.venue_id == venue_id).order_by(LayoutRecord.created_at)
            ).all()
            return [r.document() for r in records]

    def create_layout(self, data: dict) -> dict:
        doc = {k: v for k, v in data.items() if k != "id"}
        record = LayoutRecord(
            id=str(data.get("id") or f"layout-{uuid.uuid4().hex[:12]}"),
            venue_id=str(data.get("venueId") or ""),
            name=str(data.get("name") or ""),
            type=str(data.get("type") or "seating_chart"),
            document_json=json.dumps(doc),
        )
        with Session(self.engine) as session:
            if session.get(LayoutRecord, record.id) is not None:
                raise CollaboratorError(f"layout {record.id} already exists", status_code=409)
            session.add(record)
            session.commit()
            session.refresh(record)
            logger.debug("stored new layout %s for venue %s", record.id, record.venue_id)
            return record.document()

    def update_layout(self, layout_id: str, data: dict) -> dict:
        with Session(self.engine) as session:
            record = session.get(LayoutRecord, layout_id)
            if record is None:
                raise self._missing(layout_id)
            record.name = str(data.get("name") or record.name)
            record.type = str(data.get("type") or record.type)
            record.venue_id = str(data.get("venueId") or record.venue_id)
            record.document_json = json.dumps({k: v for k, v in data.items() if k != "id"})
            record.updated_at = _utc_now()
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.document()

    def delete_layout(self, layout_id: str) -> None:
        with Session(self.engine) as session:
            record = session.get(LayoutRecord, layout_id)
            if record is None:
                raise self._missing(layout_id)
            session.delete(record)
            session.commit()
