from __future__ import annotations

import json
from datetime import datetime

from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.utcnow()


class LayoutRecord(SQLModel, table=True):
    id: str = Field(primary_key=True)
    venue_id: str = Field(index=True)
    name: str
    type: str = "seating_chart"

    # Full saved document (see Layout.to_document); written whole on every save.
    document_json: str

    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    def document(self) -> dict:
        doc = json.loads(self.document_json)
        doc["id"] = self.id
        return doc
