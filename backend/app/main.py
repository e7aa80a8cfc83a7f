from __future__ import annotations

import logging
import threading
import uuid
from functools import lru_cache
from typing import Generic, Optional, TypeVar

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from seating_layout.chart import ConfirmationRequired, InvariantViolation, LayoutTypeError, SeatingChartError
from seating_layout.collaborators import (
    AvailabilityClient,
    CollaboratorError,
    LayoutApiClient,
    LayoutStore,
    SectionDetectionClient,
    TemplateClient,
)
from seating_layout.config import get_settings
from seating_layout.editor import EditorState
from seating_layout.geometry import GeometryError
from seating_layout.importer import layout_from_document
from seating_layout.logging_config import setup_logging
from seating_layout.render import Scene, scene_to_svg
from seating_layout.session import (
    DesignerSession,
    PreviewSession,
    SessionBusy,
    create_ga_layout,
    delete_layout,
)

from .db import SqlLayoutStore, init_db
from .schemas import (
    ActionRequest,
    AnalyzeRequest,
    EventUpdate,
    GALayoutCreate,
    PreviewCreate,
    SessionCreate,
    TemplateRequest,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Venue Seating Designer API", version="0.2.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup() -> None:
    settings = get_settings()
    setup_logging()
    if not settings.layout_api_url:
        init_db()
    logger.info("seating designer API started (layout store: %s)", settings.layout_api_url or "local database")


@app.on_event("shutdown")
def _shutdown() -> None:
    # Close the pooled HTTP clients the providers below have handed out.
    for provider in (get_store, get_detection, get_templates, get_availability):
        if provider.cache_info().currsize:
            client = provider()
            if not isinstance(client, SqlLayoutStore):
                client.close()
            provider.cache_clear()


# -- error mapping -------------------------------------------------------------


def _error(status_code: int, e: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(e), "error": type(e).__name__})


@app.exception_handler(InvariantViolation)
def _invariant(request: Request, e: InvariantViolation) -> JSONResponse:
    return _error(400, e)


@app.exception_handler(GeometryError)
def _geometry(request: Request, e: GeometryError) -> JSONResponse:
    return _error(400, e)


@app.exception_handler(LayoutTypeError)
def _layout_type(request: Request, e: LayoutTypeError) -> JSONResponse:
    return _error(409, e)


@app.exception_handler(SessionBusy)
def _busy(request: Request, e: SessionBusy) -> JSONResponse:
    return _error(409, e)


@app.exception_handler(ConfirmationRequired)
def _confirm(request: Request, e: ConfirmationRequired) -> JSONResponse:
    return _error(428, e)


@app.exception_handler(SeatingChartError)
def _chart(request: Request, e: SeatingChartError) -> JSONResponse:
    return _error(400, e)


@app.exception_handler(CollaboratorError)
def _collaborator(request: Request, e: CollaboratorError) -> JSONResponse:
    # The local store reports missing or duplicate layouts with their own codes.
    status = e.status_code if e.status_code in (404, 409) else 502
    return _error(status, e)


# -- dependencies --------------------------------------------------------------

S = TypeVar("S")


class SessionRegistry(Generic[S]):
    """In-memory sessions keyed by a generated id; nothing here outlives the process."""

    def __init__(self, kind: str):
        self.kind = kind
        self._items: dict[str, S] = {}
        self._lock = threading.Lock()

    def add(self, item: S) -> str:
        sid = uuid.uuid4().hex
        with self._lock:
            self._items[sid] = item
        return sid

    def get(self, sid: str) -> S:
        with self._lock:
            item = self._items.get(sid)
        if item is None:
            raise HTTPException(status_code=404, detail=f"{self.kind} not found")
        return item

    def discard(self, sid: str) -> None:
        with self._lock:
            if self._items.pop(sid, None) is None:
                raise HTTPException(status_code=404, detail=f"{self.kind} not found")


_designers: SessionRegistry[DesignerSession] = SessionRegistry("session")
_previews: SessionRegistry[PreviewSession] = SessionRegistry("preview")


def get_designers() -> SessionRegistry[DesignerSession]:
    return _designers


def get_previews() -> SessionRegistry[PreviewSession]:
    return _previews


@lru_cache()
def get_store() -> LayoutStore:
    settings = get_settings()
    if settings.layout_api_url:
        return LayoutApiClient(settings.layout_api_url, timeout=settings.http_timeout_s)
    return SqlLayoutStore()


@lru_cache()
def get_detection() -> Optional[SectionDetectionClient]:
    settings = get_settings()
    return SectionDetectionClient(settings.analysis_url, timeout=settings.http_timeout_s)


@lru_cache()
def get_templates() -> Optional[TemplateClient]:
    settings = get_settings()
    return TemplateClient(settings.template_url, timeout=settings.http_timeout_s)


@lru_cache()
def get_availability() -> AvailabilityClient:
    settings = get_settings()
    return AvailabilityClient(settings.availability_url, timeout=settings.http_timeout_s)


def _find_document(store: LayoutStore, venue_id: str, layout_id: str) -> dict:
    for doc in store.get_layouts_by_venue_id(venue_id):
        if str(doc.get("id")) == layout_id:
            return doc
    raise HTTPException(status_code=404, detail="layout not found")


# -- views ---------------------------------------------------------------------


def _state_view(state: EditorState) -> dict:
    layout = state.layout
    return {
        "layout": {"id": layout.id, **layout.to_document()},
        "mode": state.mode.value,
        "selectedSectionId": state.selected_section,
        "interaction": state.interaction.kind,
        "view": {"pan": {"x": state.view.pan_x, "y": state.view.pan_y}, "zoom": state.view.zoom},
        "labels": {sid: {"x": lo.x, "y": lo.y, "rotation": lo.rotation} for sid, lo in state.labels.items()},
        "rowVisibility": dict(state.row_visibility),
        "showGrid": state.show_grid,
        "gridSize": state.grid_size,
    }


def _designer_view(sid: str, session: DesignerSession) -> dict:
    return {
        "sessionId": sid,
        "persisted": session.persisted,
        "pending": session.pending,
        "message": session.message,
        **_state_view(session.state),
    }


def _preview_view(pid: str, preview: PreviewSession) -> dict:
    return {
        "previewId": pid,
        "eventId": preview.overlay.event_id,
        "message": preview.message,
        "selected": [s.to_dict() for s in preview.selected_seats()],
        **_state_view(preview.state),
    }


def _scene_response(scene: Scene, fmt: str) -> Response:
    if fmt == "svg":
        return Response(content=scene_to_svg(scene), media_type="image/svg+xml")
    if fmt != "json":
        raise HTTPException(status_code=400, detail="format must be json or svg")
    return JSONResponse(scene.to_dict())


# -- routes --------------------------------------------------------------------


@app.get("/health")
def health() -> dict:
    return {"ok": True}


@app.get("/venues/{venue_id}/layouts")
def list_layouts(venue_id: str, store: LayoutStore = Depends(get_store)) -> list[dict]:
    return store.get_layouts_by_venue_id(venue_id)


@app.post("/venues/{venue_id}/ga-layouts")
def create_general_admission(venue_id: str, payload: GALayoutCreate, store: LayoutStore = Depends(get_store)) -> dict:
    levels = [lvl.model_dump(mode="json") for lvl in payload.levels]
    return create_ga_layout(store, venue_id, payload.name, levels)


@app.delete("/layouts/{layout_id}")
def remove_layout(layout_id: str, confirm: bool = False, store: LayoutStore = Depends(get_store)) -> dict:
    delete_layout(store, layout_id, confirmed=confirm)
    return {"deleted": layout_id}


@app.post("/venues/{venue_id}/sessions")
def new_session(
    venue_id: str,
    payload: Optional[SessionCreate] = None,
    store: LayoutStore = Depends(get_store),
    detection: Optional[SectionDetectionClient] = Depends(get_detection),
    templates: Optional[TemplateClient] = Depends(get_templates),
    designers: SessionRegistry[DesignerSession] = Depends(get_designers),
) -> dict:
    name = payload.name if payload is not None else "New Layout"
    session = DesignerSession.create(venue_id, store=store, name=name, detection=detection, templates=templates)
    sid = designers.add(session)
    logger.info("opened designer session %s for a new layout in venue %s", sid, venue_id)
    return _designer_view(sid, session)


@app.post("/venues/{venue_id}/layouts/{layout_id}/sessions")
def open_session(
    venue_id: str,
    layout_id: str,
    store: LayoutStore = Depends(get_store),
    detection: Optional[SectionDetectionClient] = Depends(get_detection),
    templates: Optional[TemplateClient] = Depends(get_templates),
    designers: SessionRegistry[DesignerSession] = Depends(get_designers),
) -> dict:
    doc = _find_document(store, venue_id, layout_id)
    session = DesignerSession.open(doc, store=store, detection=detection, templates=templates)
    sid = designers.add(session)
    logger.info("opened designer session %s for layout %s", sid, layout_id)
    return _designer_view(sid, session)


@app.get("/sessions/{sid}")
def get_session_state(sid: str, designers: SessionRegistry[DesignerSession] = Depends(get_designers)) -> dict:
    return _designer_view(sid, designers.get(sid))


@app.post("/sessions/{sid}/actions")
def dispatch_action(
    sid: str,
    payload: ActionRequest,
    designers: SessionRegistry[DesignerSession] = Depends(get_designers),
) -> dict:
    session = designers.get(sid)
    session.dispatch(payload.action.to_action(), confirmed=payload.confirmed)
    return _designer_view(sid, session)


@app.get("/sessions/{sid}/scene")
def session_scene(
    sid: str,
    fmt: str = Query("json", alias="format"),
    designers: SessionRegistry[DesignerSession] = Depends(get_designers),
) -> Response:
    return _scene_response(designers.get(sid).scene(), fmt)


@app.post("/sessions/{sid}/analyze")
def analyze_image(
    sid: str,
    payload: AnalyzeRequest,
    designers: SessionRegistry[DesignerSession] = Depends(get_designers),
) -> dict:
    session = designers.get(sid)
    session.analyze_image(payload.image, venue_type=payload.venue_type)
    return _designer_view(sid, session)


@app.post("/sessions/{sid}/template")
def apply_template(
    sid: str,
    payload: TemplateRequest,
    designers: SessionRegistry[DesignerSession] = Depends(get_designers),
) -> dict:
    session = designers.get(sid)
    session.generate_from_template(payload.template)
    return _designer_view(sid, session)


@app.post("/sessions/{sid}/save")
def save_session(sid: str, designers: SessionRegistry[DesignerSession] = Depends(get_designers)) -> dict:
    session = designers.get(sid)
    session.save()
    return _designer_view(sid, session)


@app.delete("/sessions/{sid}")
def close_session(sid: str, designers: SessionRegistry[DesignerSession] = Depends(get_designers)) -> dict:
    # Unsaved edits are discarded with the session.
    designers.discard(sid)
    return {"closed": sid}


@app.post("/previews")
def open_preview(
    payload: PreviewCreate,
    store: LayoutStore = Depends(get_store),
    availability: AvailabilityClient = Depends(get_availability),
    previews: SessionRegistry[PreviewSession] = Depends(get_previews),
) -> dict:
    layout = layout_from_document(_find_document(store, payload.venue_id, payload.layout_id))
    preview = PreviewSession(layout, availability, event_id=payload.event_id)
    pid = previews.add(preview)
    return _preview_view(pid, preview)


@app.put("/previews/{pid}/event")
def set_preview_event(
    pid: str,
    payload: EventUpdate,
    previews: SessionRegistry[PreviewSession] = Depends(get_previews),
) -> dict:
    preview = previews.get(pid)
    preview.set_event(payload.event_id)
    return _preview_view(pid, preview)


@app.post("/previews/{pid}/seats/{seat_id}/toggle")
def toggle_preview_seat(
    pid: str,
    seat_id: str,
    previews: SessionRegistry[PreviewSession] = Depends(get_previews),
) -> dict:
    preview = previews.get(pid)
    if preview.layout.find_seat(seat_id) is None:
        raise HTTPException(status_code=404, detail="seat not found")
    changed = preview.click_seat(seat_id)
    return {"changed": changed, **_preview_view(pid, preview)}


@app.get("/previews/{pid}/scene")
def preview_scene(
    pid: str,
    fmt: str = Query("json", alias="format"),
    previews: SessionRegistry[PreviewSession] = Depends(get_previews),
) -> Response:
    return _scene_response(previews.get(pid).scene(), fmt)


@app.get("/previews/{pid}/selection")
def preview_selection(pid: str, previews: SessionRegistry[PreviewSession] = Depends(get_previews)) -> dict:
    seats = previews.get(pid).selected_seats()
    return {"seats": [s.to_dict() for s in seats], "total": sum(s.price for s in seats)}


@app.delete("/previews/{pid}")
def close_preview(pid: str, previews: SessionRegistry[PreviewSession] = Depends(get_previews)) -> dict:
    previews.discard(pid)
    return {"closed": pid}
