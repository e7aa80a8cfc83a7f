"""
Designer and preview sessions.

A :class:`DesignerSession` owns one in-memory edit of a seating-chart layout.
Nothing reaches the layout store until :meth:`DesignerSession.save`, which
writes the whole document at once; dropping the session discards the edit.
Collaborator calls are one-shot and a second call is refused while one is
pending. A failed call leaves the edit exactly as it was.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Iterable, Iterator, Optional

from .chart import ConfirmationRequired, Layout, LayoutTypeError, SeatingChartError
from .collaborators import (
    AvailabilityClient,
    CollaboratorError,
    LayoutStore,
    SectionDetectionClient,
    TemplateClient,
)
from .editor import (
    DESTRUCTIVE_ACTIONS,
    MODEL_ACTIONS,
    Action,
    EditorMode,
    EditorState,
    PointerDown,
    ReplaceLayout,
    reduce,
)
from .importer import (
    GALevelInput,
    apply_detection,
    apply_template,
    build_ga_layout,
    ensure_editable,
    layout_from_document,
    new_layout,
)
from .overlay import AvailabilityOverlay, SeatSelection, SelectedSeat
from .render import Scene, build_scene

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_CAPACITY = 1000


class SessionBusy(SeatingChartError):
    pass


def _imported(apply, layout: Layout, result, service: str) -> Layout:
    try:
        return apply(layout, result)
    except (SeatingChartError, TypeError, ValueError, KeyError) as e:
        raise CollaboratorError(f"{service} returned an unusable layout: {e}") from e


class _PendingGuard:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.pending: Optional[str] = None

    @contextmanager
    def hold(self, label: str) -> Iterator[None]:
        with self._lock:
            if self.pending is not None:
                raise SessionBusy(f"{self.pending} is already in progress")
            self.pending = label
        try:
            yield
        finally:
            with self._lock:
                self.pending = None


class DesignerSession:
    def __init__(
        self,
        layout: Layout,
        *,
        store: LayoutStore,
        detection: Optional[SectionDetectionClient] = None,
        templates: Optional[TemplateClient] = None,
        persisted: bool = False,
    ):
        self.state = EditorState.open(ensure_editable(layout))
        self.store = store
        self.detection = detection
        self.templates = templates
        self.persisted = persisted
        self.message: Optional[str] = None
        self._guard = _PendingGuard()

    @classmethod
    def create(cls, venue_id: str, *, store: LayoutStore, name: str = "New Layout", **clients) -> "DesignerSession":
        return cls(new_layout(venue_id, name=name), store=store, **clients)

    @classmethod
    def open(cls, document: dict, *, store: LayoutStore, **clients) -> "DesignerSession":
        return cls(layout_from_document(document), store=store, persisted=True, **clients)

    @property
    def layout(self) -> Layout:
        return self.state.layout

    @property
    def pending(self) -> Optional[str]:
        return self._guard.pending

    def dispatch(self, action: Action, *, confirmed: bool = False) -> EditorState:
        if isinstance(action, DESTRUCTIVE_ACTIONS) and not confirmed:
            raise ConfirmationRequired(f"{action.type} must be confirmed")
        # Layout edits are refused while a collaborator call is pending.
        if self.pending is not None and isinstance(action, MODEL_ACTIONS + (PointerDown,)):
            raise SessionBusy(f"{self.pending} is in progress")
        self.state = reduce(self.state, action)
        return self.state

    def scene(self) -> Scene:
        return build_scene(self.state)

    def _fail(self, what: str, e: CollaboratorError) -> None:
        self.message = e.message
        logger.warning("%s failed for layout %s: %s", what, self.layout.id, e.message)

    def analyze_image(self, image: str, *, venue_type: str = "theater") -> str:
        if self.detection is None:
            raise CollaboratorError("section detection is not configured")
        with self._guard.hold("Analyzing"):
            try:
                result = self.detection.analyze(image, venue_type=venue_type, existing_capacity=self.layout.capacity)
                layout = _imported(apply_detection, self.layout, result, "section detection service")
            except CollaboratorError as e:
                self._fail("section detection", e)
                raise
            self.state = reduce(self.state, ReplaceLayout(layout))
            self.message = result.message
        logger.info("applied %d detected sections to layout %s", len(layout.sections), layout.id)
        return result.message

    def generate_from_template(self, template: str) -> str:
        if self.templates is None:
            raise CollaboratorError("template generation is not configured")
        with self._guard.hold("Generating"):
            try:
                result = self.templates.generate(
                    venue_name=self.layout.name or "Venue",
                    venue_type=template,
                    capacity=self.layout.capacity or DEFAULT_TEMPLATE_CAPACITY,
                )
                layout = _imported(apply_template, self.layout, result, "template service")
            except CollaboratorError as e:
                self._fail("template generation", e)
                raise
            self.state = reduce(self.state, ReplaceLayout(layout))
            self.message = f"Generated {len(layout.sections)} sections from the {template} template"
        logger.info("applied %s template to layout %s", template, layout.id)
        return self.message

    def save(self) -> dict:
        """Write the complete layout document to the store and return what was stored."""
        doc = self.layout.to_document()
        with self._guard.hold("Saving"):
            try:
                if self.persisted:
                    saved = self.store.update_layout(self.layout.id, doc)
                else:
                    saved = self.store.create_layout(doc)
            except CollaboratorError as e:
                self._fail("save", e)
                raise
        saved_id = str(saved.get("id") or self.layout.id)
        if saved_id != self.layout.id:
            self.state = replace(self.state, layout=replace(self.layout, id=saved_id))
        self.persisted = True
        self.message = "Layout saved successfully!"
        logger.info("saved layout %s (%d seats)", saved_id, self.layout.capacity)
        return saved


class PreviewSession:
    """Read-only booking preview of a layout against one event's availability."""

    def __init__(self, layout: Layout, availability: AvailabilityClient, *, event_id: Optional[str] = None):
        if layout.is_general_admission:
            raise LayoutTypeError("general admission layouts have no seat map to preview")
        self.state = EditorState.open(layout, mode=EditorMode.preview)
        self.overlay = AvailabilityOverlay(availability.fetch)
        self.selection = SeatSelection()
        self.message: Optional[str] = None
        if event_id is not None:
            self.set_event(event_id)

    @property
    def layout(self) -> Layout:
        return self.state.layout

    def set_event(self, event_id: Optional[str]) -> None:
        if event_id == self.overlay.event_id:
            return
        self.selection.clear()
        try:
            self.overlay.set_event(event_id)
        except CollaboratorError as e:
            self.message = e.message
            logger.warning("could not load availability for event %s: %s", event_id, e.message)
            raise
        self.message = None

    def dispatch(self, action: Action) -> EditorState:
        self.state = reduce(self.state, action)
        return self.state

    def click_seat(self, seat_id: str) -> bool:
        found = self.layout.find_seat(seat_id)
        if found is None:
            return False
        return self.selection.toggle(found[2], self.overlay)

    def selected_seats(self) -> list[SelectedSeat]:
        return self.selection.summary(self.layout)

    def scene(self) -> Scene:
        return build_scene(self.state, overlay=self.overlay, selection=self.selection)


def create_ga_layout(store: LayoutStore, venue_id: str, name: str, levels: Iterable[GALevelInput]) -> dict:
    layout = build_ga_layout(venue_id, name, levels)
    saved = store.create_layout(layout.to_document())
    logger.info("created GA layout %s with capacity %d", saved.get("id"), layout.capacity)
    return saved


def delete_layout(store: LayoutStore, layout_id: str, *, confirmed: bool) -> None:
    if not confirmed:
        raise ConfirmationRequired("deleting a layout must be confirmed")
    store.delete_layout(layout_id)
    logger.info("deleted layout %s", layout_id)
