from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional
from xml.sax.saxutils import escape, quoteattr

from .chart import DEFAULT_SECTION_COLOR, SeatType, Stage, ViewBox
from .editor import EditorMode, EditorState
from .geometry import ViewTransform, place_row, section_to_world
from .overlay import AvailabilityOverlay, SeatSelection, preview_fill

SEAT_SIZE = 12.0
WHEELCHAIR_SEAT_SIZE = 16.0
SEAT_NUMBER_MIN_ZOOM = 0.6
STAGE_FILL = "#4a5568"


@dataclass(frozen=True)
class SeatShape:
    seat_id: str
    section_id: str
    x: float
    y: float
    rotation: float
    shape: Literal["circle", "square"]
    size: float
    fill: str
    status: str
    selected: bool
    clickable: bool
    number: Optional[str]

    def to_dict(self) -> dict:
        return {
            "seatId": self.seat_id,
            "sectionId": self.section_id,
            "x": self.x,
            "y": self.y,
            "rotation": self.rotation,
            "shape": self.shape,
            "size": self.size,
            "fill": self.fill,
            "status": self.status,
            "selected": self.selected,
            "clickable": self.clickable,
            "number": self.number,
        }


@dataclass(frozen=True)
class TextShape:
    kind: Literal["section-label", "row-label"]
    ref: str
    text: str
    x: float
    y: float
    rotation: float

    def to_dict(self) -> dict:
        return {"kind": self.kind, "ref": self.ref, "text": self.text, "x": self.x, "y": self.y, "rotation": self.rotation}


@dataclass(frozen=True)
class Scene:
    """Everything needed to draw one frame, in world coordinates."""

    mode: EditorMode
    view: ViewTransform
    view_box: ViewBox
    stage: Stage
    seats: tuple[SeatShape, ...]
    texts: tuple[TextShape, ...]
    show_grid: bool
    grid_size: int

    def seat(self, seat_id: str) -> Optional[SeatShape]:
        for s in self.seats:
            if s.seat_id == seat_id:
                return s
        return None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "view": {"pan": {"x": self.view.pan_x, "y": self.view.pan_y}, "zoom": self.view.zoom},
            "viewBox": self.view_box.to_dict(),
            "stage": self.stage.to_dict(),
            "seats": [s.to_dict() for s in self.seats],
            "texts": [t.to_dict() for t in self.texts],
            "showGrid": self.show_grid,
            "gridSize": self.grid_size,
        }


def build_scene(
    state: EditorState,
    *,
    overlay: Optional[AvailabilityOverlay] = None,
    selection: Optional[SeatSelection] = None,
) -> Scene:
    preview = state.mode is EditorMode.preview
    show_numbers = state.view.zoom > SEAT_NUMBER_MIN_ZOOM
    seats: list[SeatShape] = []
    texts: list[TextShape] = []

    for section in state.layout.sections:
        color = section.color or DEFAULT_SECTION_COLOR
        label = state.label_for(section.id)
        lx, ly = section_to_world(section, label.x, label.y)
        texts.append(TextShape("section-label", section.id, section.name, lx, ly, section.rotation + label.rotation))

        for row in section.rows:
            placement = place_row(section, row)
            if state.row_visible(row.id):
                rx, ry = section_to_world(section, placement.label.x, placement.label.y)
                texts.append(TextShape("row-label", row.id, row.label, rx, ry, section.rotation + placement.label.angle))

            by_id = {s.id: s for s in row.seats}
            for placed in placement.seats:
                seat = by_id[placed.seat_id]
                status = overlay.status_for(seat) if overlay is not None else seat.status.value
                wx, wy = section_to_world(section, placed.x, placed.y)
                wheelchair = seat.type is SeatType.wheelchair
                seats.append(
                    SeatShape(
                        seat_id=seat.id,
                        section_id=section.id,
                        x=wx,
                        y=wy,
                        rotation=section.rotation + placed.rotation,
                        shape="square" if wheelchair else "circle",
                        size=WHEELCHAIR_SEAT_SIZE if wheelchair else SEAT_SIZE,
                        fill=preview_fill(status, color) if preview else color,
                        status=status,
                        selected=selection is not None and seat.id in selection,
                        clickable=preview and status == "available",
                        number=seat.number if show_numbers else None,
                    )
                )

    return Scene(
        mode=state.mode,
        view=state.view,
        view_box=state.layout.view_box,
        stage=state.layout.stage,
        seats=tuple(seats),
        texts=tuple(texts),
        show_grid=state.show_grid,
        grid_size=state.grid_size,
    )


def _n(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".")


def _seat_svg(s: SeatShape) -> str:
    stroke = "#fff" if s.selected else "#000"
    width = 2 if s.selected else 1
    half = s.size / 2
    if s.shape == "square":
        body = (
            f'<rect x="{_n(-half)}" y="{_n(-half)}" width="{_n(s.size)}" height="{_n(s.size)}" rx="2" '
            f'fill="{s.fill}" stroke="{stroke}" stroke-width="{width}"/>'
        )
    else:
        body = f'<circle r="{_n(half)}" fill="{s.fill}" stroke="{stroke}" stroke-width="{width}"/>'
    number = ""
    if s.number is not None:
        number = f'<text text-anchor="middle" dominant-baseline="middle" font-size="8" fill="#fff">{escape(s.number)}</text>'
    return (
        f'<g data-seat-id={quoteattr(s.seat_id)} transform="translate({_n(s.x)}, {_n(s.y)}) rotate({_n(s.rotation)})">'
        f"{body}{number}</g>"
    )


def scene_to_svg(scene: Scene) -> str:
    vb = scene.view_box
    st = scene.stage
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="{_n(vb.x)} {_n(vb.y)} {_n(vb.width)} {_n(vb.height)}">',
        f'<g transform="translate({_n(scene.view.pan_x)}, {_n(scene.view.pan_y)}) scale({_n(scene.view.zoom)})">',
        f'<rect x="{_n(st.x)}" y="{_n(st.y)}" width="{_n(st.width)}" height="{_n(st.height)}" fill="{STAGE_FILL}" rx="4"/>',
        f'<text x="{_n(st.x + st.width / 2)}" y="{_n(st.y + st.height / 2)}" text-anchor="middle" '
        f'dominant-baseline="middle" fill="#fff" font-weight="bold">{escape(st.label)}</text>',
    ]
    for t in scene.texts:
        size = 16 if t.kind == "section-label" else 12
        parts.append(
            f'<text class="{t.kind}" transform="translate({_n(t.x)}, {_n(t.y)}) rotate({_n(t.rotation)})" '
            f'font-size="{size}" fill="#fff" text-anchor="middle">{escape(t.text)}</text>'
        )
    parts.extend(_seat_svg(s) for s in scene.seats)
    parts.append("</g></svg>")
    return "".join(parts)
