from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Literal, Mapping, Optional

from shapely import affinity
from shapely.geometry import Point, Polygon, box

from .chart import Curve, Row, Section


class GeometryError(Exception):
    pass


SEAT_SPACING = 18.0
ROW_SPACING = 25.0
BASE_RADIUS = 120.0
RADIUS_INCREMENT = 30.0
DEFAULT_ARC_SPAN = 70.0

MIN_ZOOM = 0.3
MAX_ZOOM = 2.0
DEFAULT_ZOOM = 0.8
WHEEL_ZOOM_OUT = 0.9
WHEEL_ZOOM_IN = 1.1
BUTTON_ZOOM_OUT = 0.8
BUTTON_ZOOM_IN = 1.2

# Section-local hit area for dragging a section body: x -200..300, y -50..350.
SECTION_HIT_BOX = (-200.0, -50.0, 300.0, 350.0)
LABEL_HIT_WIDTH = 100.0
LABEL_HIT_HEIGHT = 30.0

# Row decorations sit this far outside the first/last seat.
ROW_LABEL_GAP = 25.0
STRAIGHT_ROW_LABEL_GAP = 40.0


@dataclass(frozen=True)
class PlacedSeat:
    seat_id: str
    x: float
    y: float
    rotation: float


@dataclass(frozen=True)
class Anchor:
    x: float
    y: float
    angle: float = 0.0


@dataclass(frozen=True)
class RowPlacement:
    seats: tuple[PlacedSeat, ...]
    label: Anchor
    controls: Anchor


@dataclass(frozen=True)
class LabelOffset:
    """Section name label position, relative to the section origin."""

    x: float = 0.0
    y: float = -35.0
    rotation: float = 0.0


DEFAULT_LABEL = LabelOffset()


def _deg_to_rad(d: float) -> float:
    return d * math.pi / 180.0


def _rad_to_deg(r: float) -> float:
    return r * 180.0 / math.pi


def straight_seat_x(index: int, seats_per_row: int, spacing: float = SEAT_SPACING) -> float:
    return (index - seats_per_row / 2) * spacing


def row_y(index: int, spacing: float = ROW_SPACING) -> float:
    return index * spacing


def curve_radius(index: int, base: float = BASE_RADIUS, increment: float = RADIUS_INCREMENT) -> float:
    return base + index * increment


def default_curve(index: int, span: float = DEFAULT_ARC_SPAN) -> Curve:
    return Curve(radius=curve_radius(index), start_angle=-(span / 2), end_angle=span / 2)


def arc_length(curve: Curve) -> float:
    return curve.angle_range * math.pi * curve.radius / 180.0


def max_seats_on_arc(curve: Curve, spacing: float = SEAT_SPACING) -> int:
    if curve.radius <= 0:
        raise GeometryError(f"curve radius must be positive: {curve.radius}")
    return max(0, math.floor(arc_length(curve) / spacing))


def place_curved_row(row: Row, spacing: float = SEAT_SPACING) -> RowPlacement:
    """
    Lay the row's seats along its arc, centred on the section origin.

    Only as many seats as fit on the nominal arc at ``spacing`` are placed.
    The angular span actually used is recomputed from the placed count and
    centred on 0 degrees, so neighbouring seats are always exactly ``spacing``
    apart along the arc whatever the row's nominal start/end angles are.
    """
    if row.curve is None:
        raise GeometryError(f"row {row.id} has no curve")
    radius = row.curve.radius
    count = min(len(row.seats), max_seats_on_arc(row.curve, spacing))

    if count > 1:
        actual_range = _rad_to_deg(spacing * (count - 1) / radius)
        step = actual_range / (count - 1)
    else:
        actual_range = 0.0
        step = 0.0
    start = -(actual_range / 2)

    placed = []
    for i, seat in enumerate(row.seats[:count]):
        angle = start + i * step
        rad = _deg_to_rad(angle)
        placed.append(PlacedSeat(seat_id=seat.id, x=radius * math.cos(rad), y=radius * math.sin(rad), rotation=angle + 90.0))

    last_angle = start + step * max(count - 1, 0)
    last_rad = _deg_to_rad(last_angle)
    controls = Anchor(x=radius * math.cos(last_rad) + ROW_LABEL_GAP, y=radius * math.sin(last_rad), angle=last_angle + 90.0)

    label_angle = start - step
    label_rad = _deg_to_rad(label_angle)
    label = Anchor(x=radius * math.cos(label_rad) - ROW_LABEL_GAP, y=radius * math.sin(label_rad), angle=label_angle + 90.0)

    return RowPlacement(seats=tuple(placed), label=label, controls=controls)


def place_straight_row(row: Row) -> RowPlacement:
    placed = tuple(PlacedSeat(seat_id=s.id, x=s.x, y=s.y, rotation=s.angle or 0.0) for s in row.seats)
    first_x = row.seats[0].x if row.seats else 0.0
    last_x = row.seats[-1].x if row.seats else 0.0
    return RowPlacement(
        seats=placed,
        label=Anchor(x=first_x - STRAIGHT_ROW_LABEL_GAP, y=row.y),
        controls=Anchor(x=last_x + ROW_LABEL_GAP, y=row.y),
    )


def place_row(section: Section, row: Row) -> RowPlacement:
    if section.curved and row.curve is not None:
        return place_curved_row(row)
    return place_straight_row(row)


def rotate_point(x: float, y: float, degrees: float) -> tuple[float, float]:
    rad = _deg_to_rad(degrees)
    c, s = math.cos(rad), math.sin(rad)
    return x * c - y * s, x * s + y * c


def section_to_world(section: Section, x: float, y: float) -> tuple[float, float]:
    """Map a section-local point through the section's rigid-body transform."""
    rx, ry = rotate_point(x, y, section.rotation)
    return section.x + rx, section.y + ry


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


@dataclass(frozen=True)
class ViewTransform:
    """Canvas pan and uniform zoom: ``screen = world * zoom + pan``."""

    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom: float = DEFAULT_ZOOM

    def zoomed(self, factor: float) -> "ViewTransform":
        return ViewTransform(self.pan_x, self.pan_y, clamp_zoom(self.zoom * factor))

    def wheel(self, delta_y: float) -> "ViewTransform":
        return self.zoomed(WHEEL_ZOOM_OUT if delta_y > 0 else WHEEL_ZOOM_IN)

    def panned_to(self, x: float, y: float) -> "ViewTransform":
        return ViewTransform(x, y, self.zoom)

    def to_screen(self, x: float, y: float) -> tuple[float, float]:
        return x * self.zoom + self.pan_x, y * self.zoom + self.pan_y

    def to_world(self, x: float, y: float) -> tuple[float, float]:
        return (x - self.pan_x) / self.zoom, (y - self.pan_y) / self.zoom


def _place(poly: Polygon, section: Section) -> Polygon:
    poly = affinity.rotate(poly, section.rotation, origin=(0, 0))
    return affinity.translate(poly, section.x, section.y)


def section_outline(section: Section) -> Polygon:
    return _place(box(*SECTION_HIT_BOX), section)


def label_outline(section: Section, label: LabelOffset = DEFAULT_LABEL) -> Polygon:
    half_w = LABEL_HIT_WIDTH / 2
    half_h = LABEL_HIT_HEIGHT / 2
    poly = box(-half_w, -half_h, half_w, half_h)
    poly = affinity.rotate(poly, label.rotation, origin=(0, 0))
    poly = affinity.translate(poly, label.x, label.y)
    return _place(poly, section)


@dataclass(frozen=True)
class HitTarget:
    kind: Literal["label", "section"]
    section_id: str


def hit_test(
    sections: Iterable[Section],
    labels: Mapping[str, LabelOffset],
    view: ViewTransform,
    screen_x: float,
    screen_y: float,
) -> Optional[HitTarget]:
    """
    Resolve what a pointer at screen coordinates lands on.

    Sections drawn later sit on top. Within a section its name label wins
    over the body.
    """
    wx, wy = view.to_world(screen_x, screen_y)
    pt = Point(wx, wy)
    for section in reversed(list(sections)):
        label = labels.get(section.id, DEFAULT_LABEL)
        if label_outline(section, label).intersects(pt):
            return HitTarget("label", section.id)
        if section_outline(section).intersects(pt):
            return HitTarget("section", section.id)
    return None
