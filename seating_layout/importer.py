"""
Turn externally produced layouts into Layout Model values.

AI detection and template results arrive as loosely shaped JSON; they are
normalized here (ids re-keyed per section, labels re-derived from row order,
unknown enum values coerced) and then replace the layout's sections outright.
The GA wizard builds a general-admission layout from capacity levels; such a
layout can never be opened in the seat designer.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Iterable, Optional, Union

from .chart import (
    DEFAULT_SECTION_COLOR,
    Curve,
    GALevel,
    GALevelType,
    InvariantViolation,
    Layout,
    LayoutType,
    LayoutTypeError,
    PricingTier,
    Row,
    Seat,
    SeatingChartError,
    SeatStatus,
    SeatType,
    Section,
    Stage,
    row_id,
    row_label,
    seat_id,
)
from .collaborators import DetectionResult, TemplateResult
from .geometry import row_y, straight_seat_x

logger = logging.getLogger(__name__)

# Older documents and some services use these names for seat states.
_STATUS_ALIASES = {
    "reserved": SeatStatus.held,
    "disabled": SeatStatus.blocked,
}


def new_layout(venue_id: str, *, name: str = "New Layout", layout_id: Optional[str] = None) -> Layout:
    return Layout(
        id=layout_id or f"layout-{uuid.uuid4().hex[:12]}",
        venue_id=venue_id,
        name=name,
        type=LayoutType.seating_chart,
    )


def ensure_editable(layout: Layout) -> Layout:
    if layout.is_general_admission:
        logger.info("rejected opening GA layout %s in the seat designer", layout.id)
        raise LayoutTypeError("GA layouts can only be edited through the wizard")
    return layout


def layout_from_document(doc: dict) -> Layout:
    """
    Load a stored document. Seating-chart capacity is recomputed from the
    seats themselves; a stored total that disagrees is reported and dropped.
    """
    layout = Layout.from_document(doc)
    counted = layout.seat_count()
    if counted != layout.capacity:
        logger.warning(
            "layout %s stored capacity %s but holds %s; using the counted value",
            layout.id,
            layout.capacity,
            counted,
        )
        layout = replace(layout, capacity=counted)
    return layout


def _status(value: Any) -> SeatStatus:
    if isinstance(value, str):
        if value in _STATUS_ALIASES:
            return _STATUS_ALIASES[value]
        try:
            return SeatStatus(value)
        except ValueError:
            pass
    return SeatStatus.available


def _seat_type(value: Any) -> SeatType:
    try:
        return SeatType(value)
    except ValueError:
        return SeatType.regular


def _pricing(value: Any) -> PricingTier:
    try:
        return PricingTier(value)
    except ValueError:
        return PricingTier.standard


def _float(value: Any, default: float) -> float:
    try:
        return float(value) if value is not None else default
    except (TypeError, ValueError):
        return default


def _curve(raw: Any) -> Optional[Curve]:
    if not isinstance(raw, dict) or raw.get("radius") is None:
        return None
    curve = Curve(
        radius=_float(raw.get("radius"), 0.0),
        start_angle=_float(raw.get("startAngle"), -35.0),
        end_angle=_float(raw.get("endAngle"), 35.0),
    )
    if curve.radius <= 0:
        raise SeatingChartError(f"row curve radius must be positive: {curve.radius}")
    return curve


def _normalize_row(section_id: str, index: int, raw: Any) -> Row:
    if not isinstance(raw, dict):
        raise SeatingChartError(f"row {index} of section {section_id} is not an object")
    label = row_label(index)
    y = _float(raw.get("y"), row_y(index))
    raw_seats = raw.get("seats") or []
    if not isinstance(raw_seats, list):
        raise SeatingChartError(f"seats of row {label} in section {section_id} are not a list")
    seats = []
    for s, raw_seat in enumerate(raw_seats):
        if not isinstance(raw_seat, dict):
            raise SeatingChartError(f"seat {s} of row {label} in section {section_id} is not an object")
        angle = raw_seat.get("angle")
        seats.append(
            Seat(
                id=seat_id(section_id, index, s),
                section_id=section_id,
                row=label,
                number=str(raw_seat.get("number") or s + 1),
                x=_float(raw_seat.get("x"), straight_seat_x(s, len(raw_seats))),
                y=y,
                status=_status(raw_seat.get("status")),
                type=_seat_type(raw_seat.get("type")),
                angle=_float(angle, 0.0) if angle is not None else None,
            )
        )
    return Row(id=row_id(section_id, index), label=label, y=y, seats=tuple(seats), curve=_curve(raw.get("curve")))


def _normalize_section(raw: Any, index: int, taken: set[str]) -> Section:
    if not isinstance(raw, dict):
        raise SeatingChartError(f"section {index + 1} is not an object")
    raw_rows = raw.get("rows") or []
    if not isinstance(raw_rows, list):
        raise SeatingChartError(f"rows of section {index + 1} are not a list")
    base = str(raw.get("id") or f"section-{index + 1}")
    sid = base
    n = 2
    while sid in taken:
        sid = f"{base}-{n}"
        n += 1
    taken.add(sid)
    return Section(
        id=sid,
        name=str(raw.get("name") or f"Section {index + 1}"),
        x=_float(raw.get("x"), 0.0),
        y=_float(raw.get("y"), 0.0),
        rotation=_float(raw.get("rotation"), 0.0) % 360,
        rows=tuple(_normalize_row(sid, r, raw_row) for r, raw_row in enumerate(raw_rows)),
        pricing=_pricing(raw.get("pricing")),
        color=str(raw.get("color") or DEFAULT_SECTION_COLOR),
        curved=bool(raw.get("curved", False)),
    )


def normalize_sections(raw_sections: Iterable[dict]) -> tuple[Section, ...]:
    taken: set[str] = set()
    return tuple(_normalize_section(raw, i, taken) for i, raw in enumerate(raw_sections))


def _replace_sections(layout: Layout, raw_sections: list[dict], reported: Optional[int], source: str) -> Layout:
    ensure_editable(layout)
    sections = normalize_sections(raw_sections)
    capacity = sum(s.seat_count for s in sections)
    if reported is not None and reported != capacity:
        logger.warning("%s reported %s seats but returned %s; using the seat count", source, reported, capacity)
    return replace(layout, sections=sections, capacity=capacity)


def apply_detection(layout: Layout, result: DetectionResult) -> Layout:
    """Replace all sections (and the stage, when given) with an AI detection result."""
    updated = _replace_sections(layout, result.sections, result.total_capacity, "section detection")
    if result.stage:
        if not isinstance(result.stage, dict):
            raise SeatingChartError("stage is not an object")
        try:
            stage = Stage.from_dict(result.stage)
        except (TypeError, ValueError) as e:
            raise SeatingChartError(f"invalid stage: {e}") from e
        updated = replace(updated, stage=stage)
    return updated


def apply_template(layout: Layout, result: TemplateResult) -> Layout:
    return _replace_sections(layout, result.sections, result.total_capacity, "template generation")


GALevelInput = Union[GALevel, dict]


def build_ga_layout(
    venue_id: str,
    name: str,
    levels: Iterable[GALevelInput],
    *,
    layout_id: Optional[str] = None,
    stage: Optional[Stage] = None,
) -> Layout:
    """Build a general-admission layout whose capacity is the sum of its levels."""
    parsed = []
    for i, level in enumerate(levels):
        if isinstance(level, dict):
            try:
                level = GALevel(
                    id=str(level.get("id") or f"level-{i + 1}"),
                    name=str(level.get("name") or "").strip(),
                    capacity=int(level.get("capacity") or 0),
                    type=GALevelType(level.get("type") or GALevelType.mixed.value),
                )
            except (TypeError, ValueError) as e:
                raise InvariantViolation(f"invalid GA level {i + 1}: {e}") from e
        if not level.name:
            raise InvariantViolation(f"GA level {i + 1} needs a name")
        if level.capacity < 0:
            raise InvariantViolation(f"GA level {level.name!r} has negative capacity")
        parsed.append(level)
    if not parsed:
        raise InvariantViolation("a general admission layout needs at least one level")

    return Layout(
        id=layout_id or f"layout-{uuid.uuid4().hex[:12]}",
        venue_id=venue_id,
        name=name,
        type=LayoutType.general_admission,
        stage=stage or Stage(),
        capacity=sum(level.capacity for level in parsed),
        ga_levels=tuple(parsed),
    )
