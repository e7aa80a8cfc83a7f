"""
Layout Model edits.

Every function takes a :class:`~seating_layout.chart.Layout` and returns a new
one; nothing is mutated in place. Sections and rows are replaced by id so that
callers holding an older index never write into the wrong entry. Operations
that name a section or row that does not exist return the layout unchanged.

``capacity`` is kept equal to the total number of seats by adjusting it by
exactly the number of seats each edit adds or removes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Optional

from .chart import (
    DEFAULT_SECTION_COLOR,
    InvariantViolation,
    Layout,
    PricingTier,
    Row,
    Seat,
    Section,
    row_id,
    row_label,
    seat_id,
)
from .geometry import (
    ROW_SPACING,
    SEAT_SPACING,
    curve_radius,
    default_curve,
    row_y,
    straight_seat_x,
)

logger = logging.getLogger(__name__)

DEFAULT_ROWS = 10
DEFAULT_SEATS_PER_ROW = 20
SECTION_ORIGIN_X = 400.0
SECTION_ORIGIN_Y = 350.0
SECTION_STRIDE = 50.0

_ROW_KEY_RE = re.compile(r"-row-(\d+)$")


def _replace_section(layout: Layout, section: Section, capacity_delta: int = 0) -> Layout:
    sections = tuple(section if s.id == section.id else s for s in layout.sections)
    return replace(layout, sections=sections, capacity=layout.capacity + capacity_delta)


def _replace_row(section: Section, row: Row) -> Section:
    return replace(section, rows=tuple(row if r.id == row.id else r for r in section.rows))


def _row_at(section: Section, row_index: int) -> Optional[Row]:
    if 0 <= row_index < len(section.rows):
        return section.rows[row_index]
    return None


def _section_seat_ids(section: Section) -> set[str]:
    return {s.id for s in section.iter_seats()}


def _row_key(row: Row, fallback: int) -> int:
    m = _ROW_KEY_RE.search(row.id)
    return int(m.group(1)) if m else fallback


def _next_row_key(section: Section) -> int:
    used = {_row_key(r, i) for i, r in enumerate(section.rows)}
    seat_key_re = re.compile(rf"^{re.escape(section.id)}-R(\d+)S\d+$")
    for s in section.iter_seats():
        m = seat_key_re.match(s.id)
        if m:
            used.add(int(m.group(1)))
    key = len(section.rows)
    while key in used:
        key += 1
    return key


def _next_seat_id(section: Section, row: Row, row_index: int) -> str:
    taken = _section_seat_ids(section)
    key = _row_key(row, row_index)
    n = len(row.seats)
    while seat_id(section.id, key, n) in taken:
        n += 1
    return seat_id(section.id, key, n)


def _build_row(section_id: str, key: int, index: int, seats_per_row: int, y: float) -> Row:
    label = row_label(index)
    seats = tuple(
        Seat(
            id=seat_id(section_id, key, s),
            section_id=section_id,
            row=label,
            number=str(s + 1),
            x=straight_seat_x(s, seats_per_row),
            y=y,
        )
        for s in range(seats_per_row)
    )
    return Row(id=row_id(section_id, key), label=label, y=y, seats=seats)


def _next_section_id(layout: Layout) -> str:
    taken = {s.id for s in layout.sections}
    n = len(layout.sections) + 1
    while f"section-{n}" in taken:
        n += 1
    return f"section-{n}"


def new_section(
    layout: Layout,
    *,
    section_id: Optional[str] = None,
    rows: int = DEFAULT_ROWS,
    seats_per_row: int = DEFAULT_SEATS_PER_ROW,
) -> Section:
    sid = section_id or _next_section_id(layout)
    index = len(layout.sections)
    return Section(
        id=sid,
        name=f"Section {index + 1}",
        x=SECTION_ORIGIN_X + index * SECTION_STRIDE,
        y=SECTION_ORIGIN_Y,
        rotation=0.0,
        rows=tuple(_build_row(sid, r, r, seats_per_row, row_y(r)) for r in range(rows)),
        pricing=PricingTier.standard,
        color=DEFAULT_SECTION_COLOR,
        curved=False,
    )


def add_section(layout: Layout, *, section_id: Optional[str] = None) -> Layout:
    """Append a straight 10 x 20 section, offset so it does not cover the previous one."""
    if section_id is not None and layout.find_section(section_id) is not None:
        return layout
    section = new_section(layout, section_id=section_id)
    return replace(
        layout,
        sections=layout.sections + (section,),
        capacity=layout.capacity + section.seat_count,
    )


def remove_section(layout: Layout, section_id: str) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    return replace(
        layout,
        sections=tuple(s for s in layout.sections if s.id != section_id),
        capacity=layout.capacity - section.seat_count,
    )


def clear_layout(layout: Layout) -> Layout:
    return replace(layout, sections=(), capacity=0)


def add_row(layout: Layout, section_id: str) -> Layout:
    """
    Append a row sized like the current last row (20 seats for an empty
    section). On a curved section the new row continues the radius ladder
    and keeps the last row's angular span.
    """
    section = layout.find_section(section_id)
    if section is None:
        return layout

    index = len(section.rows)
    last = section.rows[-1] if section.rows else None
    seats_per_row = len(last.seats) if last is not None else DEFAULT_SEATS_PER_ROW
    y = last.y + ROW_SPACING if last is not None else row_y(0)

    row = _build_row(section.id, _next_row_key(section), index, seats_per_row, y)
    if section.curved:
        curve = default_curve(index)
        if last is not None and last.curve is not None:
            curve = replace(curve, start_angle=last.curve.start_angle, end_angle=last.curve.end_angle)
        row = replace(row, curve=curve)

    section = replace(section, rows=section.rows + (row,))
    return _replace_section(layout, section, capacity_delta=len(row.seats))


def remove_row(layout: Layout, section_id: str, row_index: int) -> Layout:
    """
    Drop a row, then relabel and restack the rows that remain so labels stay
    contiguous from A and every seat agrees with its row's label and y.
    """
    section = layout.find_section(section_id)
    if section is None:
        return layout
    removed = _row_at(section, row_index)
    if removed is None:
        return layout
    if len(section.rows) == 1:
        logger.info("refusing to remove the only row of section %s", section_id)
        raise InvariantViolation(f"section {section_id} must keep at least one row")

    remaining = [r for r in section.rows if r.id != removed.id]
    rows = []
    for i, r in enumerate(remaining):
        label = row_label(i)
        y = row_y(i)
        curve = r.curve
        if section.curved and curve is not None:
            curve = replace(curve, radius=curve_radius(i))
        seats = tuple(replace(s, row=label, y=y) for s in r.seats)
        rows.append(replace(r, label=label, y=y, curve=curve, seats=seats))

    section = replace(section, rows=tuple(rows))
    return _replace_section(layout, section, capacity_delta=-len(removed.seats))


def add_seat_to_row(layout: Layout, section_id: str, row_index: int) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    row = _row_at(section, row_index)
    if row is None:
        return layout

    last = row.seats[-1] if row.seats else None
    seat = Seat(
        id=_next_seat_id(section, row, row_index),
        section_id=section.id,
        row=row.label,
        number=str(len(row.seats) + 1),
        x=last.x + SEAT_SPACING if last is not None else 0.0,
        y=row.y,
    )
    section = _replace_row(section, replace(row, seats=row.seats + (seat,)))
    return _replace_section(layout, section, capacity_delta=1)


def remove_seat_from_row(layout: Layout, section_id: str, row_index: int) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    row = _row_at(section, row_index)
    if row is None or not row.seats:
        return layout
    section = _replace_row(section, replace(row, seats=row.seats[:-1]))
    return _replace_section(layout, section, capacity_delta=-1)


def toggle_curved(layout: Layout, section_id: str) -> Layout:
    """
    Switch a section between straight and arena-style rows. Turning curves on
    gives every row a default arc on the radius ladder; turning them off strips
    the arcs. Seats are never touched.
    """
    section = layout.find_section(section_id)
    if section is None:
        return layout
    curved = not section.curved
    if curved:
        rows = tuple(replace(r, curve=default_curve(i)) for i, r in enumerate(section.rows))
    else:
        rows = tuple(replace(r, curve=None) for r in section.rows)
    return _replace_section(layout, replace(section, curved=curved, rows=rows))


def change_pricing(layout: Layout, section_id: str, tier: PricingTier | str) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    return _replace_section(layout, replace(section, pricing=PricingTier(tier)))


def change_color(layout: Layout, section_id: str, color: str) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    return _replace_section(layout, replace(section, color=color))


def rename_section(layout: Layout, section_id: str, name: str) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    return _replace_section(layout, replace(section, name=name))


def rotate_section(layout: Layout, section_id: str, delta_degrees: float) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    return _replace_section(layout, replace(section, rotation=(section.rotation + delta_degrees) % 360))


def move_section(layout: Layout, section_id: str, x: float, y: float) -> Layout:
    section = layout.find_section(section_id)
    if section is None:
        return layout
    return _replace_section(layout, replace(section, x=x, y=y))
