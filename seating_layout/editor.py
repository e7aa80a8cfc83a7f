"""
Designer editor state and its reducer.

All editor changes go through :func:`reduce` with one of the action types
below. Pointer interaction is a single tagged value (``Idle``,
``DraggingSection``, ``DraggingLabel`` or ``Panning``) so two drags can never
be active at once. Section label offsets and row-label visibility live in
id-keyed maps next to the layout, not inside it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, ClassVar, Mapping, Optional, Union

from . import operations as ops
from .chart import Layout, PricingTier, Section
from .geometry import (
    BUTTON_ZOOM_IN,
    BUTTON_ZOOM_OUT,
    DEFAULT_LABEL,
    HitTarget,
    LabelOffset,
    ViewTransform,
    hit_test,
)

logger = logging.getLogger(__name__)

PRIMARY_BUTTON = 0
MIDDLE_BUTTON = 1


class EditorMode(str, Enum):
    edit = "edit"
    preview = "preview"


@dataclass(frozen=True)
class Idle:
    kind: ClassVar[str] = "idle"


@dataclass(frozen=True)
class DraggingSection:
    section_id: str
    offset_x: float
    offset_y: float
    kind: ClassVar[str] = "draggingSection"


@dataclass(frozen=True)
class DraggingLabel:
    section_id: str
    offset_x: float
    offset_y: float
    kind: ClassVar[str] = "draggingLabel"


@dataclass(frozen=True)
class Panning:
    offset_x: float
    offset_y: float
    kind: ClassVar[str] = "panning"


Interaction = Union[Idle, DraggingSection, DraggingLabel, Panning]
IDLE = Idle()


# -- actions -----------------------------------------------------------------


@dataclass(frozen=True)
class AddSection:
    section_id: Optional[str] = None
    type: ClassVar[str] = "ADD_SECTION"


@dataclass(frozen=True)
class RemoveSection:
    section_id: Optional[str] = None
    type: ClassVar[str] = "REMOVE_SECTION"


@dataclass(frozen=True)
class ClearLayout:
    type: ClassVar[str] = "CLEAR_LAYOUT"


@dataclass(frozen=True)
class AddRow:
    section_id: str
    type: ClassVar[str] = "ADD_ROW"


@dataclass(frozen=True)
class RemoveRow:
    section_id: str
    row_index: int
    type: ClassVar[str] = "REMOVE_ROW"


@dataclass(frozen=True)
class AddSeat:
    section_id: str
    row_index: int
    type: ClassVar[str] = "ADD_SEAT"


@dataclass(frozen=True)
class RemoveSeat:
    section_id: str
    row_index: int
    type: ClassVar[str] = "REMOVE_SEAT"


@dataclass(frozen=True)
class ToggleCurved:
    section_id: Optional[str] = None
    type: ClassVar[str] = "TOGGLE_CURVED"


@dataclass(frozen=True)
class SetPricing:
    pricing: PricingTier
    section_id: Optional[str] = None
    type: ClassVar[str] = "SET_PRICING"


@dataclass(frozen=True)
class SetColor:
    color: str
    section_id: Optional[str] = None
    type: ClassVar[str] = "SET_COLOR"


@dataclass(frozen=True)
class RenameSection:
    name: str
    section_id: Optional[str] = None
    type: ClassVar[str] = "RENAME_SECTION"


@dataclass(frozen=True)
class RotateSection:
    delta: float
    section_id: Optional[str] = None
    type: ClassVar[str] = "ROTATE_SECTION"


@dataclass(frozen=True)
class MoveLabel:
    x: float
    y: float
    section_id: Optional[str] = None
    type: ClassVar[str] = "MOVE_LABEL"


@dataclass(frozen=True)
class RotateLabel:
    delta: float
    section_id: Optional[str] = None
    type: ClassVar[str] = "ROTATE_LABEL"


@dataclass(frozen=True)
class SelectSection:
    section_id: Optional[str]
    type: ClassVar[str] = "SELECT_SECTION"


@dataclass(frozen=True)
class ToggleRowVisibility:
    row_id: str
    type: ClassVar[str] = "TOGGLE_ROW_VISIBILITY"


@dataclass(frozen=True)
class ToggleGrid:
    type: ClassVar[str] = "TOGGLE_GRID"


@dataclass(frozen=True)
class ReplaceLayout:
    """Swap in a layout produced outside the editor (imports)."""

    layout: Layout
    type: ClassVar[str] = "REPLACE_LAYOUT"


@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float
    button: int = PRIMARY_BUTTON
    shift: bool = False
    target: Optional[HitTarget] = None
    type: ClassVar[str] = "POINTER_DOWN"


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float
    type: ClassVar[str] = "POINTER_MOVE"


@dataclass(frozen=True)
class PointerUp:
    type: ClassVar[str] = "POINTER_UP"


@dataclass(frozen=True)
class Wheel:
    delta_y: float
    ctrl: bool = False
    meta: bool = False
    type: ClassVar[str] = "WHEEL"


@dataclass(frozen=True)
class ZoomIn:
    type: ClassVar[str] = "ZOOM_IN"


@dataclass(frozen=True)
class ZoomOut:
    type: ClassVar[str] = "ZOOM_OUT"


@dataclass(frozen=True)
class ResetView:
    type: ClassVar[str] = "RESET_VIEW"


Action = Union[
    AddSection,
    RemoveSection,
    ClearLayout,
    AddRow,
    RemoveRow,
    AddSeat,
    RemoveSeat,
    ToggleCurved,
    SetPricing,
    SetColor,
    RenameSection,
    RotateSection,
    MoveLabel,
    RotateLabel,
    SelectSection,
    ToggleRowVisibility,
    ToggleGrid,
    ReplaceLayout,
    PointerDown,
    PointerMove,
    PointerUp,
    Wheel,
    ZoomIn,
    ZoomOut,
    ResetView,
]

DESTRUCTIVE_ACTIONS: tuple[type, ...] = (RemoveSection, ClearLayout)

# Actions that change the venue itself; ignored while previewing.
MODEL_ACTIONS: tuple[type, ...] = (
    AddSection,
    RemoveSection,
    ClearLayout,
    AddRow,
    RemoveRow,
    AddSeat,
    RemoveSeat,
    ToggleCurved,
    SetPricing,
    SetColor,
    RenameSection,
    RotateSection,
    MoveLabel,
    RotateLabel,
    ReplaceLayout,
)


# -- state -------------------------------------------------------------------


@dataclass(frozen=True)
class EditorState:
    layout: Layout
    mode: EditorMode = EditorMode.edit
    view: ViewTransform = field(default_factory=ViewTransform)
    interaction: Interaction = IDLE
    selected_section: Optional[str] = None
    labels: Mapping[str, LabelOffset] = field(default_factory=dict)
    row_visibility: Mapping[str, bool] = field(default_factory=dict)
    show_grid: bool = True
    grid_size: int = 20

    @classmethod
    def open(cls, layout: Layout, mode: EditorMode = EditorMode.edit) -> "EditorState":
        return _sync_maps(cls(layout=layout, mode=mode))

    def label_for(self, section_id: str) -> LabelOffset:
        return self.labels.get(section_id, DEFAULT_LABEL)

    def row_visible(self, row_id: str) -> bool:
        return self.row_visibility.get(row_id, True)

    @property
    def selected(self) -> Optional[Section]:
        return self.layout.find_section(self.selected_section)


def _sync_maps(state: EditorState) -> EditorState:
    """Give every section a label entry and drop entries for vanished sections and rows."""
    section_ids = [s.id for s in state.layout.sections]
    labels = {sid: state.labels.get(sid, DEFAULT_LABEL) for sid in section_ids}
    row_ids = {r.id for s in state.layout.sections for r in s.rows}
    visibility = {rid: v for rid, v in state.row_visibility.items() if rid in row_ids}
    selected = state.selected_section if state.selected_section in labels else None
    interaction = state.interaction
    if isinstance(interaction, (DraggingSection, DraggingLabel)) and interaction.section_id not in labels:
        interaction = IDLE
    return replace(
        state,
        labels=labels,
        row_visibility=visibility,
        selected_section=selected,
        interaction=interaction,
    )


def _with_layout(state: EditorState, layout: Layout) -> EditorState:
    if layout is state.layout:
        return state
    return _sync_maps(replace(state, layout=layout))


def _target(state: EditorState, section_id: Optional[str]) -> Optional[str]:
    return section_id if section_id is not None else state.selected_section


# -- handlers ----------------------------------------------------------------


def _add_section(state: EditorState, a: AddSection) -> EditorState:
    return _with_layout(state, ops.add_section(state.layout, section_id=a.section_id))


def _remove_section(state: EditorState, a: RemoveSection) -> EditorState:
    sid = _target(state, a.section_id)
    if sid is None:
        return state
    return _with_layout(state, ops.remove_section(state.layout, sid))


def _clear_layout(state: EditorState, a: ClearLayout) -> EditorState:
    return _with_layout(state, ops.clear_layout(state.layout))


def _add_row(state: EditorState, a: AddRow) -> EditorState:
    return _with_layout(state, ops.add_row(state.layout, a.section_id))


def _remove_row(state: EditorState, a: RemoveRow) -> EditorState:
    return _with_layout(state, ops.remove_row(state.layout, a.section_id, a.row_index))


def _add_seat(state: EditorState, a: AddSeat) -> EditorState:
    return _with_layout(state, ops.add_seat_to_row(state.layout, a.section_id, a.row_index))


def _remove_seat(state: EditorState, a: RemoveSeat) -> EditorState:
    return _with_layout(state, ops.remove_seat_from_row(state.layout, a.section_id, a.row_index))


def _section_edit(fn: Callable[..., Layout], *args_from: str) -> Callable[[EditorState, Action], EditorState]:
    def handler(state: EditorState, a) -> EditorState:
        sid = _target(state, a.section_id)
        if sid is None:
            return state
        return _with_layout(state, fn(state.layout, sid, *(getattr(a, name) for name in args_from)))

    return handler


def _move_label(state: EditorState, a: MoveLabel) -> EditorState:
    sid = _target(state, a.section_id)
    if sid is None or sid not in state.labels:
        return state
    labels = dict(state.labels)
    labels[sid] = replace(state.label_for(sid), x=a.x, y=a.y)
    return replace(state, labels=labels)


def _rotate_label(state: EditorState, a: RotateLabel) -> EditorState:
    sid = _target(state, a.section_id)
    if sid is None or sid not in state.labels:
        return state
    current = state.label_for(sid)
    labels = dict(state.labels)
    labels[sid] = replace(current, rotation=current.rotation + a.delta)
    return replace(state, labels=labels)


def _select_section(state: EditorState, a: SelectSection) -> EditorState:
    if a.section_id is not None and state.layout.find_section(a.section_id) is None:
        return state
    return replace(state, selected_section=a.section_id)


def _toggle_row_visibility(state: EditorState, a: ToggleRowVisibility) -> EditorState:
    if not any(r.id == a.row_id for s in state.layout.sections for r in s.rows):
        return state
    visibility = dict(state.row_visibility)
    visibility[a.row_id] = not state.row_visible(a.row_id)
    return replace(state, row_visibility=visibility)


def _toggle_grid(state: EditorState, a: ToggleGrid) -> EditorState:
    return replace(state, show_grid=not state.show_grid)


def _replace_layout(state: EditorState, a: ReplaceLayout) -> EditorState:
    return _with_layout(state, a.layout)


def _pointer_down(state: EditorState, a: PointerDown) -> EditorState:
    if not isinstance(state.interaction, Idle):
        return state

    target = a.target
    if target is None:
        target = hit_test(state.layout.sections, state.labels, state.view, a.x, a.y)

    if state.mode is EditorMode.edit and target is not None:
        section = state.layout.find_section(target.section_id)
        if section is not None and target.kind == "label":
            label = state.label_for(section.id)
            return replace(
                state,
                selected_section=section.id,
                interaction=DraggingLabel(section.id, a.x - label.x, a.y - label.y),
            )
        if section is not None:
            return replace(
                state,
                selected_section=section.id,
                interaction=DraggingSection(section.id, a.x - section.x, a.y - section.y),
            )

    if a.button == MIDDLE_BUTTON or (a.button == PRIMARY_BUTTON and a.shift):
        return replace(state, interaction=Panning(a.x - state.view.pan_x, a.y - state.view.pan_y))
    return state


def _pointer_move(state: EditorState, a: PointerMove) -> EditorState:
    it = state.interaction
    if isinstance(it, DraggingLabel):
        labels = dict(state.labels)
        labels[it.section_id] = replace(state.label_for(it.section_id), x=a.x - it.offset_x, y=a.y - it.offset_y)
        return replace(state, labels=labels)
    if isinstance(it, DraggingSection):
        layout = ops.move_section(state.layout, it.section_id, a.x - it.offset_x, a.y - it.offset_y)
        return replace(state, layout=layout)
    if isinstance(it, Panning):
        return replace(state, view=state.view.panned_to(a.x - it.offset_x, a.y - it.offset_y))
    return state


def _pointer_up(state: EditorState, a: PointerUp) -> EditorState:
    if isinstance(state.interaction, Idle):
        return state
    return replace(state, interaction=IDLE)


def _wheel(state: EditorState, a: Wheel) -> EditorState:
    if not (a.ctrl or a.meta):
        return state
    return replace(state, view=state.view.wheel(a.delta_y))


def _zoom_in(state: EditorState, a: ZoomIn) -> EditorState:
    return replace(state, view=state.view.zoomed(BUTTON_ZOOM_IN))


def _zoom_out(state: EditorState, a: ZoomOut) -> EditorState:
    return replace(state, view=state.view.zoomed(BUTTON_ZOOM_OUT))


def _reset_view(state: EditorState, a: ResetView) -> EditorState:
    return replace(state, view=ViewTransform())


_HANDLERS: dict[type, Callable[[EditorState, Action], EditorState]] = {
    AddSection: _add_section,
    RemoveSection: _remove_section,
    ClearLayout: _clear_layout,
    AddRow: _add_row,
    RemoveRow: _remove_row,
    AddSeat: _add_seat,
    RemoveSeat: _remove_seat,
    ToggleCurved: _section_edit(ops.toggle_curved),
    SetPricing: _section_edit(ops.change_pricing, "pricing"),
    SetColor: _section_edit(ops.change_color, "color"),
    RenameSection: _section_edit(ops.rename_section, "name"),
    RotateSection: _section_edit(ops.rotate_section, "delta"),
    MoveLabel: _move_label,
    RotateLabel: _rotate_label,
    SelectSection: _select_section,
    ToggleRowVisibility: _toggle_row_visibility,
    ToggleGrid: _toggle_grid,
    ReplaceLayout: _replace_layout,
    PointerDown: _pointer_down,
    PointerMove: _pointer_move,
    PointerUp: _pointer_up,
    Wheel: _wheel,
    ZoomIn: _zoom_in,
    ZoomOut: _zoom_out,
    ResetView: _reset_view,
}


def reduce(state: EditorState, action: Action) -> EditorState:
    """Apply one action and return the next editor state."""
    if state.mode is EditorMode.preview and isinstance(action, MODEL_ACTIONS):
        logger.debug("ignoring %s in preview mode", action.type)
        return state
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"unknown editor action: {action!r}")
    return handler(state, action)
