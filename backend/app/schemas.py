from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from seating_layout import editor
from seating_layout.chart import GALevelType, PricingTier


class _SectionTarget(BaseModel):
    # Omitted means the currently selected section.
    section_id: Optional[str] = None


class AddSectionIn(BaseModel):
    type: Literal["ADD_SECTION"]
    section_id: Optional[str] = None

    def to_action(self) -> editor.Action:
        return editor.AddSection(self.section_id)


class RemoveSectionIn(_SectionTarget):
    type: Literal["REMOVE_SECTION"]

    def to_action(self) -> editor.Action:
        return editor.RemoveSection(self.section_id)


class ClearLayoutIn(BaseModel):
    type: Literal["CLEAR_LAYOUT"]

    def to_action(self) -> editor.Action:
        return editor.ClearLayout()


class AddRowIn(BaseModel):
    type: Literal["ADD_ROW"]
    section_id: str

    def to_action(self) -> editor.Action:
        return editor.AddRow(self.section_id)


class RemoveRowIn(BaseModel):
    type: Literal["REMOVE_ROW"]
    section_id: str
    row_index: int = Field(ge=0)

    def to_action(self) -> editor.Action:
        return editor.RemoveRow(self.section_id, self.row_index)


class AddSeatIn(BaseModel):
    type: Literal["ADD_SEAT"]
    section_id: str
    row_index: int = Field(ge=0)

    def to_action(self) -> editor.Action:
        return editor.AddSeat(self.section_id, self.row_index)


class RemoveSeatIn(BaseModel):
    type: Literal["REMOVE_SEAT"]
    section_id: str
    row_index: int = Field(ge=0)

    def to_action(self) -> editor.Action:
        return editor.RemoveSeat(self.section_id, self.row_index)


class ToggleCurvedIn(_SectionTarget):
    type: Literal["TOGGLE_CURVED"]

    def to_action(self) -> editor.Action:
        return editor.ToggleCurved(self.section_id)


class SetPricingIn(_SectionTarget):
    type: Literal["SET_PRICING"]
    pricing: PricingTier

    def to_action(self) -> editor.Action:
        return editor.SetPricing(self.pricing, self.section_id)


class SetColorIn(_SectionTarget):
    type: Literal["SET_COLOR"]
    color: str = Field(min_length=1)

    def to_action(self) -> editor.Action:
        return editor.SetColor(self.color, self.section_id)


class RenameSectionIn(_SectionTarget):
    type: Literal["RENAME_SECTION"]
    name: str

    @field_validator("name")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("section name must not be blank")
        return v

    def to_action(self) -> editor.Action:
        return editor.RenameSection(self.name, self.section_id)


class RotateSectionIn(_SectionTarget):
    type: Literal["ROTATE_SECTION"]
    delta: float = 15.0

    def to_action(self) -> editor.Action:
        return editor.RotateSection(self.delta, self.section_id)


class MoveLabelIn(_SectionTarget):
    type: Literal["MOVE_LABEL"]
    x: float
    y: float

    def to_action(self) -> editor.Action:
        return editor.MoveLabel(self.x, self.y, self.section_id)


class RotateLabelIn(_SectionTarget):
    type: Literal["ROTATE_LABEL"]
    delta: float = 15.0

    def to_action(self) -> editor.Action:
        return editor.RotateLabel(self.delta, self.section_id)


class SelectSectionIn(BaseModel):
    type: Literal["SELECT_SECTION"]
    section_id: Optional[str] = None

    def to_action(self) -> editor.Action:
        return editor.SelectSection(self.section_id)


class ToggleRowVisibilityIn(BaseModel):
    type: Literal["TOGGLE_ROW_VISIBILITY"]
    row_id: str

    def to_action(self) -> editor.Action:
        return editor.ToggleRowVisibility(self.row_id)


class ToggleGridIn(BaseModel):
    type: Literal["TOGGLE_GRID"]

    def to_action(self) -> editor.Action:
        return editor.ToggleGrid()


class PointerDownIn(BaseModel):
    type: Literal["POINTER_DOWN"]
    x: float
    y: float
    button: int = editor.PRIMARY_BUTTON
    shift: bool = False

    def to_action(self) -> editor.Action:
        return editor.PointerDown(self.x, self.y, button=self.button, shift=self.shift)


class PointerMoveIn(BaseModel):
    type: Literal["POINTER_MOVE"]
    x: float
    y: float

    def to_action(self) -> editor.Action:
        return editor.PointerMove(self.x, self.y)


class PointerUpIn(BaseModel):
    type: Literal["POINTER_UP"]

    def to_action(self) -> editor.Action:
        return editor.PointerUp()


class WheelIn(BaseModel):
    type: Literal["WHEEL"]
    delta_y: float
    ctrl: bool = False
    meta: bool = False

    def to_action(self) -> editor.Action:
        return editor.Wheel(self.delta_y, ctrl=self.ctrl, meta=self.meta)


class ViewCommandIn(BaseModel):
    type: Literal["ZOOM_IN", "ZOOM_OUT", "RESET_VIEW"]

    def to_action(self) -> editor.Action:
        if self.type == "ZOOM_IN":
            return editor.ZoomIn()
        if self.type == "ZOOM_OUT":
            return editor.ZoomOut()
        return editor.ResetView()


ActionIn = Annotated[
    Union[
        AddSectionIn,
        RemoveSectionIn,
        ClearLayoutIn,
        AddRowIn,
        RemoveRowIn,
        AddSeatIn,
        RemoveSeatIn,
        ToggleCurvedIn,
        SetPricingIn,
        SetColorIn,
        RenameSectionIn,
        RotateSectionIn,
        MoveLabelIn,
        RotateLabelIn,
        SelectSectionIn,
        ToggleRowVisibilityIn,
        ToggleGridIn,
        PointerDownIn,
        PointerMoveIn,
        PointerUpIn,
        WheelIn,
        ViewCommandIn,
    ],
    Field(discriminator="type"),
]


class ActionRequest(BaseModel):
    action: ActionIn
    # Required for REMOVE_SECTION and CLEAR_LAYOUT.
    confirmed: bool = False


class SessionCreate(BaseModel):
    name: str = "New Layout"


class GALevelIn(BaseModel):
    name: str = Field(min_length=1)
    capacity: int = Field(ge=0)
    type: GALevelType = GALevelType.standing


class GALayoutCreate(BaseModel):
    name: str = Field(min_length=1)
    levels: list[GALevelIn] = Field(min_length=1)


class AnalyzeRequest(BaseModel):
    # Base64 data URL or plain base64 of the venue image.
    image: str = Field(min_length=1)
    venue_type: str = "theater"


class TemplateRequest(BaseModel):
    template: Literal["theater", "stadium", "arena", "concert"]


class PreviewCreate(BaseModel):
    venue_id: str
    layout_id: str
    event_id: Optional[str] = None


class EventUpdate(BaseModel):
    event_id: Optional[str] = None
