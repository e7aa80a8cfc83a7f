from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional


class SeatingChartError(Exception):
    pass


class InvariantViolation(SeatingChartError):
    """A structural edit would leave the layout in an invalid shape."""


class LayoutTypeError(SeatingChartError):
    """The layout variant does not support the requested editor."""


class ConfirmationRequired(SeatingChartError):
    """A destructive operation was requested without explicit confirmation."""


class PricingTier(str, Enum):
    vip = "vip"
    premium = "premium"
    standard = "standard"
    economy = "economy"


class SeatStatus(str, Enum):
    available = "available"
    sold = "sold"
    held = "held"
    blocked = "blocked"


class SeatType(str, Enum):
    regular = "regular"
    wheelchair = "wheelchair"


class LayoutType(str, Enum):
    seating_chart = "seating_chart"
    general_admission = "general_admission"


class GALevelType(str, Enum):
    standing = "standing"
    seated = "seated"
    mixed = "mixed"


DEFAULT_SECTION_COLOR = "#4a5568"
DOCUMENT_VERSION = "2.0"


def row_label(index: int) -> str:
    """
    Zero-based alphabetic row label: 0 -> A, 25 -> Z, 26 -> AA, 27 -> AB.
    """
    if index < 0:
        raise SeatingChartError(f"row index must be non-negative: {index}")
    label = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        label = chr(65 + rem) + label
    return label


def row_id(section_id: str, key: int) -> str:
    return f"{section_id}-row-{key}"


def seat_id(section_id: str, row_key: int, seat_index: int) -> str:
    return f"{section_id}-R{row_key}S{seat_index}"


def _enum(cls: type[Enum], value: Any, default: Enum) -> Any:
    if value is None or value == "":
        return default
    try:
        return cls(value)
    except ValueError as e:
        raise SeatingChartError(f"invalid {cls.__name__} value: {value!r}") from e


@dataclass(frozen=True)
class Curve:
    radius: float
    start_angle: float
    end_angle: float

    @property
    def angle_range(self) -> float:
        return self.end_angle - self.start_angle

    def to_dict(self) -> dict:
        return {"radius": self.radius, "startAngle": self.start_angle, "endAngle": self.end_angle}

    @classmethod
    def from_dict(cls, data: dict) -> "Curve":
        return cls(
            radius=float(data["radius"]),
            start_angle=float(data.get("startAngle", -35)),
            end_angle=float(data.get("endAngle", 35)),
        )


@dataclass(frozen=True)
class Seat:
    id: str
    section_id: str
    row: str
    number: str
    x: float
    y: float
    status: SeatStatus = SeatStatus.available
    type: SeatType = SeatType.regular
    angle: Optional[float] = None

    def to_dict(self) -> dict:
        d = {
            "id": self.id,
            "sectionId": self.section_id,
            "row": self.row,
            "number": self.number,
            "x": self.x,
            "y": self.y,
            "status": self.status.value,
            "type": self.type.value,
        }
        if self.angle is not None:
            d["angle"] = self.angle
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Seat":
        angle = data.get("angle")
        return cls(
            id=str(data["id"]),
            section_id=str(data.get("sectionId", "")),
            row=str(data.get("row", "")),
            number=str(data.get("number", "")),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            status=_enum(SeatStatus, data.get("status"), SeatStatus.available),
            type=_enum(SeatType, data.get("type"), SeatType.regular),
            angle=float(angle) if angle is not None else None,
        )


@dataclass(frozen=True)
class Row:
    id: str
    label: str
    y: float
    seats: tuple[Seat, ...] = ()
    curve: Optional[Curve] = None

    def to_dict(self) -> dict:
        d: dict = {
            "id": self.id,
            "label": self.label,
            "y": self.y,
            "seats": [s.to_dict() for s in self.seats],
        }
        if self.curve is not None:
            d["curve"] = self.curve.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Row":
        curve = data.get("curve")
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", "")),
            y=float(data.get("y", 0.0)),
            seats=tuple(Seat.from_dict(s) for s in data.get("seats") or []),
            curve=Curve.from_dict(curve) if curve else None,
        )


@dataclass(frozen=True)
class Section:
    id: str
    name: str
    x: float
    y: float
    rotation: float = 0.0
    rows: tuple[Row, ...] = ()
    pricing: PricingTier = PricingTier.standard
    color: str = DEFAULT_SECTION_COLOR
    curved: bool = False

    @property
    def seat_count(self) -> int:
        return sum(len(r.seats) for r in self.rows)

    def iter_seats(self) -> Iterator[Seat]:
        for r in self.rows:
            yield from r.seats

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "rotation": self.rotation,
            "rows": [r.to_dict() for r in self.rows],
            "pricing": self.pricing.value,
            "color": self.color,
            "curved": self.curved,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Section":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            rotation=float(data.get("rotation") or 0.0),
            rows=tuple(Row.from_dict(r) for r in data.get("rows") or []),
            pricing=_enum(PricingTier, data.get("pricing"), PricingTier.standard),
            color=str(data.get("color") or DEFAULT_SECTION_COLOR),
            curved=bool(data.get("curved", False)),
        )


@dataclass(frozen=True)
class Stage:
    x: float = 400.0
    y: float = 50.0
    width: float = 400.0
    height: float = 60.0
    label: str = "STAGE"
    type: str = "stage"

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "label": self.label,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Stage":
        default = cls()
        return cls(
            x=float(data.get("x", default.x)),
            y=float(data.get("y", default.y)),
            width=float(data.get("width", default.width)),
            height=float(data.get("height", default.height)),
            label=str(data.get("label", default.label)),
            type=str(data.get("type", default.type)),
        )


@dataclass(frozen=True)
class Aisle:
    id: str
    x1: float
    y1: float
    x2: float
    y2: float
    width: float

    def to_dict(self) -> dict:
        return {"id": self.id, "x1": self.x1, "y1": self.y1, "x2": self.x2, "y2": self.y2, "width": self.width}

    @classmethod
    def from_dict(cls, data: dict) -> "Aisle":
        return cls(
            id=str(data["id"]),
            x1=float(data["x1"]),
            y1=float(data["y1"]),
            x2=float(data["x2"]),
            y2=float(data["y2"]),
            width=float(data.get("width", 0.0)),
        )


@dataclass(frozen=True)
class ViewBox:
    x: float = 0.0
    y: float = 0.0
    width: float = 1200.0
    height: float = 800.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict) -> "ViewBox":
        default = cls()
        return cls(
            x=float(data.get("x", default.x)),
            y=float(data.get("y", default.y)),
            width=float(data.get("width", default.width)),
            height=float(data.get("height", default.height)),
        )


@dataclass(frozen=True)
class PriceCategory:
    id: str
    name: str
    color: str
    price: float

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color, "price": self.price}

    @classmethod
    def from_dict(cls, data: dict) -> "PriceCategory":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            color=str(data.get("color", DEFAULT_SECTION_COLOR)),
            price=float(data.get("price", 0)),
        )


@dataclass(frozen=True)
class GALevel:
    id: str
    name: str
    capacity: int
    type: GALevelType = GALevelType.mixed

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "capacity": self.capacity, "type": self.type.value}

    @classmethod
    def from_dict(cls, data: dict) -> "GALevel":
        name = str(data.get("name", ""))
        return cls(
            id=str(data.get("id") or name),
            name=name,
            capacity=int(data.get("capacity") or 0),
            type=_enum(GALevelType, data.get("type"), GALevelType.mixed),
        )


@dataclass(frozen=True)
class Layout:
    """
    A venue layout document.

    Two variants share this type, told apart by ``type``: seating charts hold
    sections of rows of seats, general-admission layouts hold capacity levels.
    A layout never carries both.
    """

    id: str
    venue_id: str
    name: str
    type: LayoutType = LayoutType.seating_chart
    sections: tuple[Section, ...] = ()
    stage: Stage = field(default_factory=Stage)
    aisles: tuple[Aisle, ...] = ()
    capacity: int = 0
    view_box: ViewBox = field(default_factory=ViewBox)
    price_categories: tuple[PriceCategory, ...] = ()
    ga_levels: tuple[GALevel, ...] = ()

    def __post_init__(self) -> None:
        if self.type is LayoutType.general_admission and self.sections:
            raise InvariantViolation("general admission layouts cannot contain sections")
        if self.type is LayoutType.seating_chart and self.ga_levels:
            raise InvariantViolation("seating chart layouts cannot contain GA levels")

    @property
    def is_general_admission(self) -> bool:
        return self.type is LayoutType.general_admission

    def seat_count(self) -> int:
        if self.is_general_admission:
            return sum(level.capacity for level in self.ga_levels)
        return sum(s.seat_count for s in self.sections)

    def find_section(self, section_id: Optional[str]) -> Optional[Section]:
        if section_id is None:
            return None
        for s in self.sections:
            if s.id == section_id:
                return s
        return None

    def find_seat(self, seat_id_: str) -> Optional[tuple[Section, Row, Seat]]:
        for s in self.sections:
            for r in s.rows:
                for seat in r.seats:
                    if seat.id == seat_id_:
                        return s, r, seat
        return None

    def to_document(self) -> dict:
        """Serialize to the persistence document shape."""
        doc: dict = {
            "name": self.name,
            "type": self.type.value,
            "venueId": self.venue_id,
            "stage": self.stage.to_dict(),
            "aisles": [a.to_dict() for a in self.aisles],
            "totalCapacity": self.capacity,
            "viewBox": self.view_box.to_dict(),
            "priceCategories": [p.to_dict() for p in self.price_categories],
            "configuration": {"version": DOCUMENT_VERSION, "format": "svg"},
        }
        if self.is_general_admission:
            doc["gaLevels"] = [level.to_dict() for level in self.ga_levels]
        else:
            doc["sections"] = [s.to_dict() for s in self.sections]
        return doc

    @classmethod
    def from_document(cls, data: dict) -> "Layout":
        try:
            layout_type = _enum(LayoutType, data.get("type"), LayoutType.seating_chart)
            capacity = data.get("totalCapacity", data.get("capacity", 0))
            stage = data.get("stage")
            view_box = data.get("viewBox")
            return cls(
                id=str(data.get("id", "")),
                venue_id=str(data.get("venueId", "")),
                name=str(data.get("name", "")),
                type=layout_type,
                sections=tuple(Section.from_dict(s) for s in data.get("sections") or []),
                stage=Stage.from_dict(stage) if stage else Stage(),
                aisles=tuple(Aisle.from_dict(a) for a in data.get("aisles") or []),
                capacity=int(capacity or 0),
                view_box=ViewBox.from_dict(view_box) if view_box else ViewBox(),
                price_categories=tuple(PriceCategory.from_dict(p) for p in data.get("priceCategories") or []),
                ga_levels=tuple(GALevel.from_dict(g) for g in data.get("gaLevels") or []),
            )
        except SeatingChartError:
            raise
        except Exception as e:  # noqa: BLE001 - surface malformed documents as one error type
            raise SeatingChartError(f"invalid layout document: {e}") from e
