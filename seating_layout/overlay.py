from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional

from .chart import Layout, PricingTier, Seat, SeatStatus

logger = logging.getLogger(__name__)

PREVIEW_FILL = {
    SeatStatus.available.value: "#48bb78",
    SeatStatus.sold.value: "#e53e3e",
    SeatStatus.held.value: "#ed8936",
    SeatStatus.blocked.value: "#718096",
}

TIER_PRICES = {
    PricingTier.vip: 250,
    PricingTier.premium: 150,
    PricingTier.standard: 100,
    PricingTier.economy: 75,
}
DEFAULT_TIER_PRICE = 100

StatusFetcher = Callable[[str], Mapping[str, str]]


class AvailabilityOverlay:
    """
    Per-event seat status lookup layered over a layout at render time.

    The layout is never written to. Each time the event changes the whole
    ``seat id -> status`` table is replaced, so nothing from a previous event
    survives into the next one.
    """

    def __init__(self, fetch: StatusFetcher):
        self._fetch = fetch
        self.event_id: Optional[str] = None
        self._statuses: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._statuses)

    def set_event(self, event_id: Optional[str]) -> bool:
        """Switch to ``event_id``, refetching if it changed. Returns True when a fetch ran."""
        if event_id == self.event_id:
            return False
        self.event_id = event_id
        self._statuses = {}
        if event_id is None:
            return False
        try:
            self.refresh()
        except Exception:
            # Forget the event so asking for it again retries the fetch.
            self.event_id = None
            raise
        return True

    def refresh(self) -> None:
        if self.event_id is None:
            return
        self._statuses = {}
        statuses = self._fetch(self.event_id)
        self._statuses = {str(k): str(v) for k, v in statuses.items()}
        logger.info("loaded %d seat statuses for event %s", len(self._statuses), self.event_id)

    def status_for(self, seat: Seat) -> str:
        return self._statuses.get(seat.id, seat.status.value)

    def is_available(self, seat: Seat) -> bool:
        return self.status_for(seat) == SeatStatus.available.value


def preview_fill(status: str, default: str) -> str:
    return PREVIEW_FILL.get(status, default)


@dataclass(frozen=True)
class SelectedSeat:
    id: str
    section: str
    row: str
    number: str
    price: int

    def to_dict(self) -> dict:
        return {"id": self.id, "section": self.section, "row": self.row, "number": self.number, "price": self.price}


class SeatSelection:
    """Seats picked in preview mode. Only available seats can be added."""

    def __init__(self, seat_ids: Iterable[str] = ()):
        self._ids: set[str] = set(seat_ids)

    def __contains__(self, seat_id: str) -> bool:
        return seat_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)

    def toggle(self, seat: Seat, overlay: AvailabilityOverlay) -> bool:
        """Flip membership of ``seat``; returns whether it is selected afterwards."""
        if seat.id in self._ids:
            self._ids.discard(seat.id)
            return False
        if not overlay.is_available(seat):
            return False
        self._ids.add(seat.id)
        return True

    def clear(self) -> None:
        self._ids.clear()

    def summary(self, layout: Layout) -> list[SelectedSeat]:
        out = []
        for section in layout.sections:
            price = TIER_PRICES.get(section.pricing, DEFAULT_TIER_PRICE)
            for row in section.rows:
                for seat in row.seats:
                    if seat.id in self._ids:
                        out.append(SelectedSeat(seat.id, section.name, row.label, seat.number, price))
        return out
