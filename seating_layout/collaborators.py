"""
HTTP clients for the services the designer talks to: layout persistence,
live seat availability, AI section detection and template generation.

Every call is a single request with no retry. Transport failures, error
statuses and payloads of the wrong shape all raise :class:`CollaboratorError`
carrying a message fit to show the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


class CollaboratorError(Exception):
    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LayoutStore(Protocol):
    def get_layouts_by_venue_id(self, venue_id: str) -> list[dict]: ...

    def create_layout(self, data: dict) -> dict: ...

    def update_layout(self, layout_id: str, data: dict) -> dict: ...

    def delete_layout(self, layout_id: str) -> None: ...


def _error_detail(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            if isinstance(body.get(key), str):
                return body[key]
    return None


class _JsonClient:
    name = "service"

    def __init__(self, base_url: str, *, client: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self._client = client if client is not None else httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("%s request %s %s failed: %s", self.name, method, url, e)
            raise CollaboratorError(f"{self.name} is unreachable: {e}") from e

        if resp.status_code >= 400:
            detail = _error_detail(resp)
            logger.warning("%s returned HTTP %s for %s %s: %s", self.name, resp.status_code, method, url, detail)
            raise CollaboratorError(detail or f"{self.name} returned HTTP {resp.status_code}", status_code=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.warning("%s returned a non-JSON body for %s %s", self.name, method, url)
            raise CollaboratorError(f"{self.name} returned a malformed response") from e


class LayoutApiClient(_JsonClient):
    """REST layout persistence: ``/layouts`` collection keyed by layout id."""

    name = "layout service"

    def get_layouts_by_venue_id(self, venue_id: str) -> list[dict]:
        data = self._request("GET", f"{self.base_url}/layouts", params={"venueId": venue_id})
        if isinstance(data, dict):
            data = data.get("layouts")
        if not isinstance(data, list):
            raise CollaboratorError("layout service returned a malformed layout list")
        return [d for d in data if isinstance(d, dict)]

    def create_layout(self, data: dict) -> dict:
        created = self._request("POST", f"{self.base_url}/layouts", json=data)
        return self._merge(data, created)

    def update_layout(self, layout_id: str, data: dict) -> dict:
        updated = self._request("PUT", f"{self.base_url}/layouts/{layout_id}", json=data)
        merged = self._merge(data, updated)
        merged.setdefault("id", layout_id)
        return merged

    def delete_layout(self, layout_id: str) -> None:
        self._request("DELETE", f"{self.base_url}/layouts/{layout_id}")

    @staticmethod
    def _merge(sent: dict, returned: Any) -> dict:
        # The service may answer with the stored document, just its id, or nothing.
        if isinstance(returned, dict):
            return {**sent, **returned}
        if isinstance(returned, str):
            return {**sent, "id": returned}
        return dict(sent)


class AvailabilityClient(_JsonClient):
    name = "availability service"

    def fetch(self, event_id: str) -> dict[str, str]:
        data = self._request("GET", self.base_url, params={"eventId": event_id})
        seats = data.get("seats") if isinstance(data, dict) else None
        if not isinstance(seats, list):
            raise CollaboratorError("availability service returned a malformed response")
        out: dict[str, str] = {}
        for entry in seats:
            if isinstance(entry, dict) and entry.get("seatId") and entry.get("status"):
                out[str(entry["seatId"])] = str(entry["status"])
        return out


@dataclass(frozen=True)
class DetectionResult:
    sections: list[dict]
    total_capacity: Optional[int]
    stage: Optional[dict]
    message: str


@dataclass(frozen=True)
class TemplateResult:
    sections: list[dict]
    total_capacity: Optional[int]


def _sections_of(data: Any, service: str, fallback: str) -> list[dict]:
    if not isinstance(data, dict):
        raise CollaboratorError(f"{service} returned a malformed response")
    if data.get("error"):
        raise CollaboratorError(str(data["error"]))
    sections = data.get("sections")
    if not isinstance(sections, list) or not sections:
        raise CollaboratorError(fallback)
    if not all(isinstance(s, dict) for s in sections):
        raise CollaboratorError(f"{service} returned a malformed section list")
    return sections


def _int_or_none(v: Any) -> Optional[int]:
    try:
        return int(v) if v is not None else None
    except (TypeError, ValueError):
        return None


class SectionDetectionClient(_JsonClient):
    name = "section detection service"

    def analyze(self, image: str, *, venue_type: str = "theater", existing_capacity: int = 0) -> DetectionResult:
        data = self._request(
            "POST",
            self.base_url,
            json={"image": image, "venueType": venue_type, "existingCapacity": existing_capacity},
        )
        sections = _sections_of(data, self.name, "Could not analyze image. Please try manual creation.")
        total = _int_or_none(data.get("totalCapacity"))
        stage = data.get("stage") if isinstance(data.get("stage"), dict) else None
        message = data.get("message") or f"AI detected {len(sections)} sections with {total} total seats"
        return DetectionResult(sections=sections, total_capacity=total, stage=stage, message=str(message))


class TemplateClient(_JsonClient):
    name = "template service"

    def generate(
        self,
        *,
        venue_name: str,
        venue_type: str,
        capacity: int,
        layout_type: str = "seating_chart",
    ) -> TemplateResult:
        data = self._request(
            "POST",
            self.base_url,
            json={"venueName": venue_name, "venueType": venue_type, "capacity": capacity, "layoutType": layout_type},
        )
        sections = _sections_of(data, self.name, f"No template available for {venue_type!r}")
        return TemplateResult(sections=sections, total_capacity=_int_or_none(data.get("totalCapacity")))
