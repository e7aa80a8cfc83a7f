import json
import unittest

import httpx

from seating_layout.collaborators import (
    AvailabilityClient,
    CollaboratorError,
    LayoutApiClient,
    SectionDetectionClient,
    TemplateClient,
)


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


class TestLayoutApiClient(unittest.TestCase):
    def test_list_and_create(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path, dict(request.url.params)))
            if request.method == "GET":
                return httpx.Response(200, json=[{"id": "a", "venueId": "v1"}])
            return httpx.Response(201, json={"id": "new-id"})

        api = LayoutApiClient("http://layouts.test/api/", client=_client(handler))
        self.assertEqual(api.get_layouts_by_venue_id("v1"), [{"id": "a", "venueId": "v1"}])
        created = api.create_layout({"name": "Hall", "venueId": "v1"})
        self.assertEqual(created, {"id": "new-id", "name": "Hall", "venueId": "v1"})
        self.assertEqual(seen[0], ("GET", "/api/layouts", {"venueId": "v1"}))
        self.assertEqual(seen[1][:2], ("POST", "/api/layouts"))

    def test_update_accepts_empty_body(self):
        api = LayoutApiClient("http://layouts.test", client=_client(lambda r: httpx.Response(204)))
        self.assertEqual(api.update_layout("l9", {"name": "Hall"}), {"id": "l9", "name": "Hall"})

    def test_error_detail_is_surfaced(self):
        api = LayoutApiClient("http://layouts.test", client=_client(lambda r: httpx.Response(500, json={"error": "db down"})))
        with self.assertRaises(CollaboratorError) as cm:
            api.delete_layout("l1")
        self.assertEqual((cm.exception.message, cm.exception.status_code), ("db down", 500))

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        api = LayoutApiClient("http://layouts.test", client=_client(handler))
        with self.assertRaisesRegex(CollaboratorError, "unreachable"):
            api.get_layouts_by_venue_id("v1")


class TestAvailabilityClient(unittest.TestCase):
    def test_fetch(self):
        body = {"seats": [{"seatId": "s1", "status": "sold"}, {"seatId": "s2"}, "junk"]}
        client = AvailabilityClient("http://seats.test/availability", client=_client(lambda r: httpx.Response(200, json=body)))
        self.assertEqual(client.fetch("e1"), {"s1": "sold"})

    def test_malformed(self):
        client = AvailabilityClient("http://seats.test", client=_client(lambda r: httpx.Response(200, text="<html>")))
        with self.assertRaises(CollaboratorError):
            client.fetch("e1")


class TestGenerators(unittest.TestCase):
    def test_detection_request_and_result(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"sections": [{"name": "A"}], "totalCapacity": "40"})

        client = SectionDetectionClient("http://ai.test/analyze", client=_client(handler))
        result = client.analyze("data:image/png;base64,AAAA", venue_type="arena", existing_capacity=200)
        self.assertEqual(captured, {"image": "data:image/png;base64,AAAA", "venueType": "arena", "existingCapacity": 200})
        self.assertEqual(result.total_capacity, 40)
        self.assertEqual(result.message, "AI detected 1 sections with 40 total seats")

    def test_detection_error_field(self):
        client = SectionDetectionClient("http://ai.test", client=_client(lambda r: httpx.Response(200, json={"error": "blurry"})))
        with self.assertRaisesRegex(CollaboratorError, "blurry"):
            client.analyze("img")

    def test_template_without_sections(self):
        client = TemplateClient("http://tpl.test", client=_client(lambda r: httpx.Response(200, json={"sections": []})))
        with self.assertRaisesRegex(CollaboratorError, "No template available"):
            client.generate(venue_name="Hall", venue_type="stadium", capacity=1000)


if __name__ == "__main__":
    unittest.main()
