import threading
import unittest

from seating_layout import editor as ed
from seating_layout.chart import ConfirmationRequired, LayoutTypeError
from seating_layout.collaborators import CollaboratorError, DetectionResult, TemplateResult
from seating_layout.importer import layout_from_document
from seating_layout.session import (
    DesignerSession,
    PreviewSession,
    SessionBusy,
    create_ga_layout,
    delete_layout,
)


class MemoryStore:
    def __init__(self):
        self.docs = {}
        self.calls = []
        self.fail = None

    def get_layouts_by_venue_id(self, venue_id):
        return [d for d in self.docs.values() if d["venueId"] == venue_id]

    def create_layout(self, data):
        self.calls.append(("create", data))
        if self.fail:
            raise self.fail
        doc = {**data, "id": f"stored-{len(self.docs) + 1}"}
        self.docs[doc["id"]] = doc
        return doc

    def update_layout(self, layout_id, data):
        self.calls.append(("update", layout_id, data))
        if self.fail:
            raise self.fail
        self.docs[layout_id] = {**data, "id": layout_id}
        return self.docs[layout_id]

    def delete_layout(self, layout_id):
        self.calls.append(("delete", layout_id))
        self.docs.pop(layout_id)


def _raw_section(name, rows=2, seats=5):
    return {
        "name": name,
        "x": 100,
        "y": 100,
        "rows": [{"seats": [{"x": s * 18} for s in range(seats)]} for _ in range(rows)],
    }


class FakeTemplates:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.requests = []

    def generate(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return self.result


class FakeDetection:
    def __init__(self, result):
        self.result = result

    def analyze(self, image, **kwargs):
        return self.result


class BlockingDetection:
    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()

    def analyze(self, image, **kwargs):
        self.entered.set()
        self.release.wait(5)
        return DetectionResult(sections=[_raw_section("Detected")], total_capacity=10, stage=None, message="AI detected 1 sections")


class TestDesignerSession(unittest.TestCase):
    def setUp(self):
        self.store = MemoryStore()

    def test_nothing_is_stored_until_save(self):
        session = DesignerSession.create("v1", store=self.store, name="Hall")
        session.dispatch(ed.AddSection())
        session.dispatch(ed.AddRow("section-1"))
        self.assertEqual(self.store.calls, [])
        saved = session.save()
        self.assertEqual(len(self.store.calls), 1)
        self.assertEqual(saved["totalCapacity"], 220)
        self.assertEqual(session.layout.id, saved["id"])
        self.assertTrue(session.persisted)
        self.assertEqual(session.message, "Layout saved successfully!")

    def test_second_save_updates(self):
        session = DesignerSession.create("v1", store=self.store)
        session.dispatch(ed.AddSection())
        first = session.save()
        session.dispatch(ed.AddSection())
        session.save()
        kind, layout_id, data = self.store.calls[-1]
        self.assertEqual((kind, layout_id), ("update", first["id"]))
        self.assertEqual(data["totalCapacity"], 400)

    def test_destructive_actions_need_confirmation(self):
        session = DesignerSession.create("v1", store=self.store)
        session.dispatch(ed.AddSection())
        with self.assertRaises(ConfirmationRequired):
            session.dispatch(ed.RemoveSection("section-1"))
        with self.assertRaises(ConfirmationRequired):
            session.dispatch(ed.ClearLayout())
        self.assertEqual(session.layout.capacity, 200)
        session.dispatch(ed.ClearLayout(), confirmed=True)
        self.assertEqual(session.layout.capacity, 0)

    def test_failed_save_keeps_edit(self):
        session = DesignerSession.create("v1", store=self.store)
        session.dispatch(ed.AddSection())
        self.store.fail = CollaboratorError("layout service is unreachable")
        with self.assertRaises(CollaboratorError):
            session.save()
        self.assertFalse(session.persisted)
        self.assertEqual(session.layout.capacity, 200)
        self.assertEqual(session.message, "layout service is unreachable")
        self.assertIsNone(session.pending)

    def test_open_recounts_and_rejects_ga(self):
        ga = create_ga_layout(self.store, "v1", "Club", [{"name": "Floor", "capacity": 300}])
        with self.assertRaises(LayoutTypeError):
            DesignerSession.open(ga, store=self.store)

        session = DesignerSession.create("v1", store=self.store)
        session.dispatch(ed.AddSection())
        doc = session.save()
        reopened = DesignerSession.open(doc, store=self.store)
        self.assertTrue(reopened.persisted)
        self.assertEqual(reopened.layout.capacity, 200)

    def test_template_replaces_sections(self):
        templates = FakeTemplates(TemplateResult(sections=[_raw_section("Left"), _raw_section("Right")], total_capacity=20))
        session = DesignerSession.create("v1", store=self.store, name="Hall", templates=templates)
        session.dispatch(ed.AddSection())
        message = session.generate_from_template("theater")
        self.assertEqual([s.name for s in session.layout.sections], ["Left", "Right"])
        self.assertEqual(session.layout.capacity, 20)
        self.assertIn("theater", message)
        self.assertEqual(templates.requests[0]["capacity"], 200)
        self.assertEqual(set(session.state.labels), {"section-1", "section-2"})

    def test_template_capacity_falls_back(self):
        templates = FakeTemplates(TemplateResult(sections=[_raw_section("Only")], total_capacity=None))
        session = DesignerSession.create("v1", store=self.store, templates=templates)
        session.generate_from_template("arena")
        self.assertEqual(templates.requests[0]["capacity"], 1000)

    def test_failed_template_leaves_state_untouched(self):
        templates = FakeTemplates(error=CollaboratorError("No template available for 'arena'"))
        session = DesignerSession.create("v1", store=self.store, templates=templates)
        session.dispatch(ed.AddSection())
        before = session.state
        with self.assertRaises(CollaboratorError):
            session.generate_from_template("arena")
        self.assertIs(session.state, before)
        self.assertEqual(session.message, "No template available for 'arena'")

    def test_unusable_template_payload_is_a_collaborator_error(self):
        bad = _raw_section("Broken")
        bad["rows"] = ["not a row"]
        session = DesignerSession.create("v1", store=self.store, templates=FakeTemplates(TemplateResult([bad], None)))
        with self.assertRaises(CollaboratorError):
            session.generate_from_template("theater")
        self.assertEqual(session.layout.sections, ())

    def test_malformed_template_rows_are_reported(self):
        bad = _raw_section("Broken")
        bad["rows"] = 5
        session = DesignerSession.create("v1", store=self.store, templates=FakeTemplates(TemplateResult([bad], None)))
        with self.assertLogs("seating_layout.session", level="WARNING"):
            with self.assertRaises(CollaboratorError):
                session.generate_from_template("theater")
        self.assertIn("template service returned an unusable layout", session.message)
        self.assertIsNone(session.pending)

    def test_malformed_detected_stage_is_reported(self):
        detection = FakeDetection(DetectionResult(sections=[_raw_section("Floor")], total_capacity=10, stage={"x": "left"}, message="ok"))
        session = DesignerSession.create("v1", store=self.store, detection=detection)
        session.dispatch(ed.AddSection())
        before = session.state
        with self.assertLogs("seating_layout.session", level="WARNING"):
            with self.assertRaises(CollaboratorError):
                session.analyze_image("img")
        self.assertIs(session.state, before)
        self.assertIn("invalid stage", session.message)

    def test_missing_collaborator(self):
        session = DesignerSession.create("v1", store=self.store)
        with self.assertRaises(CollaboratorError):
            session.analyze_image("data:image/png;base64,AAAA")

    def test_second_call_refused_while_pending(self):
        detection = BlockingDetection()
        session = DesignerSession.create("v1", store=self.store, detection=detection)
        worker = threading.Thread(target=session.analyze_image, args=("img",))
        worker.start()
        try:
            self.assertTrue(detection.entered.wait(5))
            self.assertEqual(session.pending, "Analyzing")
            with self.assertRaises(SessionBusy):
                session.save()
        finally:
            detection.release.set()
            worker.join(5)
        self.assertIsNone(session.pending)
        self.assertEqual(session.layout.capacity, 10)
        self.assertEqual(session.message, "AI detected 1 sections")

    def test_edits_refused_while_pending(self):
        detection = BlockingDetection()
        session = DesignerSession.create("v1", store=self.store, detection=detection)
        worker = threading.Thread(target=session.analyze_image, args=("img",))
        worker.start()
        try:
            self.assertTrue(detection.entered.wait(5))
            with self.assertRaises(SessionBusy):
                session.dispatch(ed.AddSection())
            session.dispatch(ed.ZoomIn())
        finally:
            detection.release.set()
            worker.join(5)
        self.assertEqual([s.name for s in session.layout.sections], ["Detected"])
        self.assertGreater(session.state.view.zoom, 0.8)
        session.dispatch(ed.AddSection())
        self.assertEqual(len(session.layout.sections), 2)

    def test_delete_needs_confirmation(self):
        doc = create_ga_layout(self.store, "v1", "Club", [{"name": "Floor", "capacity": 300}])
        with self.assertRaises(ConfirmationRequired):
            delete_layout(self.store, doc["id"], confirmed=False)
        delete_layout(self.store, doc["id"], confirmed=True)
        self.assertEqual(self.store.docs, {})


class FakeAvailability:
    def __init__(self, by_event):
        self.by_event = by_event

    def fetch(self, event_id):
        result = self.by_event[event_id]
        if isinstance(result, Exception):
            raise result
        return result


class TestPreviewSession(unittest.TestCase):
    def setUp(self):
        session = DesignerSession.create("v1", store=MemoryStore())
        session.dispatch(ed.AddSection())
        self.layout = session.layout
        self.seat_a = "section-1-R0S0"
        self.seat_b = "section-1-R0S1"

    def test_selection_and_event_change(self):
        availability = FakeAvailability({"e1": {self.seat_b: "sold"}, "e2": {}})
        preview = PreviewSession(self.layout, availability, event_id="e1")
        self.assertTrue(preview.click_seat(self.seat_a))
        self.assertFalse(preview.click_seat(self.seat_b))
        self.assertEqual([s.id for s in preview.selected_seats()], [self.seat_a])
        preview.set_event("e2")
        self.assertEqual(preview.selected_seats(), [])
        self.assertTrue(preview.click_seat(self.seat_b))

    def test_preview_ignores_model_edits(self):
        preview = PreviewSession(self.layout, FakeAvailability({}))
        preview.dispatch(ed.AddSection())
        preview.dispatch(ed.ZoomIn())
        self.assertEqual(len(preview.layout.sections), 1)
        self.assertGreater(preview.state.view.zoom, 0.8)

    def test_failed_availability_is_reported(self):
        preview = PreviewSession(self.layout, FakeAvailability({"e1": CollaboratorError("availability service returned HTTP 500")}))
        with self.assertRaises(CollaboratorError):
            preview.set_event("e1")
        self.assertEqual(preview.message, "availability service returned HTTP 500")

    def test_unknown_seat_click(self):
        preview = PreviewSession(self.layout, FakeAvailability({}))
        self.assertFalse(preview.click_seat("nope"))

    def test_ga_layout_has_no_preview(self):
        store = MemoryStore()
        create_ga_layout(store, "v1", "Club", [{"name": "Floor", "capacity": 10}])
        ga = layout_from_document(next(iter(store.docs.values())))
        with self.assertRaises(LayoutTypeError):
            PreviewSession(ga, FakeAvailability({}))


if __name__ == "__main__":
    unittest.main()
