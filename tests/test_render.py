import unittest

from seating_layout import editor as ed
from seating_layout.chart import Layout
from seating_layout.overlay import AvailabilityOverlay, SeatSelection
from seating_layout.render import SEAT_SIZE, build_scene, scene_to_svg


def _state(mode=ed.EditorMode.edit, curved=False):
    state = ed.EditorState.open(Layout(id="l1", venue_id="v1", name="Hall"))
    state = ed.reduce(state, ed.AddSection())
    state = ed.reduce(state, ed.SetColor("#123456", "section-1"))
    if curved:
        state = ed.reduce(state, ed.ToggleCurved("section-1"))
    return ed.EditorState.open(state.layout, mode=mode)


class TestScene(unittest.TestCase):
    def test_edit_scene_uses_section_color(self):
        scene = build_scene(_state())
        self.assertEqual(len(scene.seats), 200)
        self.assertEqual({s.fill for s in scene.seats}, {"#123456"})
        self.assertFalse(any(s.clickable for s in scene.seats))
        self.assertEqual(scene.seats[0].size, SEAT_SIZE)

    def test_seats_are_in_world_coordinates(self):
        scene = build_scene(_state())
        first = scene.seat("section-1-R0S0")
        # Straight seat x is (index - 10) * 18 relative to the section at (400, 350).
        self.assertEqual((first.x, first.y), (400 - 180, 350))

    def test_labels(self):
        scene = build_scene(_state())
        section_label = [t for t in scene.texts if t.kind == "section-label"][0]
        self.assertEqual((section_label.text, section_label.x, section_label.y), ("Section 1", 400, 315))
        self.assertEqual(len([t for t in scene.texts if t.kind == "row-label"]), 10)

    def test_hidden_rows_lose_their_label(self):
        state = _state()
        state = ed.reduce(state, ed.ToggleRowVisibility("section-1-row-0"))
        scene = build_scene(state)
        self.assertNotIn("section-1-row-0", [t.ref for t in scene.texts])

    def test_curved_rows_are_capped(self):
        scene = build_scene(_state(curved=True))
        # Row A sits on r=120 over 70 degrees: only 8 of its 20 seats fit.
        self.assertEqual(len([s for s in scene.seats if s.seat_id.startswith("section-1-R0S")]), 8)

    def test_preview_colors_and_clickability(self):
        state = _state(mode=ed.EditorMode.preview)
        overlay = AvailabilityOverlay(lambda event_id: {"section-1-R0S1": "sold", "section-1-R0S2": "held"})
        overlay.set_event("e1")
        selection = SeatSelection(["section-1-R0S0"])
        scene = build_scene(state, overlay=overlay, selection=selection)
        free, sold, held = scene.seat("section-1-R0S0"), scene.seat("section-1-R0S1"), scene.seat("section-1-R0S2")
        self.assertEqual((free.fill, sold.fill, held.fill), ("#48bb78", "#e53e3e", "#ed8936"))
        self.assertTrue(free.clickable and free.selected)
        self.assertFalse(sold.clickable)

    def test_seat_numbers_hidden_when_zoomed_out(self):
        state = ed.reduce(ed.reduce(_state(), ed.ZoomOut()), ed.ZoomOut())
        self.assertTrue(all(s.number is None for s in build_scene(state).seats))
        state = ed.reduce(_state(), ed.ResetView())
        self.assertEqual(build_scene(state).seat("section-1-R0S0").number, "1")


class TestSvg(unittest.TestCase):
    def test_svg_output(self):
        state = ed.reduce(_state(), ed.RenameSection("Stalls & <Boxes>", "section-1"))
        svg = scene_to_svg(build_scene(state))
        self.assertTrue(svg.startswith("<svg"))
        self.assertIn('viewBox="0 0 1200 800"', svg)
        self.assertIn("scale(0.8)", svg)
        self.assertIn("Stalls &amp; &lt;Boxes&gt;", svg)
        self.assertEqual(svg.count("data-seat-id="), 200)
        self.assertIn(">STAGE<", svg)


if __name__ == "__main__":
    unittest.main()
