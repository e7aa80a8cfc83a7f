import unittest

from seating_layout.chart import (
    GALevel,
    GALevelType,
    InvariantViolation,
    LayoutType,
    LayoutTypeError,
    PricingTier,
    SeatingChartError,
    SeatStatus,
    SeatType,
)
from seating_layout.collaborators import DetectionResult, TemplateResult
from seating_layout.importer import (
    apply_detection,
    apply_template,
    build_ga_layout,
    ensure_editable,
    layout_from_document,
    new_layout,
    normalize_sections,
)


def _template_section(name, rows=2, seats=3, sid=""):
    # Shaped like a template service response: generic ids and a blank sectionId.
    return {
        "id": sid,
        "name": name,
        "x": 300,
        "y": 200,
        "pricing": "premium",
        "rows": [
            {
                "id": f"row-{r}",
                "label": "?",
                "y": r * 25,
                "seats": [
                    {"id": f"seat-R{r}S{s}", "sectionId": "", "row": "?", "number": s + 1, "x": s * 18, "y": r * 25}
                    for s in range(seats)
                ],
            }
            for r in range(rows)
        ],
    }


class TestNormalize(unittest.TestCase):
    def test_ids_are_rekeyed_per_section(self):
        sections = normalize_sections([_template_section("Left"), _template_section("Right")])
        self.assertEqual([s.id for s in sections], ["section-1", "section-2"])
        seat_ids = [seat.id for s in sections for seat in s.iter_seats()]
        self.assertEqual(len(seat_ids), len(set(seat_ids)))
        row = sections[1].rows[1]
        self.assertEqual(row.id, "section-2-row-1")
        self.assertEqual(row.label, "B")
        self.assertEqual(row.seats[0].id, "section-2-R1S0")
        self.assertEqual(row.seats[0].section_id, "section-2")
        self.assertEqual(row.seats[0].row, "B")
        self.assertEqual(row.seats[2].number, "3")

    def test_duplicate_section_ids_are_suffixed(self):
        sections = normalize_sections([_template_section("A", sid="main"), _template_section("B", sid="main")])
        self.assertEqual([s.id for s in sections], ["main", "main-2"])

    def test_loose_values_are_coerced(self):
        raw = _template_section("Odd", rows=1, seats=3)
        raw["pricing"] = "platinum"
        raw["rows"][0]["seats"][0]["status"] = "reserved"
        raw["rows"][0]["seats"][1]["status"] = "disabled"
        raw["rows"][0]["seats"][2]["type"] = "wheelchair"
        [section] = normalize_sections([raw])
        seats = section.rows[0].seats
        self.assertEqual(section.pricing, PricingTier.standard)
        self.assertEqual(seats[0].status, SeatStatus.held)
        self.assertEqual(seats[1].status, SeatStatus.blocked)
        self.assertEqual(seats[2].type, SeatType.wheelchair)

    def test_bad_curve_radius_rejected(self):
        raw = _template_section("Curved", rows=1)
        raw["rows"][0]["curve"] = {"radius": 0, "startAngle": -35, "endAngle": 35}
        with self.assertRaises(SeatingChartError):
            normalize_sections([raw])


class TestApplyResults(unittest.TestCase):
    def test_template_replaces_sections_and_recounts(self):
        layout = new_layout("v1", name="Hall")
        result = TemplateResult(sections=[_template_section("A"), _template_section("B", rows=1, seats=4)], total_capacity=999)
        with self.assertLogs("seating_layout.importer", level="WARNING"):
            updated = apply_template(layout, result)
        self.assertEqual(updated.capacity, 10)
        self.assertEqual(len(updated.sections), 2)
        self.assertEqual(updated.id, layout.id)

    def test_detection_can_replace_stage(self):
        layout = new_layout("v1")
        result = DetectionResult(
            sections=[_template_section("A")],
            total_capacity=6,
            stage={"x": 10, "y": 20, "width": 300, "height": 40, "label": "SCREEN"},
            message="ok",
        )
        updated = apply_detection(layout, result)
        self.assertEqual(updated.stage.label, "SCREEN")
        self.assertEqual(updated.capacity, 6)

    def test_ga_layout_cannot_take_imports(self):
        ga = build_ga_layout("v1", "Club", [{"name": "Floor", "capacity": 100}])
        with self.assertRaises(LayoutTypeError):
            apply_template(ga, TemplateResult(sections=[_template_section("A")], total_capacity=None))


class TestGeneralAdmission(unittest.TestCase):
    def test_capacity_is_sum_of_levels(self):
        layout = build_ga_layout(
            "v1",
            "Warehouse",
            [{"name": "Floor", "capacity": 500, "type": "standing"}, GALevel("vip", "Mezzanine", 120, GALevelType.seated)],
        )
        self.assertEqual(layout.type, LayoutType.general_admission)
        self.assertEqual(layout.capacity, 620)
        self.assertEqual(layout.sections, ())
        self.assertEqual([lvl.id for lvl in layout.ga_levels], ["level-1", "vip"])

    def test_invalid_levels(self):
        with self.assertRaises(InvariantViolation):
            build_ga_layout("v1", "Empty", [])
        with self.assertRaises(InvariantViolation):
            build_ga_layout("v1", "Bad", [{"name": "", "capacity": 10}])
        with self.assertRaises(InvariantViolation):
            build_ga_layout("v1", "Bad", [{"name": "Pit", "capacity": -1}])
        with self.assertRaises(InvariantViolation):
            build_ga_layout("v1", "Bad", [{"name": "Pit", "capacity": 10, "type": "floating"}])

    def test_ga_layout_is_not_editable(self):
        layout = build_ga_layout("v1", "Club", [{"name": "Floor", "capacity": 100}])
        with self.assertRaisesRegex(LayoutTypeError, "wizard"):
            ensure_editable(layout)
        chart = new_layout("v1")
        self.assertIs(ensure_editable(chart), chart)


class TestLoadDocument(unittest.TestCase):
    def test_capacity_is_recounted_on_load(self):
        layout = apply_template(new_layout("v1"), TemplateResult(sections=[_template_section("A")], total_capacity=6))
        doc = layout.to_document()
        doc["id"] = "stored-1"
        doc["totalCapacity"] = 50
        with self.assertLogs("seating_layout.importer", level="WARNING"):
            loaded = layout_from_document(doc)
        self.assertEqual(loaded.capacity, 6)
        self.assertEqual(loaded.id, "stored-1")


if __name__ == "__main__":
    unittest.main()
