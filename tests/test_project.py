import unittest

from stagesheet.core.errors import ConfigurationError
from stagesheet.core.project import normalize_project
from stagesheet.core.project_naming import (
    format_date_for_display_name,
    format_date_for_slug,
    format_project_display_name,
    format_project_slug,
    sanitize_venue_for_slug,
)

_BAND = {"id": "demo_band", "name": "Demo Band", "code": "DMB"}


class TestNormalizeProject(unittest.TestCase):
    def test_event_project(self) -> None:
        project = normalize_project(
            {
                "id": " demo ",
                "bandRef": "demo_band",
                "purpose": "event",
                "documentDate": "2026-03-01",
                "eventDate": "2026-04-18",
                "eventVenue": " Lucerna ",
                "talkbackOwnerId": "jan",
            }
        )
        self.assertEqual(
            project,
            {
                "id": "demo",
                "bandRef": "demo_band",
                "purpose": "event",
                "documentDate": "2026-03-01",
                "eventDate": "2026-04-18",
                "eventVenue": "Lucerna",
                "talkbackOwnerId": "jan",
            },
        )

    def test_event_requires_date_and_venue(self) -> None:
        payload = {
            "id": "p",
            "bandRef": "b",
            "purpose": "event",
            "documentDate": "2026-03-01",
            "eventDate": "2026-04-18",
        }
        with self.assertRaises(ConfigurationError) as ctx:
            normalize_project(payload)
        self.assertEqual(str(ctx.exception), "Missing or invalid eventVenue.")

    def test_generic_title_falls_back_to_note(self) -> None:
        project = normalize_project(
            {
                "id": "p",
                "bandRef": "b",
                "purpose": "generic",
                "documentDate": "2026-01-10",
                "note": "Club show",
            }
        )
        self.assertEqual(project["title"], "Club show")
        self.assertNotIn("eventDate", project)

    def test_legacy_date_and_venue_become_event(self) -> None:
        project = normalize_project({"id": "p", "bandRef": "b", "date": "2025-11-20", "venue": "Brno"})
        self.assertEqual(project["purpose"], "event")
        self.assertEqual(project["eventDate"], "2025-11-20")
        self.assertEqual(project["documentDate"], "2025-11-20")
        self.assertEqual(project["eventVenue"], "Brno")

    def test_invalid_projects(self) -> None:
        with self.assertRaises(ConfigurationError) as ctx:
            normalize_project({"id": "p", "bandRef": "b"})
        self.assertEqual(str(ctx.exception), "Unsupported project schema.")
        with self.assertRaises(ConfigurationError):
            normalize_project({"id": "p", "bandRef": "b", "purpose": "tour", "documentDate": "2026-01-01"})
        with self.assertRaises(ConfigurationError):
            normalize_project({"id": "", "bandRef": "b", "date": "2026-01-01"})


class TestProjectNaming(unittest.TestCase):
    def test_date_formats(self) -> None:
        self.assertEqual(format_date_for_slug("2026-04-08"), "08-04-2026")
        self.assertEqual(format_date_for_display_name("2026-04-08"), "08/04/2026")
        self.assertEqual(format_date_for_slug(None), "00-00-0000")

    def test_venue_slug(self) -> None:
        self.assertEqual(sanitize_venue_for_slug("Praha – Lucerna!"), "Praha-Lucerna")
        self.assertEqual(sanitize_venue_for_slug("české budějovice"), "Ceske-Budejovice")
        self.assertEqual(len(sanitize_venue_for_slug("x" * 200)), 80)

    def test_event_slug_and_display_name(self) -> None:
        project = {
            "id": "p",
            "purpose": "event",
            "eventDate": "2026-04-18",
            "eventVenue": "Praha – Lucerna",
            "documentDate": "2026-03-01",
        }
        self.assertEqual(
            format_project_slug(project, _BAND),
            "DMB_Inputlist_Stageplan_18-04-2026_Praha-Lucerna",
        )
        self.assertEqual(
            format_project_display_name(project, _BAND),
            "Demo Band – 18/04/2026 – Praha – Lucerna",
        )

    def test_generic_slug_and_display_name(self) -> None:
        project = {"id": "p", "purpose": "generic", "documentDate": "2026-01-10", "title": "Club show"}
        self.assertEqual(format_project_slug(project, _BAND), "DMB_Inputlist_Stageplan_2026")
        self.assertEqual(format_project_display_name(project, _BAND), "Demo Band – Club show – 2026")
        untitled = {"id": "p", "purpose": "generic", "documentDate": "2026-01-10"}
        self.assertEqual(format_project_display_name(untitled, {"id": "b"}), "b – 2026")
        self.assertEqual(format_project_slug(untitled, {"id": "b"}), "b_Inputlist_Stageplan_2026")


if __name__ == "__main__":
    unittest.main()
