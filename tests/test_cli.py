import contextlib
import io
import json
import tempfile
import unittest
from pathlib import Path

from stagesheet.cli import main

try:
    import reportlab  # noqa: F401
except ImportError:  # pragma: no cover - optional dependency
    reportlab = None

ROOT_DIR = Path(__file__).resolve().parents[1]
LIBRARY_DIR = ROOT_DIR / "fixtures" / "library"


def _write_json(path: Path, payload: dict[str, object]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")


class TestCli(unittest.TestCase):
    def _run_main(self, args: list[str]) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
            exit_code = main(args)
        return exit_code, stdout.getvalue(), stderr.getvalue()

    def test_build_prints_document_json(self) -> None:
        exit_code, stdout, stderr = self._run_main(
            ["build", "demo_event", "--data-root", str(LIBRARY_DIR)]
        )
        self.assertEqual(exit_code, 0, msg=stderr)
        self.assertEqual(stderr, "")
        document = json.loads(stdout)
        self.assertEqual(document["meta"]["project_id"], "demo_event")
        self.assertEqual(len(document["inputs"]), 23)
        self.assertEqual(document["stageplan"]["layout_id"], "layout_6_2_vocs")

    def test_build_is_deterministic(self) -> None:
        args = ["build", "demo_generic", "--data-root", str(LIBRARY_DIR)]
        first = self._run_main(args)
        second = self._run_main(args)
        self.assertEqual(first[0], 0, msg=first[2])
        self.assertEqual(first, second)

    def test_build_writes_out_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            out_path = Path(temp_dir) / "nested" / "document.json"
            exit_code, stdout, stderr = self._run_main(
                ["build", "demo_legacy", "--data-root", str(LIBRARY_DIR), "--out", str(out_path)]
            )
            self.assertEqual(exit_code, 0, msg=stderr)
            self.assertEqual(stdout, "")
            text = out_path.read_text(encoding="utf-8")
            self.assertTrue(text.endswith("\n"))
            self.assertEqual(json.loads(text)["meta"]["event_venue"], "Brno")

    def test_build_text_format(self) -> None:
        exit_code, stdout, stderr = self._run_main(
            ["build", "demo_event", "--data-root", str(LIBRARY_DIR), "--format", "text"]
        )
        self.assertEqual(exit_code, 0, msg=stderr)
        lines = stdout.splitlines()
        self.assertEqual(lines[0], "Demo Band")
        self.assertTrue(lines[1].startswith("Datum akce a místo konání: 18. 4. 2026"))
        self.assertIn("     10  ---  [---]", lines)
        self.assertIn("  11+12  PAD", lines)
        self.assertIn("GUITAR – JAN (band leader)", lines)
        self.assertIn("  - Drum riser 3x2", lines)
        self.assertIn("  [2x 230 V]", lines)

    def test_build_unknown_project(self) -> None:
        exit_code, stdout, stderr = self._run_main(
            ["build", "nope", "--data-root", str(LIBRARY_DIR)]
        )
        self.assertEqual(exit_code, 1)
        self.assertEqual(stdout, "")
        self.assertEqual(stderr.strip(), "Project not found: nope")

    def test_projects_text_and_json(self) -> None:
        exit_code, stdout, stderr = self._run_main(["projects", "--data-root", str(LIBRARY_DIR)])
        self.assertEqual(exit_code, 0, msg=stderr)
        self.assertEqual(
            stdout.splitlines()[0],
            "demo_event  Demo Band – 18/04/2026 – Praha – Lucerna  "
            "(DMB_Inputlist_Stageplan_18-04-2026_Praha-Lucerna)",
        )

        exit_code, stdout, stderr = self._run_main(
            ["projects", "--data-root", str(LIBRARY_DIR), "--format", "json"]
        )
        self.assertEqual(exit_code, 0, msg=stderr)
        summaries = json.loads(stdout)
        self.assertEqual([item["id"] for item in summaries], [
            "demo_event",
            "demo_generic",
            "demo_legacy",
            "demo_sub_bass",
        ])
        generic = summaries[1]
        self.assertEqual(generic["display_name"], "Demo Band – Club show – 2026")
        self.assertEqual(generic["slug"], "DMB_Inputlist_Stageplan_2026")

    def test_check_fixture_library(self) -> None:
        exit_code, stdout, stderr = self._run_main(["check", "--data-root", str(LIBRARY_DIR)])
        self.assertEqual(exit_code, 0, msg=stdout + stderr)
        self.assertIn("ok  band demo_band", stdout.splitlines())
        self.assertIn("ok  project demo_event", stdout.splitlines())

    def test_check_reports_broken_project(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            _write_json(
                root / "bands" / "b.json",
                {"id": "b", "name": "B", "bandLeader": "jan", "defaultLineup": {"guitar": "jan"}},
            )
            _write_json(root / "musicians" / "jan.json", {"id": "jan", "firstName": "Jan", "presets": []})
            _write_json(
                root / "projects" / "empty.json",
                {"id": "empty", "bandRef": "b", "purpose": "generic", "documentDate": "2026-01-01"},
            )
            _write_json(
                root / "presets" / "wedge.json",
                {"id": "wedge", "type": "monitor", "label": "Wedge"},
            )

            exit_code, stdout, stderr = self._run_main(
                ["check", "--data-root", str(root), "--format", "json"]
            )
        self.assertEqual(exit_code, 1, msg=stderr)
        payload = json.loads(stdout)
        self.assertFalse(payload["ok"])
        project_result = payload["results"][-1]
        self.assertEqual(project_result["id"], "empty")
        self.assertIn("No inputs generated", project_result["error"])

    def test_schema_failure_and_skip_schema(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            _write_json(
                root / "bands" / "b.json",
                {"id": "b", "name": "B", "bandLeader": "jan", "defaultLineup": {}, "extra": 1},
            )
            _write_json(root / "musicians" / "jan.json", {"id": "jan", "firstName": "Jan", "presets": []})

            exit_code, _, stderr = self._run_main(["projects", "--data-root", str(root)])
            self.assertEqual(exit_code, 1)
            self.assertIn("schema validation failed", stderr)

            exit_code, stdout, stderr = self._run_main(
                ["projects", "--data-root", str(root), "--skip-schema"]
            )
            self.assertEqual(exit_code, 0, msg=stderr)
            self.assertEqual(stdout, "")

    def test_export_writes_pdf_named_after_slug(self) -> None:
        if reportlab is None:
            self.skipTest("reportlab not installed")
        with tempfile.TemporaryDirectory() as temp_dir:
            exit_code, stdout, stderr = self._run_main(
                ["export", "demo_event", "--data-root", str(LIBRARY_DIR), "--out-dir", temp_dir]
            )
            self.assertEqual(exit_code, 0, msg=stderr)
            out_path = Path(stdout.strip())
            self.assertEqual(out_path.name, "DMB_Inputlist_Stageplan_18-04-2026_Praha-Lucerna.pdf")
            self.assertTrue(out_path.read_bytes().startswith(b"%PDF"))


if __name__ == "__main__":
    unittest.main()
