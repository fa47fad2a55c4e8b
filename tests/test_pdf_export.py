import tempfile
import unittest
from pathlib import Path

from stagesheet.core.document import generate_document
from stagesheet.core.repository import load_repository
from stagesheet.exporters import pdf_document
from stagesheet.exporters.pdf_document import export_document_pdf

try:
    import reportlab  # noqa: F401
except ImportError:  # pragma: no cover - optional dependency
    reportlab = None

ROOT_DIR = Path(__file__).resolve().parents[1]
LIBRARY_DIR = ROOT_DIR / "fixtures" / "library"


class TestPdfExport(unittest.TestCase):
    def test_exports_every_fixture_project(self) -> None:
        if reportlab is None:
            self.skipTest("reportlab not installed")
        repo = load_repository(LIBRARY_DIR)
        with tempfile.TemporaryDirectory() as temp_dir:
            for project in repo.list_projects():
                with self.subTest(project=project["id"]):
                    out_path = Path(temp_dir) / f"{project['id']}.pdf"
                    export_document_pdf(generate_document(project["id"], repo), out_path)
                    self.assertTrue(out_path.read_bytes().startswith(b"%PDF"))

    def test_document_with_warnings(self) -> None:
        if reportlab is None:
            self.skipTest("reportlab not installed")
        document = generate_document("demo_generic", load_repository(LIBRARY_DIR))
        document["warnings"] = ["Total required monitor mixes (aux sends) exceed the configured limit (7 > 6)."]
        with tempfile.TemporaryDirectory() as temp_dir:
            out_path = Path(temp_dir) / "out" / "warnings.pdf"
            export_document_pdf(document, out_path)
            self.assertGreater(out_path.stat().st_size, 0)

    def test_missing_reportlab_raises_runtime_error(self) -> None:
        original = pdf_document.SimpleDocTemplate
        pdf_document.SimpleDocTemplate = None
        try:
            with tempfile.TemporaryDirectory() as temp_dir:
                with self.assertRaises(RuntimeError) as ctx:
                    export_document_pdf({"meta": {}}, Path(temp_dir) / "x.pdf")
        finally:
            pdf_document.SimpleDocTemplate = original
        self.assertEqual(str(ctx.exception), "reportlab is required for PDF export")


if __name__ == "__main__":
    unittest.main()
