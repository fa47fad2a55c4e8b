import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from stagesheet.resources import data_root, library_root, schemas_dir


class TestResources(unittest.TestCase):
    def test_packaged_schemas_are_found(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("STAGESHEET_DATA_ROOT", None)
            schemas = schemas_dir()
        self.assertTrue((schemas / "band.schema.json").is_file())
        self.assertTrue((schemas / "document.schema.json").is_file())

    def test_data_root_env_override(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            (Path(temp_dir) / "schemas").mkdir()
            with mock.patch.dict(os.environ, {"STAGESHEET_DATA_ROOT": temp_dir}):
                self.assertEqual(data_root(), Path(temp_dir).resolve())

            with mock.patch.dict(os.environ, {"STAGESHEET_DATA_ROOT": str(Path(temp_dir) / "missing")}):
                with self.assertRaises(RuntimeError):
                    data_root()

    def test_library_root_priority(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            explicit = Path(temp_dir) / "explicit"
            from_env = Path(temp_dir) / "env"
            with mock.patch.dict(os.environ, {"STAGESHEET_LIBRARY": str(from_env)}):
                self.assertEqual(library_root(explicit), explicit.resolve())
                self.assertEqual(library_root(), from_env.resolve())

    def test_library_root_defaults_to_user_data_dir(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=False):
            os.environ.pop("STAGESHEET_LIBRARY", None)
            self.assertEqual(library_root().name, "stagesheet")


if __name__ == "__main__":
    unittest.main()
