"""Where stagesheet finds its schemas and the user's record library.

Schemas ship inside the package under ``stagesheet/data``; setting
``STAGESHEET_DATA_ROOT`` points at another copy. The record library (bands/,
musicians/, presets/, projects/) comes from ``--data-root``, then
``STAGESHEET_LIBRARY``, then the per-user data directory.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional, Union

_DATA_ROOT_ENV = "STAGESHEET_DATA_ROOT"
_LIBRARY_ENV = "STAGESHEET_LIBRARY"
_SCHEMAS_DIRNAME = "schemas"


def _packaged_data_path() -> Optional[Path]:
    try:
        from importlib.resources import files

        candidate = Path(str(files("stagesheet") / "data"))
    except (ImportError, ModuleNotFoundError, TypeError):
        candidate = Path(__file__).resolve().parent / "data"
    return candidate if (candidate / _SCHEMAS_DIRNAME).is_dir() else None


def data_root() -> Path:
    """Return the directory holding ``schemas/``; RuntimeError if none exists."""
    override = os.environ.get(_DATA_ROOT_ENV)
    if override:
        root = Path(override).expanduser().resolve()
        if not (root / _SCHEMAS_DIRNAME).is_dir():
            raise RuntimeError(f"{_DATA_ROOT_ENV}={override!r} has no {_SCHEMAS_DIRNAME}/ directory")
        return root

    packaged = _packaged_data_path()
    if packaged is None:
        raise RuntimeError(
            f"Cannot locate stagesheet schemas. Set {_DATA_ROOT_ENV} or reinstall the package."
        )
    return packaged


def schemas_dir() -> Path:
    return data_root() / _SCHEMAS_DIRNAME


def library_root(explicit: Union[str, Path, None] = None) -> Path:
    """Return the record library directory."""
    if explicit:
        return Path(explicit).expanduser().resolve()

    env = os.environ.get(_LIBRARY_ENV)
    if env:
        return Path(env).expanduser().resolve()

    return _os_data_dir()


def _os_data_dir() -> Path:
    if sys.platform == "win32":
        base = os.environ.get("APPDATA") or os.environ.get("LOCALAPPDATA")
        if base:
            return Path(base).resolve() / "stagesheet"
        return Path.home() / "AppData" / "Roaming" / "stagesheet"

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "stagesheet"

    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg).resolve() / "stagesheet"
    return Path.home() / ".local" / "share" / "stagesheet"
