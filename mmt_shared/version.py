from __future__ import annotations

import re
from importlib import metadata
from pathlib import Path
from typing import TypedDict


class VersionInfo(TypedDict):
    name: str
    version: str


DIST_NAME = "media-meta-tagger"


def _find_pyproject_version() -> str:
    try:
        root = Path(__file__).resolve().parent.parent
        pyproject_path = root / "pyproject.toml"
        if not pyproject_path.exists():
            return ""
        raw = pyproject_path.read_text(encoding="utf-8")
        match = re.search(r'^version\s*=\s*"(.*?)"', raw, flags=re.MULTILINE)
        if match:
            return match.group(1).strip()
    except Exception:
        pass
    return ""


def _find_installed_version() -> str:
    try:
        return metadata.version(DIST_NAME)
    except metadata.PackageNotFoundError:
        return ""


def get_version_info() -> VersionInfo:
    # A source checkout wins over an installed distribution (editable installs agree anyway).
    version = _find_pyproject_version() or _find_installed_version() or "0.0.0"
    return {"name": DIST_NAME, "version": version}
