from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml


def _package_root() -> Path:
    # autowinapps/lib/manifests.py -> autowinapps
    return Path(__file__).resolve().parents[1]


def load_yaml_rel(rel_path: str) -> Dict[str, Any]:
    """Load a YAML file relative to the package root (manifests/...)."""

    p = _package_root() / rel_path.lstrip("/")
    data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {p}")
    return data


def load_os_manifest(os_id: str) -> Dict[str, Any]:
    return load_yaml_rel(f"manifests/os/{os_id}.yaml")


def read_asset(name: str) -> str:
    return (_package_root() / "assets" / name).read_text(encoding="utf-8")


def render_asset(name: str, **values: str) -> str:
    """Fill ``@KEY@`` placeholders in a bundled template.

    Shell templates keep their own ``$VAR`` syntax untouched.
    """

    text = read_asset(name)
    for key, value in values.items():
        text = text.replace(f"@{key.upper()}@", value)
    return text
