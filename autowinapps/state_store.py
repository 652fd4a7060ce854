from __future__ import annotations

import json
import logging
import shlex
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .context import Backend, InstallChoice, SetupMethod
from .errors import CheckpointError

logger = logging.getLogger(__name__)

KEYS = (
    "DETECTED_OS",
    "DETECTED_VERSION",
    "SELECTED_BACKEND",
    "WINDOWS_SETUP_METHOD",
    "INSTALL_TIMESTAMP",
)


@dataclass(frozen=True)
class InstallCheckpoint:
    os_id: str
    os_version: str
    choice: InstallChoice
    timestamp: str

    def to_vars(self) -> Dict[str, str]:
        return {
            "DETECTED_OS": self.os_id,
            "DETECTED_VERSION": self.os_version,
            "SELECTED_BACKEND": self.choice.backend.value,
            "WINDOWS_SETUP_METHOD": self.choice.setup_method.value,
            "INSTALL_TIMESTAMP": self.timestamp,
        }

    @classmethod
    def from_vars(cls, data: Mapping[str, Any]) -> "InstallCheckpoint":
        missing = [k for k in KEYS[:4] if not data.get(k)]
        if missing:
            raise CheckpointError(f"Checkpoint is missing {', '.join(missing)}")
        try:
            choice = InstallChoice(
                setup_method=SetupMethod(str(data["WINDOWS_SETUP_METHOD"])),
                backend=Backend(str(data["SELECTED_BACKEND"])),
            )
        except ValueError as e:
            raise CheckpointError(f"Invalid checkpoint: {e}") from e
        return cls(
            os_id=str(data["DETECTED_OS"]),
            os_version=str(data["DETECTED_VERSION"]),
            choice=choice,
            timestamp=str(data.get("INSTALL_TIMESTAMP") or ""),
        )


def now_iso() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def format_shell_vars(values: Mapping[str, str]) -> str:
    """``KEY="value"`` lines that a POSIX shell can source."""

    out = []
    for key, value in values.items():
        escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
        out.append(f'{key}="{escaped}"')
    return "\n".join(out) + "\n"


def parse_shell_vars(text: str) -> Dict[str, str]:
    data: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        parts = shlex.split(value, comments=True)
        data[key.strip()] = parts[0] if parts else ""
    return data


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Anything else (.conf) is the shell-sourceable format.
    return "shell"


def load_checkpoint(path: str | Path) -> Optional[InstallCheckpoint]:
    """Return the saved checkpoint, or None when there is none."""

    p = Path(path)
    if not p.exists():
        return None

    fmt = _detect_format(p)
    text = p.read_text(encoding="utf-8")
    data: Any
    try:
        if fmt == "json":
            data = json.loads(text)
        elif fmt in {"yaml", "yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = parse_shell_vars(text)
    except (ValueError, yaml.YAMLError) as e:
        raise CheckpointError(f"Unreadable checkpoint {p}: {e}") from e

    if not isinstance(data, dict):
        raise CheckpointError(f"Checkpoint must be a mapping, got {type(data)}")

    cp = InstallCheckpoint.from_vars(data)
    logger.debug("Previous configuration loaded from %s", str(p))
    return cp


def save_checkpoint(path: str | Path, checkpoint: InstallCheckpoint) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    values = checkpoint.to_vars()
    fmt = _detect_format(p)
    if fmt == "json":
        p.write_text(json.dumps(values, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    elif fmt in {"yaml", "yml"}:
        p.write_text(yaml.safe_dump(values, sort_keys=True), encoding="utf-8")
    else:
        p.write_text(format_shell_vars(values), encoding="utf-8")
    logger.debug("Configuration saved to %s", str(p))
