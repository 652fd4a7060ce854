"""
Operating system detection.
Parses /etc/os-release and maps the ID onto the closed set of supported
distributions.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict

from ..errors import UnsupportedOSError

logger = logging.getLogger(__name__)


class OsId(str, Enum):
    CACHYOS = "cachyos"
    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    LINUXMINT = "linuxmint"

    @classmethod
    def parse(cls, value: str) -> "OsId":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise UnsupportedOSError(
                f"Unsupported operating system: {value or 'unknown'} "
                "(supported: CachyOS, Ubuntu, Linux Mint, Debian)"
            ) from None


def parse_os_release(path: str | Path = "/etc/os-release") -> Dict[str, str]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise UnsupportedOSError(f"Cannot detect operating system - {p} not found") from None

    data: Dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        try:
            parts = shlex.split(value)
        except ValueError:
            parts = [value.strip("\"'")]
        data[key.strip()] = parts[0] if parts else ""
    return data


@dataclass(frozen=True)
class OsRelease:
    os_id: OsId
    version: str
    name: str
    codename: str = ""


def detect_os(path: str | Path = "/etc/os-release") -> OsRelease:
    """Identify the running distribution from os-release.

    Raises UnsupportedOSError for anything outside the supported set.
    """

    data = parse_os_release(path)
    raw_id = data.get("ID", "")
    version = data.get("VERSION_ID") or data.get("VERSION") or "unknown"
    logger.info("Detected: %s (%s)", data.get("NAME", raw_id or "unknown"), version)
    logger.debug("OS ID: %s, Version: %s", raw_id, version)
    return OsRelease(
        os_id=OsId.parse(raw_id),
        version=version,
        name=data.get("NAME", raw_id),
        codename=data.get("VERSION_CODENAME", ""),
    )


def version_major(version: str) -> int:
    m = re.match(r"\s*(\d+)", version or "")
    return int(m.group(1)) if m else 0
