from __future__ import annotations

import logging
import socket

from .command import run_cmd

logger = logging.getLogger(__name__)


def is_online(host: str = "8.8.8.8", *, timeout_s: int = 5) -> bool:
    """Best-effort online check (single ping)."""

    r = run_cmd(["ping", "-c", "1", "-W", str(timeout_s), host], check=False, timeout_s=timeout_s + 2)
    return r.ok


def tcp_reachable(host: str, port: int, *, timeout_s: float = 5.0) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            return True
    except OSError as e:
        logger.debug("%s:%s unreachable: %s", host, port, e)
        return False
