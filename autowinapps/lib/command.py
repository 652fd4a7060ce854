from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    timeout_s: float | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging.

    - Always logs the command.
    - Captures stdout/stderr (logged at DEBUG).
    - dry_run logs but does not execute.
    - A missing executable is reported as returncode 127.
    """

    argv_list = list(argv)
    if dry_run:
        logger.info("DRY RUN: would run %s", _fmt_argv(argv_list))
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    logger.debug("CMD %s", _fmt_argv(argv_list))

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
            timeout=timeout_s,
        )
    except FileNotFoundError as e:
        result = CmdResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))
    except subprocess.TimeoutExpired as e:
        result = CmdResult(argv=argv_list, returncode=124, stdout="", stderr=f"timed out after {e.timeout}s")
    else:
        result = CmdResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout or "", stderr=p.stderr or "")

    if result.stdout:
        logger.debug("STDOUT %s", result.stdout.strip())
    if result.stderr:
        logger.debug("STDERR %s", result.stderr.strip())

    if check and result.returncode != 0:
        raise CommandError(
            f"Command failed ({result.returncode}): {_fmt_argv(argv_list)}\n{result.stderr}",
            argv=argv_list,
            returncode=result.returncode,
        )

    return result


def sudo(argv: Sequence[str]) -> list[str]:
    """Prefix argv with sudo unless we already run as root."""

    if os.geteuid() == 0:
        return list(argv)
    return ["sudo", *argv]


def command_exists(name: str) -> bool:
    return shutil.which(name) is not None
