from __future__ import annotations


class InstallerError(RuntimeError):
    """Fatal installer error. Aborts the run with exit code 1."""


class UnsupportedOSError(InstallerError):
    pass


class CommandError(InstallerError):
    def __init__(self, message: str, *, argv: list[str], returncode: int) -> None:
        super().__init__(message)
        self.argv = argv
        self.returncode = returncode


class ValidationBlockedError(InstallerError):
    pass


class StepNotFoundError(InstallerError):
    pass


class StepFailedError(InstallerError):
    def __init__(self, step_id: str, cause: BaseException) -> None:
        super().__init__(f"Failed during: {step_id}: {cause}")
        self.step_id = step_id
        self.cause = cause


class CheckpointError(InstallerError):
    pass
