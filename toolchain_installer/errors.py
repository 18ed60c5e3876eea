from __future__ import annotations

from typing import Optional


class InstallerError(RuntimeError):
    """Base class for every error the installer raises on purpose."""

    resource: str = ""


class DownloadError(InstallerError):
    def __init__(self, url: str, cause: object) -> None:
        super().__init__(f"Download failed for {url}: {cause}")
        self.url = url
        self.cause = cause
        self.resource = url


class MissingArtifactError(InstallerError):
    def __init__(self, subtree: str, reason: str = "missing after extraction") -> None:
        super().__init__(f"Expected archive content {subtree!r} {reason}")
        self.subtree = subtree
        self.resource = subtree


class ConfigParseError(InstallerError):
    """Settings document could not be parsed. Logged, never fatal."""

    def __init__(self, path: str, cause: object) -> None:
        super().__init__(f"Unable to parse {path}: {cause}")
        self.path = path
        self.cause = cause
        self.resource = path


class ConfigWriteError(InstallerError):
    def __init__(self, path: str, cause: object) -> None:
        super().__init__(f"Unable to write {path}: {cause}")
        self.path = path
        self.cause = cause
        self.resource = path


class VerificationCheckError(InstallerError):
    """A check could not be evaluated. Captured as a failed result."""

    def __init__(self, name: str, cause: BaseException) -> None:
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.name = name
        self.cause = cause
        self.resource = name


class PrerequisiteError(InstallerError):
    def __init__(self, resource: str, reason: str) -> None:
        super().__init__(f"Prerequisite not met ({resource}): {reason}")
        self.reason = reason
        self.resource = resource


class PhaseFailed(InstallerError):
    """Fatal orchestrator halt, carrying the phase and resource involved."""

    def __init__(self, phase_id: str, cause: BaseException, resource: Optional[str] = None) -> None:
        self.phase_id = phase_id
        self.cause = cause
        self.resource = str(resource or getattr(cause, "resource", "") or getattr(cause, "filename", "") or "")
        super().__init__(str(cause))

    def one_line(self) -> str:
        msg = " ".join(str(self.cause).split())
        if self.resource:
            return f"FATAL [{self.phase_id}] {self.resource}: {msg}"
        return f"FATAL [{self.phase_id}] {msg}"
