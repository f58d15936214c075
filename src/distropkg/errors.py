# Exception Types

from distropkg.data import FailureKind


class PackagingError(Exception):
    """Base exception for errors raised by package operations."""

    def __init__(self, message: str, stdout: str = "", stderr: str = "") -> None:
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class DetectionError(PackagingError):
    """Exception raised when the host platform cannot be identified."""


class UnsupportedDistroError(DetectionError):
    """Exception raised for unsupported distributions."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class RepoUpdateError(PackagingError):
    """Exception raised when repository metadata cannot be refreshed."""


class InstallError(PackagingError):
    """Exception raised when packages could not be installed."""

    def __init__(
        self,
        message: str,
        kind: FailureKind = FailureKind.FATAL,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.kind = kind
        super().__init__(message, stdout=stdout, stderr=stderr)


class RemoveError(PackagingError):
    """Exception raised when packages could not be removed."""
