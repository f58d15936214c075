# Data Types and Classes

from dataclasses import dataclass
from enum import Enum


class PackageFormat(Enum):
    """
    Native package format of a host.
    """

    DEB = "deb"
    RPM = "rpm"


class DistroFamily(Enum):
    """
    Family of distributions sharing a package manager.
    """

    DEBIAN = "debian"
    FEDORA = "fedora"
    SUSE = "suse"
    XENSERVER = "xenserver"


class FailureKind(Enum):
    """
    Classification of a failed package operation.

    Transient failures are plausibly caused by stale repository
    metadata and are eligible for one retry after a forced refresh.
    Fatal failures are not.
    """

    NONE = "none"
    TRANSIENT = "transient"
    FATAL = "fatal"


@dataclass(frozen=True)
class OSInfo:
    """
    Data class to hold platform information about a host,
    as reported by lsb_release and normalized.
    """

    vendor: str
    release: str
    codename: str
    package_format: PackageFormat


@dataclass(frozen=True)
class InstallOutcome:
    """
    Data class to hold the result of a package manager operation.
    Captured output is kept around for diagnostics.
    """

    succeeded: bool
    retried_after_failure: bool = False
    failure: FailureKind = FailureKind.NONE
    stdout: str = ""
    stderr: str = ""


@dataclass()
class RepoUpdateState:
    """
    Data class to hold repository freshness flags at runtime.
    Only the RepoUpdateCoordinator should ever change these.
    """

    updated: bool = False
    force_retry: bool = False
    offline: bool = False
    skip_update: bool = False
