from collections.abc import Iterable
from typing import Optional

from invoke import Context

from distropkg.data import FailureKind, InstallOutcome
from distropkg.errors import RemoveError
from distropkg.providers.api import unique_names
from distropkg.providers.redhat import RpmPkgManager


class Zypper(RpmPkgManager):
    """
    Zypper Package Manager

    Implements the Zypper package manager interface for SUSE and
    openSUSE. Licenses are accepted automatically and the exit code
    is trusted as-is.
    """

    def __init__(self, sudo: bool = True, proxies: Optional[dict] = None) -> None:
        super().__init__(sudo, proxies)
        self.logger.debug("Initializing SUSE Zypper package manager")

    def install(self, cx: Context, names: Iterable[str]) -> InstallOutcome:
        packages = unique_names(names)
        if not packages:
            self.logger.debug("No packages to install")
            return InstallOutcome(succeeded=True)

        result = self._run(
            cx,
            [
                "zypper",
                "--non-interactive",
                "install",
                "--auto-agree-with-licenses",
                *packages,
            ],
        )

        if result.failed:
            self.logger.error(
                "zypper failed to install %s: %s",
                ", ".join(packages),
                result.stderr.strip(),
            )
            return InstallOutcome(
                succeeded=False,
                failure=FailureKind.TRANSIENT,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return InstallOutcome(
            succeeded=True, stdout=result.stdout, stderr=result.stderr
        )

    def remove(self, cx: Context, names: Iterable[str]) -> InstallOutcome:
        packages = unique_names(names)
        if not packages:
            return InstallOutcome(succeeded=True)

        result = self._run(cx, ["zypper", "remove", "-y", *packages])

        if result.failed:
            raise RemoveError(
                f"zypper failed to remove {', '.join(packages)}",
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return InstallOutcome(
            succeeded=True, stdout=result.stdout, stderr=result.stderr
        )
