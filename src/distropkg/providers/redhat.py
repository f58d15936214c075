from collections.abc import Iterable
from itertools import chain
from typing import Optional

from invoke import Context, Result

from distropkg.data import FailureKind, InstallOutcome
from distropkg.errors import RemoveError
from distropkg.providers.api import PkgManager, unique_names

# Output lines that indicate a package was silently skipped or
# failed halfway through, even when yum exits with 0.
# Matched as literal prefixes only.
FATAL_MARKERS = ("No package", "Failed:")


class RpmPkgManager(PkgManager):
    """
    Common base for RPM based package managers.

    Installation status is always queried from the rpm database
    directly, regardless of the high level tool in use.
    """

    def is_installed(self, cx: Context, names: Iterable[str]) -> bool:
        """
        Query rpm for the installation status of packages.
        """
        packages = unique_names(names)
        if not packages:
            raise ValueError("No package names given to query")

        result = self._run(cx, ["rpm", "--quiet", "-q", *packages], privileged=False)
        return not result.failed


class Yum(RpmPkgManager):
    """
    Yum Package Manager

    Implements the Yum package manager interface.
    Can also drive DNF, which accepts the same arguments.

    yum -y happily exits 0 when some of the requested packages do
    not exist, or when their scriptlets fail, so the exit code alone
    can't be trusted and output is scanned for failure markers.
    """

    def __init__(
        self,
        sudo: bool = True,
        proxies: Optional[dict] = None,
        binary: str = "yum",
    ) -> None:
        """
        Initialize the Yum package manager.

        :param sudo: Whether to use sudo for privileged operations (default is True).
        :param proxies: Proxy variables forwarded to every native command.
        :param binary: Name of the yum-compatible binary, e.g. "dnf"
        """
        super().__init__(sudo, proxies)
        self.binary = binary
        self.logger.debug("Initializing RedHat package manager using %s", binary)

    def install(self, cx: Context, names: Iterable[str]) -> InstallOutcome:
        """
        Install packages with yum or dnf.
        """
        packages = unique_names(names)
        if not packages:
            self.logger.debug("No packages to install")
            return InstallOutcome(succeeded=True)

        result = self._run(cx, [self.binary, "install", "-y", *packages])
        return self._classify(result)

    def remove(self, cx: Context, names: Iterable[str]) -> InstallOutcome:
        """
        Remove packages with yum or dnf.
        """
        packages = unique_names(names)
        if not packages:
            return InstallOutcome(succeeded=True)

        result = self._run(cx, [self.binary, "remove", "-y", *packages])

        if result.failed:
            raise RemoveError(
                f"{self.binary} failed to remove {', '.join(packages)}",
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return InstallOutcome(
            succeeded=True, stdout=result.stdout, stderr=result.stderr
        )

    def _classify(self, result: Result) -> InstallOutcome:
        """
        Classify the result of an install run.

        A failure marker anywhere in the output is fatal, whatever
        the exit code. Any other non-zero exit is transient.

        :param result: invoke Result of the install command
        :return: InstallOutcome for the run
        """
        lines = chain(result.stdout.splitlines(), result.stderr.splitlines())

        for line in lines:
            if line.startswith(FATAL_MARKERS):
                self.logger.error("Detected fatal package install failure: %s", line)
                return InstallOutcome(
                    succeeded=False,
                    failure=FailureKind.FATAL,
                    stdout=result.stdout,
                    stderr=result.stderr,
                )

        if result.failed:
            self.logger.error(
                "%s install exited with %s: %s",
                self.binary,
                result.return_code,
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
