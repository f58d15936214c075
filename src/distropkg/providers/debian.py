from collections.abc import Iterable
from typing import Optional

from invoke import Context, Result

from distropkg.data import FailureKind, InstallOutcome
from distropkg.errors import RemoveError
from distropkg.providers.api import PkgManager, unique_names


class Apt(PkgManager):
    """
    Apt Package Manager

    Implements the Apt package manager interface.
    Local configuration files are kept on conflict and all
    prompts are answered with yes.
    """

    refresh_required = True

    APT_GET = [
        "apt-get",
        "--option",
        "Dpkg::Options::=--force-confold",
        "--assume-yes",
    ]

    def __init__(self, sudo: bool = True, proxies: Optional[dict] = None) -> None:
        """
        Initialize the Apt package manager.

        :param sudo: Whether to use sudo for privileged operations (default is True).
        :param proxies: Proxy variables forwarded to every native command.
        """
        super().__init__(sudo, proxies)
        self.logger.debug("Initializing Debian Apt package manager")

    def reposync(self, cx: Context) -> bool:
        """
        Synchronize the APT package repository.

        :param cx: invoke Context or fabric Connection.
        :return: True if synchronization is successful, False otherwise.
        """
        self.logger.debug("Synchronizing apt repositories")
        update = self._run(cx, ["apt-get", "update"])

        if update.failed:
            self.logger.error(
                "Failed to synchronize apt repositories: %s", update.stderr
            )
            return False

        self.logger.debug("Apt repositories synchronized successfully")

        return True

    def install(self, cx: Context, names: Iterable[str]) -> InstallOutcome:
        """
        Install packages with apt-get.

        Any failure is considered transient, as it is most often
        caused by stale package lists.
        """
        packages = unique_names(names)
        if not packages:
            self.logger.debug("No packages to install")
            return InstallOutcome(succeeded=True)

        result = self._apt_get(cx, "install", packages)

        if result.failed:
            self.logger.error(
                "apt-get failed to install %s: %s",
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
        """
        Purge packages with apt-get, configuration included.
        """
        packages = unique_names(names)
        if not packages:
            return InstallOutcome(succeeded=True)

        result = self._apt_get(cx, "purge", packages)

        if result.failed:
            raise RemoveError(
                f"apt-get failed to purge {', '.join(packages)}",
                stdout=result.stdout,
                stderr=result.stderr,
            )

        return InstallOutcome(
            succeeded=True, stdout=result.stdout, stderr=result.stderr
        )

    def is_installed(self, cx: Context, names: Iterable[str]) -> bool:
        """
        Query dpkg for the installation status of packages.
        """
        packages = unique_names(names)
        if not packages:
            raise ValueError("No package names given to query")

        result = self._run(cx, ["dpkg", "-s", *packages], privileged=False)
        return not result.failed

    def _apt_get(self, cx: Context, action: str, packages: list[str]) -> Result:
        """
        Run an apt-get action in non-interactive mode.
        """
        return self._run(
            cx,
            [*self.APT_GET, action, *packages],
            extra_env={"DEBIAN_FRONTEND": "noninteractive"},
        )
