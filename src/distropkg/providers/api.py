import logging
import shlex
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Optional

from invoke import Context, Result

from distropkg.data import InstallOutcome


def unique_names(names: Iterable[str]) -> list[str]:
    """
    Deduplicate a collection of package names, preserving order.
    """
    return list(dict.fromkeys(names))


class PkgManager(ABC):
    """
    Abstract Base Class for Package Manager

    Defines the interface for Package Manager implementations.
    All commands are executed through an invoke Context, which may
    be the local host or a fabric Connection to a remote one.
    """

    # Whether repository metadata must be refreshed explicitly
    # before installing. RPM-family tools refresh on their own.
    refresh_required: bool = False

    def __init__(
        self, sudo: bool = True, proxies: Optional[Mapping[str, str]] = None
    ) -> None:
        """
        Initialize the Package Manager.

        :param sudo: Whether to use sudo for privileged operations (default is True).
        :param proxies: Proxy variables forwarded to every native command.
        """
        self.sudo = sudo
        self.proxies: dict[str, str] = dict(proxies or {})

        # Setup logging
        self.logger = logging.getLogger(__name__)

    def reposync(self, cx: Context) -> bool:
        """
        Synchronize the package repository metadata.

        The default implementation does nothing, for package managers
        that refresh metadata implicitly on install.

        :return: True if synchronization is successful, False otherwise.
        """
        self.logger.debug(
            "%s refreshes metadata on install, nothing to do",
            self.__class__.__name__,
        )
        return True

    @abstractmethod
    def install(self, cx: Context, names: Iterable[str]) -> InstallOutcome:
        """
        Install packages non-interactively.

        Failures are reported through the outcome and never raised,
        the caller decides whether they are worth a retry.

        :return: InstallOutcome describing the result
        """
        raise NotImplementedError("install method is not implemented.")

    @abstractmethod
    def remove(self, cx: Context, names: Iterable[str]) -> InstallOutcome:
        """
        Remove packages non-interactively.

        :return: InstallOutcome describing the result
        :raises RemoveError: If the native tool reports a failure
        """
        raise NotImplementedError("remove method is not implemented.")

    @abstractmethod
    def is_installed(self, cx: Context, names: Iterable[str]) -> bool:
        """
        Check whether all the given packages are installed.
        Must not modify any repository or package state.

        :return: True if every package is installed
        :raises ValueError: If no package names are given
        """
        raise NotImplementedError("is_installed method is not implemented.")

    def _command(
        self, argv: list[str], extra_env: Optional[Mapping[str, str]] = None
    ) -> str:
        """
        Render a command line, forwarding proxies and extra variables
        through env(1) so they survive sudo's environment reset.

        Unset (empty) proxy variables are left out, so that whatever
        the target system configures for them stays in effect.
        """
        proxies = {k: v for k, v in self.proxies.items() if v}
        env = {**proxies, **(extra_env or {})}
        prefix = ["env", *(f"{k}={v}" for k, v in env.items())] if env else []
        return shlex.join([*prefix, *argv])

    def _run(
        self,
        cx: Context,
        argv: list[str],
        privileged: bool = True,
        extra_env: Optional[Mapping[str, str]] = None,
    ) -> Result:
        """
        Run a native command with an empty input stream, capturing
        output and never raising on non-zero exit.

        :param cx: invoke Context or fabric Connection
        :param argv: Command and arguments
        :param privileged: Run through sudo if enabled
        :param extra_env: Additional environment for the command
        :return: invoke Result object
        """
        command = self._command(argv, extra_env)
        self.logger.info("Running: %s", command)

        start = time.monotonic()
        if privileged and self.sudo:
            result = cx.sudo(command, hide=True, warn=True, in_stream=False)
        else:
            result = cx.run(command, hide=True, warn=True, in_stream=False)

        self.logger.debug(
            "%s exited %s after %.2fs",
            argv[0],
            result.return_code,
            time.monotonic() - start,
        )
        if result.stdout:
            self.logger.debug("STDOUT %s", result.stdout.strip())
        if result.stderr:
            self.logger.debug("STDERR %s", result.stderr.strip())

        return result
