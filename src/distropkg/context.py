"""
Context module for distropkg

Holds the shared state of a package installation session: the
command runner, configuration, detected platform, repository
update flags and the resolved package manager.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from fabric import Connection
from invoke import Context

from distropkg.config import Configuration
from distropkg.data import DistroFamily, OSInfo, RepoUpdateState

if TYPE_CHECKING:
    from distropkg.providers.api import PkgManager


@dataclass
class InstallerContext:
    """
    Explicit session state, passed by reference to the installer.

    The platform information, its classification and the package
    manager are filled in lazily on first use, and kept for the
    lifetime of the context.
    """

    cx: Context
    config: Configuration = field(default_factory=Configuration)
    repo_state: RepoUpdateState = field(default_factory=RepoUpdateState)
    os_info: Optional[OSInfo] = None
    classification: Optional[tuple[DistroFamily, str]] = None
    pkg_manager: Optional[PkgManager] = None

    @classmethod
    def from_config(
        cls, config: Configuration, host: Optional[str] = None
    ) -> InstallerContext:
        """
        Create a context from configuration.

        Repository update flags are seeded from the configuration
        options. Commands run on the local system unless a host is
        given, in which case a fabric Connection is used.

        :param config: Configuration to use
        :param host: Optional remote host, as accepted by fabric
        :return: A new InstallerContext
        """
        options = config["options"]
        cx: Context = Connection(host) if host else Context()

        state = RepoUpdateState(
            offline=bool(options.get("offline")),
            skip_update=bool(options.get("no_update_repos")),
            force_retry=bool(options.get("retry_update")),
        )

        return cls(cx=cx, config=config, repo_state=state)

    @property
    def target(self) -> str:
        """
        Human readable name of the system commands run on.
        """
        if isinstance(self.cx, Connection):
            return self.cx.host

        return "localhost"
