"""
Repository update module for distropkg

Keeps track of repository metadata freshness for the lifetime of
a process, and refreshes it through the package manager when needed.
"""

import logging
import time
from collections.abc import Callable

from invoke import Context

from distropkg.data import RepoUpdateState
from distropkg.errors import RepoUpdateError
from distropkg.providers.api import PkgManager

# Defaults for the refresh retry loop, in seconds
DEFAULT_TIMEOUT = 300
DEFAULT_INTERVAL = 30


class RepoUpdateCoordinator:
    """
    Decides when repository metadata must be refreshed.

    This is the only place allowed to flip the `updated` and
    `force_retry` flags of the shared RepoUpdateState.
    """

    def __init__(
        self,
        cx: Context,
        pkg_manager: PkgManager,
        state: RepoUpdateState,
        timeout: float = DEFAULT_TIMEOUT,
        interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        :param cx: invoke Context or fabric Connection
        :param pkg_manager: Package manager used for refreshing
        :param state: Shared repository update state
        :param timeout: Overall deadline for the refresh retry loop
        :param interval: Delay between refresh attempts
        :param clock: Monotonic clock, for testing
        :param sleep: Sleep function, for testing
        """
        self.logger = logging.getLogger(__name__)

        self.cx = cx
        self.pkg_manager = pkg_manager
        self.state = state
        self.timeout = timeout
        self.interval = interval

        self._clock = clock
        self._sleep = sleep

    def ensure_fresh(self, force: bool = False) -> None:
        """
        Refresh repository metadata, unless it is known to be fresh
        or refreshing is disabled.

        A pending `force_retry` flag in the state counts as a forced
        refresh, and is cleared once the refresh succeeds.

        :param force: Refresh even if already done in this process
        :raises RepoUpdateError: If the refresh did not succeed in time
        """
        if self.state.offline:
            self.logger.debug("Offline mode, skipping repository refresh")
            return

        force = force or self.state.force_retry

        if self.state.skip_update and not force:
            self.logger.debug("Repository updates disabled, skipping refresh")
            return

        if self.state.updated and not force:
            self.logger.debug("Repositories already refreshed, skipping")
            return

        if not self.pkg_manager.refresh_required:
            self.logger.debug(
                "%s does not need explicit refreshes",
                self.pkg_manager.__class__.__name__,
            )
            self.state.updated = True
            self.state.force_retry = False
            return

        self._refresh()

        self.state.updated = True
        self.state.force_retry = False

    def _refresh(self) -> None:
        """
        Retry the package manager refresh at a fixed interval until
        it succeeds or the timeout elapses.
        """
        start = self._clock()
        deadline = start + self.timeout
        attempt = 0

        while True:
            attempt += 1
            self.logger.info("Refreshing repository metadata (attempt %d)", attempt)

            if self.pkg_manager.reposync(self.cx):
                self.logger.info(
                    "Repository metadata refreshed in %.1fs", self._clock() - start
                )
                return

            remaining = deadline - self._clock()
            if remaining <= 0:
                break

            self.logger.warning(
                "Repository refresh failed, retrying in %ss", self.interval
            )
            self._sleep(min(self.interval, remaining))

            if self._clock() >= deadline:
                break

        raise RepoUpdateError(
            f"Failed to update repositories after {attempt} attempts "
            f"in {self.timeout}s, giving up"
        )
