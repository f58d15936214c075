import logging
from collections.abc import Iterable
from typing import Optional

from distropkg.context import InstallerContext
from distropkg.data import DistroFamily, FailureKind, InstallOutcome, OSInfo
from distropkg.errors import InstallError, RemoveError, UnsupportedDistroError
from distropkg.providers import PkgManagerFactory
from distropkg.providers.api import PkgManager, unique_names
from distropkg.repos import RepoUpdateCoordinator
from distropkg.setup import detect


class PackageInstaller:
    """
    Install, remove and query packages without knowing which
    package manager the system uses.

    Installation refreshes repository metadata first if needed, and
    retries exactly once after a forced refresh when the package
    manager reports a transient failure.
    """

    def __init__(
        self,
        context: InstallerContext,
        pkg_manager: Optional[PkgManager] = None,
        coordinator: Optional[RepoUpdateCoordinator] = None,
    ) -> None:
        """
        Create a PackageInstaller over an installer context.

        Platform detection and package manager selection are deferred
        until first needed. Both the package manager and the update
        coordinator can be injected, mostly for testing.

        :param context: InstallerContext holding the session state
        :param pkg_manager: Optional package manager to use
        :param coordinator: Optional repository update coordinator
        """
        self.logger = logging.getLogger(__name__)
        self.context = context

        if pkg_manager is not None:
            self.context.pkg_manager = pkg_manager

        self._coordinator = coordinator

    @property
    def options(self) -> dict:
        return self.context.config["options"]

    @property
    def proxies(self) -> dict[str, str]:
        return dict(self.context.config["proxy"])

    def detect_os(self) -> OSInfo:
        """
        Detect the platform, caching the result in the context.

        :return: OSInfo for the system
        :raises DetectionError: If the platform cannot be identified
        """
        if self.context.os_info is None:
            self.logger.debug("Detecting platform on %s", self.context.target)
            self.context.os_info = detect.platform_detect(
                self.context.cx,
                sudo=self.options["sudo"],
                proxies=self.proxies,
                repo_state=self.context.repo_state,
                timeout=self.options["repo_update_timeout"],
                interval=self.options["repo_update_interval"],
            )

        return self.context.os_info

    def classify(self) -> tuple[DistroFamily, str]:
        """
        Classify the platform into its family and distro code,
        caching the result in the context.

        :raises UnsupportedDistroError: If the vendor is not supported
        """
        if self.context.classification is None:
            self.context.classification = detect.classify(self.detect_os())

        return self.context.classification

    @property
    def family(self) -> DistroFamily:
        """
        DistroFamily of the system.
        """
        return self.classify()[0]

    @property
    def distro(self) -> str:
        """
        Normalized distro code of the system, e.g. "jammy" or "rhel9".
        """
        return self.classify()[1]

    @property
    def backend(self) -> PkgManager:
        """
        Package manager for the system, resolved once and kept
        in the context.

        :raises UnsupportedDistroError: If the distribution is not supported
        """
        if self.context.pkg_manager is None:
            yum = self.options.get("yum") or (
                "dnf" if self.distro.startswith("f") else "yum"
            )
            self.context.pkg_manager = PkgManagerFactory.create(
                self.family,
                sudo=self.options["sudo"],
                proxies=self.proxies,
                yum=yum,
            )
            self.logger.debug(
                "Using concrete package manager %s.%s for %s",
                self.context.pkg_manager.__class__.__module__,
                self.context.pkg_manager.__class__.__qualname__,
                self.distro,
            )

        return self.context.pkg_manager

    @property
    def coordinator(self) -> RepoUpdateCoordinator:
        if self._coordinator is None:
            self._coordinator = RepoUpdateCoordinator(
                self.context.cx,
                self.backend,
                self.context.repo_state,
                timeout=self.options["repo_update_timeout"],
                interval=self.options["repo_update_interval"],
            )

        return self._coordinator

    def update_repos(self, force: bool = False) -> None:
        """
        Refresh repository metadata if needed.

        :param force: Refresh even if already done in this session
        :raises RepoUpdateError: If the refresh did not succeed in time
        """
        self._resolve("updating package repositories")
        self.coordinator.ensure_fresh(force=force)

    def install(self, names: Iterable[str]) -> InstallOutcome:
        """
        Install packages, refreshing repositories first if needed.

        A transient failure triggers one forced repository refresh and
        exactly one retry. A fatal failure, or a failed retry, is raised.
        Nothing is run in offline mode.

        :param names: Package names to install
        :return: InstallOutcome of the successful attempt
        :raises InstallError: If the packages could not be installed
        """
        packages = unique_names(names)

        if self.context.repo_state.offline:
            self.logger.info(
                "Offline mode, not installing %s", ", ".join(packages) or "anything"
            )
            return InstallOutcome(succeeded=True)

        if not packages:
            return InstallOutcome(succeeded=True)

        backend = self._resolve("installing packages")
        self.coordinator.ensure_fresh(force=False)

        outcome = backend.install(self.context.cx, packages)
        if outcome.succeeded:
            return outcome

        if outcome.failure is FailureKind.TRANSIENT:
            self.logger.warning(
                "Failed to install %s, refreshing repositories and retrying",
                ", ".join(packages),
            )
            self.coordinator.ensure_fresh(force=True)

            outcome = backend.install(self.context.cx, packages)
            if outcome.succeeded:
                return InstallOutcome(
                    succeeded=True,
                    retried_after_failure=True,
                    stdout=outcome.stdout,
                    stderr=outcome.stderr,
                )

        raise InstallError(
            f"Failed to install {', '.join(packages)} on {self.context.target}",
            kind=outcome.failure,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
        )

    def uninstall(self, names: Iterable[str]) -> InstallOutcome:
        """
        Remove packages, best effort.

        Failures of the package manager are logged and reported in
        the outcome, but never raised, since the packages may well
        be absent already.

        :param names: Package names to remove
        :return: InstallOutcome of the removal
        """
        backend = self._resolve("uninstalling packages")

        try:
            return backend.remove(self.context.cx, names)
        except RemoveError as e:
            self.logger.warning("Ignoring package removal failure: %s", e)
            return InstallOutcome(
                succeeded=False,
                failure=FailureKind.TRANSIENT,
                stdout=e.stdout,
                stderr=e.stderr,
            )

    def is_installed(self, names: Iterable[str]) -> bool:
        """
        Check whether all the given packages are installed.

        :param names: Package names to query
        :return: True if every package is installed
        :raises ValueError: If no package names are given
        """
        packages = unique_names(names)
        if not packages:
            raise ValueError("No package names given to query")

        return self._resolve("finding if a package is installed").is_installed(
            self.context.cx, packages
        )

    def _resolve(self, operation: str) -> PkgManager:
        """
        Resolve the package manager, naming the operation that
        required it if the distribution is not supported.
        """
        try:
            return self.backend
        except UnsupportedDistroError as e:
            raise UnsupportedDistroError(
                f"Support for {self.context.target} is incomplete, "
                f"no support for {operation}: {e}"
            ) from e
