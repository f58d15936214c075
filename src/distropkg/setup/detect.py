# Detection Module
# This module contains tasks to detect platform and details about
# the target system. It is used to pick the package manager before
# any actual package operation takes place.

import logging
import re
from collections.abc import Callable, Mapping
from typing import Optional

from invoke import Context

from distropkg.data import DistroFamily, OSInfo, PackageFormat, RepoUpdateState
from distropkg.errors import DetectionError, RepoUpdateError, UnsupportedDistroError
from distropkg.providers import PkgManagerFactory
from distropkg.repos import DEFAULT_INTERVAL, DEFAULT_TIMEOUT, RepoUpdateCoordinator

logger = logging.getLogger(__name__)

# Package providing lsb_release, per package manager binary.
# Ordering matters, the first binary found on the host is used.
LSB_PACKAGES: dict[str, str] = {
    "apt-get": "lsb-release",
    "zypper": "lsb-release",
    "dnf": "redhat-lsb-core",
    "yum": "redhat-lsb-core",
}

DEB_VENDORS = re.compile(r"Debian|Ubuntu|LinuxMint")


def _major(release: str) -> str:
    return release.split(".")[0]


# Vendor patterns mapping to a family and distro code.
# First match wins, there is no fallback.
DISTRO_PATTERNS: list[tuple[re.Pattern, DistroFamily, Callable[[OSInfo], str]]] = [
    (
        re.compile(r"Ubuntu|Debian|LinuxMint"),
        DistroFamily.DEBIAN,
        lambda info: info.codename,
    ),
    (
        re.compile(r"Fedora"),
        DistroFamily.FEDORA,
        lambda info: f"f{info.release}",
    ),
    (
        re.compile(r"openSUSE"),
        DistroFamily.SUSE,
        lambda info: f"opensuse-{info.release}",
    ),
    (
        re.compile(r"SUSE LINUX"),
        DistroFamily.SUSE,
        lambda info: f"sle{_major(info.release)}",
    ),
    (
        re.compile(r"Red.*Hat|CentOS|Scientific|OracleServer|Virtuozzo"),
        DistroFamily.FEDORA,
        lambda info: f"rhel{info.release[:1]}",
    ),
    (
        re.compile(r"XenServer"),
        DistroFamily.XENSERVER,
        lambda info: f"xs{_major(info.release)}",
    ),
    (
        re.compile(r"kvmibm"),
        DistroFamily.FEDORA,
        lambda info: f"{info.vendor}{info.release[:1]}",
    ),
]


def platform_detect(
    cx: Context,
    sudo: bool = True,
    proxies: Optional[Mapping[str, str]] = None,
    repo_state: Optional[RepoUpdateState] = None,
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
) -> OSInfo:
    """
    Detect the platform of the target system.
    Entry point for querying all platform details.

    If lsb_release is not usable, an attempt is made to install it
    with whatever package manager is available, and detection is
    retried once. Nothing is installed in offline mode.

    :param cx: invoke Context or fabric Connection
    :param sudo: Whether to use sudo when installing lsb_release
    :param proxies: Proxy variables forwarded to the package manager
    :param repo_state: Repository update state shared with later installs
    :param timeout: Overall deadline for refreshing repositories
    :param interval: Delay between repository refresh attempts
    :return: OSInfo for the system
    :raises DetectionError: If the platform cannot be identified
    :raises UnsupportedDistroError: If the vendor is not supported
    """
    try:
        info = os_detect(cx)
    except DetectionError as e:
        if repo_state is not None and repo_state.offline:
            raise DetectionError(
                f"{e}, and offline mode prevents installing lsb_release",
                stdout=e.stdout,
                stderr=e.stderr,
            ) from e

        logger.warning("Unable to query lsb_release (%s), trying to install it", e)
        install_lsb_release(
            cx,
            sudo=sudo,
            proxies=proxies,
            repo_state=repo_state,
            timeout=timeout,
            interval=interval,
        )
        info = os_detect(cx)

    family, distro = classify(info)
    logger.info(
        "Detected %s %s (%s), %s family, distro code %s",
        info.vendor,
        info.release,
        info.codename,
        family.value,
        distro,
    )

    return info


def os_detect(cx: Context) -> OSInfo:
    """
    Query lsb_release for vendor, release and codename, and
    normalize them into an OSInfo record.

    :param cx: invoke Context or fabric Connection
    :return: OSInfo for the system
    """
    vendor = lsb_query(cx, "-i")
    release = lsb_query(cx, "-r")

    # SLES and openSUSE share a vendor id on older releases,
    # only the description tells them apart.
    description = lsb_query(cx, "-d") if "SUSE LINUX" in vendor else ""
    vendor = normalize_vendor(vendor, description)

    codename = lsb_query(cx, "-c")

    return OSInfo(
        vendor=vendor,
        release=release,
        codename=codename,
        package_format=package_format(vendor),
    )


def lsb_query(cx: Context, flag: str) -> str:
    """
    Run lsb_release with the given flag in short output mode.

    :param cx: invoke Context or fabric Connection
    :param flag: lsb_release option, e.g. "-i"
    :return: Stripped output
    """
    result = cx.run(f"lsb_release {flag} -s", hide=True, warn=True, in_stream=False)

    if result.failed:
        raise DetectionError(
            f"Failed to query lsb_release {flag}",
            stdout=result.stdout,
            stderr=result.stderr,
        )

    return result.stdout.strip()


def normalize_vendor(vendor: str, description: str = "") -> str:
    """
    Normalize vendor names that are reported inconsistently
    across releases.
    """
    if "SUSE LINUX" in vendor and "openSUSE" in description:
        return "openSUSE"

    if vendor == "openSUSE project":
        return "openSUSE"

    if re.search(r"Red.*Hat", vendor):
        return "Red Hat"

    return vendor


def package_format(vendor: str) -> PackageFormat:
    """
    Determine the native package format from the vendor name.
    Everything that isn't Debian-derived is assumed to be RPM.
    """
    if DEB_VENDORS.search(vendor):
        return PackageFormat.DEB

    return PackageFormat.RPM


def classify(info: OSInfo) -> tuple[DistroFamily, str]:
    """
    Classify a platform into its family and distro code.

    :param info: OSInfo to classify
    :return: Tuple of DistroFamily and distro code
    :raises UnsupportedDistroError: If no pattern matches the vendor
    """
    for pattern, family, code in DISTRO_PATTERNS:
        if pattern.search(info.vendor):
            return family, code(info)

    # Resist the temptation to guess.
    raise UnsupportedDistroError(
        f"Unable to determine distro for vendor '{info.vendor}', can not continue."
    )


def distro_family(info: OSInfo) -> DistroFamily:
    """
    Get the DistroFamily for a platform.
    """
    return classify(info)[0]


def distro_code(info: OSInfo) -> str:
    """
    Get the normalized distro code for a platform, e.g. "f23" or "xenial".
    """
    return classify(info)[1]


def has_command(cx: Context, name: str) -> bool:
    """
    Check whether a command is available on the target system.
    """
    result = cx.run(f"command -v {name}", hide=True, warn=True, in_stream=False)
    return not result.failed


def install_lsb_release(
    cx: Context,
    sudo: bool = True,
    proxies: Optional[Mapping[str, str]] = None,
    repo_state: Optional[RepoUpdateState] = None,
    timeout: float = DEFAULT_TIMEOUT,
    interval: float = DEFAULT_INTERVAL,
) -> None:
    """
    Best-effort installation of lsb_release, using the first package
    manager binary found on the system.

    Package managers that need an explicit refresh go through the
    repository update coordinator first, with the given state so
    that later installs know the metadata is fresh.

    Installation failures are only logged, the following detection
    attempt will fail on its own if lsb_release is still missing.

    :raises DetectionError: If no known package manager is available
    """
    for binary, package in LSB_PACKAGES.items():
        if not has_command(cx, binary):
            continue

        logger.info("Installing %s with %s", package, binary)
        pkg_manager = PkgManagerFactory.from_binary(binary, sudo=sudo, proxies=proxies)

        if pkg_manager.refresh_required:
            coordinator = RepoUpdateCoordinator(
                cx,
                pkg_manager,
                repo_state if repo_state is not None else RepoUpdateState(),
                timeout=timeout,
                interval=interval,
            )
            try:
                coordinator.ensure_fresh()
            except RepoUpdateError as e:
                logger.warning("Not installing %s: %s", package, e)
                return

        outcome = pkg_manager.install(cx, [package])

        if not outcome.succeeded:
            logger.warning("Failed to install %s with %s", package, binary)

        return

    raise DetectionError("Unable to find or auto-install lsb_release")
