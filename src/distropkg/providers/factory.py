from collections.abc import Mapping
from typing import Optional

from distropkg.data import DistroFamily
from distropkg.errors import UnsupportedDistroError
from distropkg.providers.api import PkgManager
from distropkg.providers.debian import Apt
from distropkg.providers.redhat import Yum
from distropkg.providers.suse import Zypper


class PkgManagerFactory:
    """
    Factory class for creating package manager instances.
    """

    _REGISTRY: dict[DistroFamily, type[PkgManager]] = {
        DistroFamily.DEBIAN: Apt,
        DistroFamily.FEDORA: Yum,
        DistroFamily.SUSE: Zypper,
    }

    # Package manager binaries, in the order they are probed
    # when the distribution is not known yet.
    BINARIES: dict[str, type[PkgManager]] = {
        "apt-get": Apt,
        "zypper": Zypper,
        "dnf": Yum,
        "yum": Yum,
    }

    @staticmethod
    def create(
        family: DistroFamily,
        sudo: bool = True,
        proxies: Optional[Mapping[str, str]] = None,
        yum: str = "yum",
    ) -> PkgManager:
        """
        Create a package manager instance for a distribution family.

        :param family: DistroFamily of the host
        :param sudo: Whether to use sudo for privileged operations (default is True).
        :param proxies: Proxy variables forwarded to every native command.
        :param yum: Binary name used by the yum-family implementation
        :return: An instance of the matching package manager.
        :raises UnsupportedDistroError: If no implementation exists for the family
        """
        if family not in PkgManagerFactory._REGISTRY:
            raise UnsupportedDistroError(
                f"No package manager support for {family.value} distributions"
            )

        pkg_impl = PkgManagerFactory._REGISTRY[family]

        if pkg_impl is Yum:
            return Yum(sudo=sudo, proxies=proxies, binary=yum)

        return pkg_impl(sudo=sudo, proxies=proxies)

    @staticmethod
    def from_binary(
        binary: str,
        sudo: bool = True,
        proxies: Optional[Mapping[str, str]] = None,
    ) -> PkgManager:
        """
        Create a package manager instance from the name of its binary.
        Used before the distribution has been identified.

        :param binary: Binary name, one of the BINARIES keys
        :return: An instance of the matching package manager.
        """
        if binary not in PkgManagerFactory.BINARIES:
            raise ValueError(f"Unsupported package manager binary: {binary}")

        pkg_impl = PkgManagerFactory.BINARIES[binary]

        if pkg_impl is Yum:
            return Yum(sudo=sudo, proxies=proxies, binary=binary)

        return pkg_impl(sudo=sudo, proxies=proxies)

    @staticmethod
    def get_registry() -> dict[DistroFamily, type[PkgManager]]:
        """
        Get a copy of the registry of supported families.
        """
        return PkgManagerFactory._REGISTRY.copy()
