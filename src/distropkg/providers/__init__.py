from .debian import Apt
from .factory import PkgManagerFactory
from .redhat import Yum
from .suse import Zypper

__all__ = [
    "Apt",
    "PkgManagerFactory",
    "Yum",
    "Zypper",
]
