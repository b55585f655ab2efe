"""
Environment prober: read-only host facts computed once per run.
"""

import enum
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, FrozenSet, Mapping, Optional, Union

from ubuntu_dev_setup import LOGGER_NAME
from ubuntu_dev_setup.errors import UnsupportedHostError
from ubuntu_dev_setup.toggles import Toggle, parse_flag

OS_RELEASE_PATH = Path("/etc/os-release")
KERNEL_RELEASE_PATH = Path("/proc/sys/kernel/osrelease")
SUPPORTED_FAMILY = "ubuntu"
# Substrings of the kernel release that identify WSL kernels.
VIRTUALIZED_SHELL_MARKERS = ("microsoft", "wsl")
# Backend identifier -> executable that proves it is available.
PACKAGING_BACKENDS = {"apt": "apt-get", "snap": "snap"}

logger = logging.getLogger(LOGGER_NAME)


class OsFamily(enum.Enum):
    SUPPORTED = "supported"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class HostFacts:
    os_family: OsFamily
    is_virtualized_shell: bool
    headless_requested: bool
    packaging_backends: FrozenSet[str]
    os_name: str = ""
    codename: str = ""
    kernel_release: str = ""

    @property
    def graphical_suppressed(self) -> bool:
        return self.is_virtualized_shell or self.headless_requested


def parse_os_release(text: str) -> Dict[str, str]:
    """Parse os-release(5) KEY=VALUE lines, dropping comments and quotes."""
    fields = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        fields[key.strip()] = value.strip().strip("\"'")
    return fields


def is_supported_family(fields: Mapping[str, str]) -> bool:
    if fields.get("ID", "").lower() == SUPPORTED_FAMILY:
        return True
    return SUPPORTED_FAMILY in fields.get("ID_LIKE", "").lower().split()


def is_virtualized_kernel(kernel_release: str) -> bool:
    release = kernel_release.lower()
    return any(marker in release for marker in VIRTUALIZED_SHELL_MARKERS)


def probe(
    env: Optional[Mapping[str, str]] = None,
    os_release_path: Union[str, Path] = OS_RELEASE_PATH,
    kernel_release_path: Union[str, Path] = KERNEL_RELEASE_PATH,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> HostFacts:
    """
    Inspect the live host once.

    Raises UnsupportedHostError when the os-release file is missing,
    unreadable, or names a family other than Ubuntu. An unreadable kernel
    release is taken to mean "not a virtualized shell".
    """
    env = os.environ if env is None else env
    try:
        fields = parse_os_release(Path(os_release_path).read_text())
    except OSError as e:
        raise UnsupportedHostError(
            f"Cannot identify host from {os_release_path}: {e}"
        ) from e
    os_name = fields.get("PRETTY_NAME") or fields.get("NAME", "unknown")
    if not is_supported_family(fields):
        raise UnsupportedHostError(
            f"This program is intended for Ubuntu, found {os_name}."
        )

    try:
        kernel_release = Path(kernel_release_path).read_text().strip()
    except OSError:
        logger.debug(f"Kernel release not readable at {kernel_release_path}")
        kernel_release = ""

    backends = frozenset(
        name for name, binary in PACKAGING_BACKENDS.items() if which(binary)
    )
    facts = HostFacts(
        os_family=OsFamily.SUPPORTED,
        is_virtualized_shell=is_virtualized_kernel(kernel_release),
        headless_requested=parse_flag(env.get("HEADLESS")) is Toggle.FORCED_ON,
        packaging_backends=backends,
        os_name=os_name,
        codename=fields.get("UBUNTU_CODENAME") or fields.get("VERSION_CODENAME", ""),
        kernel_release=kernel_release,
    )
    logger.debug(f"Host facts: {facts}")
    return facts
