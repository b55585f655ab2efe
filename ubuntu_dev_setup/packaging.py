"""
apt, dpkg and snap helpers.

Installed-state queries use the package databases directly (dpkg -s,
snap list NAME) and their exit status, never the text of their output.
"""

import logging
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from ubuntu_dev_setup import LOGGER_NAME
from ubuntu_dev_setup.commands import CommandRunner

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
KEYRING_DIR = Path("/etc/apt/keyrings")
SOURCES_DIR = Path("/etc/apt/sources.list.d")

logger = logging.getLogger(LOGGER_NAME)


# ----------------------------------------------------------------
# apt / dpkg
# ----------------------------------------------------------------
def package_installed(runner: CommandRunner, package: str) -> bool:
    return runner.succeeds(["dpkg", "-s", package])


def missing_packages(runner: CommandRunner, packages: Iterable[str]) -> List[str]:
    return [pkg for pkg in packages if not package_installed(runner, pkg)]


def apt_get(runner: CommandRunner, *args: str, check: bool = True) -> subprocess.CompletedProcess:
    return runner.sudo(["apt-get"] + list(args), env=APT_ENV, check=check)


def apt_update(runner: CommandRunner) -> None:
    apt_get(runner, "update", "-y")


def apt_install(runner: CommandRunner, packages: Sequence[str]) -> None:
    """Install only what is missing; apt-get install is idempotent anyway."""
    missing = missing_packages(runner, packages)
    if not missing:
        logger.info("All requested packages are already installed.")
        return
    logger.info(f"Installing packages: {' '.join(missing)}")
    apt_get(runner, "install", "-y", *missing)


def dpkg_architecture(runner: CommandRunner) -> str:
    result = runner.run(["dpkg", "--print-architecture"], capture_output=True, text=True)
    return result.stdout.strip()


def add_apt_source(
    runner: CommandRunner,
    name: str,
    key_url: str,
    repo_url: str,
    suite: str,
    component: str = "main",
    keyring: Optional[Path] = None,
    with_arch: bool = True,
    dearmor: bool = True,
) -> Path:
    """
    Register a signed third-party apt repository and refresh the index.

    Re-running overwrites the keyring and the list file with identical
    content, which is safe.
    """
    keyring = keyring or KEYRING_DIR / f"{name}.gpg"
    runner.sudo(["install", "-m", "0755", "-d", str(keyring.parent)])
    runner.install_keyring(key_url, keyring, dearmor=dearmor)
    options = f"signed-by={keyring}"
    if with_arch:
        options = f"arch={dpkg_architecture(runner)} {options}"
    line = f"deb [{options}] {repo_url} {suite} {component}\n"
    list_file = SOURCES_DIR / f"{name}.list"
    runner.write_root_file(list_file, line)
    logger.info(f"Added apt source {list_file}")
    apt_update(runner)
    return list_file


# ----------------------------------------------------------------
# snap
# ----------------------------------------------------------------
def snap_installed(runner: CommandRunner, name: str) -> bool:
    return runner.succeeds(["snap", "list", name])


def snap_install(runner: CommandRunner, name: str, classic: bool = False) -> None:
    if snap_installed(runner, name):
        logger.info(f"Snap {name} already installed.")
        return
    cmd = ["snap", "install", name] + (["--classic"] if classic else [])
    runner.sudo(cmd)


def snap_install_all(
    runner: CommandRunner,
    snaps: Iterable[Tuple[str, bool]],
    optional: Iterable[str] = (),
) -> List[str]:
    """
    Install (name, classic) pairs in order. Failures of names listed in
    optional are logged and returned; any other failure propagates.
    """
    optional = set(optional)
    failed = []
    for name, classic in snaps:
        try:
            snap_install(runner, name, classic=classic)
        except subprocess.CalledProcessError as e:
            if name not in optional:
                raise
            logger.warning(f"{name} snap failed (optional): {e}")
            failed.append(name)
    return failed


def snaps_installed(runner: CommandRunner, names: Iterable[str]) -> bool:
    return all(snap_installed(runner, name) for name in names)
