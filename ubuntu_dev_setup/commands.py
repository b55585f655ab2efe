"""
Command execution helpers shared by every step.

All external programs go through CommandRunner so that elevation, logging
and environment handling stay in one place (and so tests can substitute a
recording runner).
"""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Union

from ubuntu_dev_setup import LOGGER_NAME
from ubuntu_dev_setup.ui import console

logger = logging.getLogger(LOGGER_NAME)


class CommandRunner:
    def __init__(self, env: Optional[Mapping[str, str]] = None):
        self.env = dict(os.environ if env is None else env)

    # ----------------------------------------------------------------
    # Queries
    # ----------------------------------------------------------------
    def command_exists(self, cmd: str) -> bool:
        return shutil.which(cmd, path=self.env.get("PATH")) is not None

    def succeeds(self, cmd: Sequence[str]) -> bool:
        """Run a read-only query and report whether it exited 0."""
        try:
            result = self.run(cmd, capture_output=True, text=True, check=False)
        except OSError:
            return False
        return result.returncode == 0

    # ----------------------------------------------------------------
    # Execution
    # ----------------------------------------------------------------
    def run(
        self,
        cmd: Sequence[str],
        capture_output: bool = False,
        text: bool = False,
        check: bool = True,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        cmd = [str(part) for part in cmd]
        logger.debug(f"Running command: {' '.join(cmd)}")
        merged_env = dict(self.env)
        if env:
            merged_env.update(env)
        return subprocess.run(
            cmd,
            capture_output=capture_output,
            text=text or input is not None,
            check=check,
            env=merged_env,
            cwd=str(cwd) if cwd else None,
            input=input,
        )

    def sudo(
        self,
        cmd: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        check: bool = True,
        input: Optional[str] = None,
        capture_output: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run cmd through sudo. Variables in env are passed with env(1)
        because sudo resets the caller's environment.
        """
        prefix: List[str] = ["sudo"]
        if env:
            prefix += ["env"] + [f"{key}={value}" for key, value in env.items()]
        return self.run(
            prefix + list(cmd),
            check=check,
            input=input,
            capture_output=capture_output,
        )

    def validate_sudo(self) -> bool:
        """Prime sudo's credential cache for the rest of the run."""
        try:
            return self.run(["sudo", "-v"], check=False).returncode == 0
        except OSError as e:
            logger.error(f"sudo is not available: {e}")
            return False

    # ----------------------------------------------------------------
    # Network Helpers
    # ----------------------------------------------------------------
    def download(self, url: str, dest: Union[str, Path]) -> Path:
        """Fetch url to dest with curl (or wget), failing on HTTP errors."""
        dest = Path(dest)
        logger.info(f"Downloading {url} to {dest}...")
        with console.status(f"Downloading {Path(url).name}...", spinner="dots"):
            if self.command_exists("curl"):
                self.run(["curl", "-fsSL", "-o", str(dest), url])
            elif self.command_exists("wget"):
                self.run(["wget", "-q", "-O", str(dest), url])
            else:
                raise FileNotFoundError("Neither curl nor wget is available")
        logger.debug(f"Download complete: {dest}")
        return dest

    def fetch_text(self, url: str) -> str:
        return self.run(["curl", "-fsSL", url], capture_output=True, text=True).stdout

    def run_remote_script(
        self,
        url: str,
        interpreter: Sequence[str] = ("sh",),
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Download a vendor install script and feed it to interpreter."""
        script = self.fetch_text(url)
        cmd = list(interpreter) + (["-s", "--"] + list(args) if args else [])
        return self.run(cmd, env=env, input=script)

    def install_keyring(
        self, url: str, keyring: Union[str, Path], dearmor: bool = True
    ) -> None:
        """Store a vendor signing key as a binary keyring, dearmoring if needed."""
        if not dearmor:
            self.sudo(["curl", "-fsSL", "-o", str(keyring), url])
            self.sudo(["chmod", "go+r", str(keyring)])
            return
        armored = self.fetch_text(url)
        self.sudo(
            ["gpg", "--batch", "--yes", "--dearmor", "-o", str(keyring)], input=armored
        )
        self.sudo(["chmod", "a+r", str(keyring)])

    def write_root_file(self, path: Union[str, Path], content: str) -> None:
        self.sudo(["tee", str(path)], input=content, capture_output=True)
