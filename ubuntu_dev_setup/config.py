"""
Runtime configuration derived from the invoking user's environment.
"""

import getpass
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


# ----------------------------------------------------------------
# Data Structures
# ----------------------------------------------------------------
@dataclass(frozen=True)
class Config:
    USERNAME: str
    USER_HOME: Path
    PROFILE_PATH: Path
    LOG_FILE: Path
    STATE_DIR: Path
    ZSH_CUSTOM: Path
    NVM_DIR: Path
    MINICONDA_PREFIX: Path
    # Hours after which a successful full upgrade is considered stale.
    UPGRADE_FRESHNESS_HOURS: int = 24
    TEMP_PREFIX: str = "ubuntu_dev_setup_"

    @property
    def upgrade_stamp(self) -> Path:
        return self.STATE_DIR / "system-upgrade.stamp"

    @property
    def oh_my_zsh_dir(self) -> Path:
        return self.USER_HOME / ".oh-my-zsh"

    @property
    def ssh_key(self) -> Path:
        return self.USER_HOME / ".ssh" / "id_ed25519"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Config":
        env = os.environ if env is None else env
        username = env.get("USER") or env.get("LOGNAME") or getpass.getuser()
        home = Path(env.get("HOME") or Path.home())
        state_dir = Path(
            env.get("XDG_STATE_HOME") or home / ".local" / "state"
        ) / "ubuntu-dev-setup"
        log_file = Path(env.get("SETUP_LOG_FILE") or state_dir / "setup.log")
        zsh_custom = Path(env.get("ZSH_CUSTOM") or home / ".oh-my-zsh" / "custom")
        return cls(
            USERNAME=username,
            USER_HOME=home,
            PROFILE_PATH=home / ".zshrc",
            LOG_FILE=log_file,
            STATE_DIR=state_dir,
            ZSH_CUSTOM=zsh_custom,
            NVM_DIR=Path(env.get("NVM_DIR") or home / ".nvm"),
            MINICONDA_PREFIX=home / "miniconda3",
        )
