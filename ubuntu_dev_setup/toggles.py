"""
Capability toggles read once from the process environment.

Every flag is parsed with the same truth table:

    unset or ""   -> Toggle.DEFAULT     (the documented default applies)
    "1"           -> Toggle.FORCED_ON
    anything else -> Toggle.FORCED_OFF  ("0", "true", "yes", " 1", ...)

Only the exact token "1" enables a flag. String settings fall back to their
default when unset or empty.
"""

import enum
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, NamedTuple, Optional

ENABLING_TOKEN = "1"


class Toggle(enum.Enum):
    FORCED_ON = "forced_on"
    FORCED_OFF = "forced_off"
    DEFAULT = "default"


class FlagSpec(NamedTuple):
    default: bool
    help: str


# ----------------------------------------------------------------
# Documented Flags and Settings
# ----------------------------------------------------------------
FLAGS: Dict[str, FlagSpec] = {
    "HEADLESS": FlagSpec(False, "skip GUI apps and snaps; auto-enabled on WSL"),
    "INSTALL_DEV_EXTRAS": FlagSpec(True, "ripgrep, fd, bat, jq, cmake, clang, gdb and friends"),
    "INSTALL_IDES": FlagSpec(True, "PyCharm, Sublime Text and GitKraken snaps"),
    "INSTALL_BROWSERS": FlagSpec(True, "Brave and Opera snaps"),
    "INSTALL_K8S": FlagSpec(True, "kubectl, helm, k9s, kubectx, kustomize"),
    "INSTALL_MINIKUBE": FlagSpec(True, "minikube from the upstream .deb"),
    "INSTALL_DEVOPS": FlagSpec(True, "KVM/QEMU virtualization, Ansible and Vagrant"),
    "INSTALL_NODE": FlagSpec(True, "nvm and the latest LTS Node.js"),
    "INSTALL_CONDA": FlagSpec(True, "Miniconda"),
    "INSTALL_42AI_ENV": FlagSpec(True, "conda env 42AI-$USER with the data science basics"),
    "INSTALL_PY_TOOLS": FlagSpec(True, "pipx plus poetry, pre-commit, black, ruff, pipenv, pyright"),
    "INSTALL_GIT_LFS": FlagSpec(True, "Git LFS"),
    "INSTALL_PSQL_CLIENT": FlagSpec(True, "PostgreSQL client"),
    "INSTALL_FONTS": FlagSpec(True, "Fira Code and JetBrains Mono"),
    "INSTALL_TERRAFORM": FlagSpec(True, "HashiCorp Terraform and Packer"),
    "INSTALL_AWS": FlagSpec(True, "AWS CLI v2"),
    "INSTALL_GCLOUD": FlagSpec(True, "Google Cloud CLI"),
    "INSTALL_AZURE": FlagSpec(True, "Azure CLI"),
    "INSTALL_SECURITY": FlagSpec(True, "security and binary analysis tools"),
    "INSTALL_DB_GUI": FlagSpec(True, "DBeaver, Insomnia, draw.io and Obsidian snaps"),
    "INSTALL_RUST": FlagSpec(True, "Rust toolchain via rustup"),
    "INSTALL_GO": FlagSpec(True, "Go from the Ubuntu archive"),
    "INSTALL_JAVA": FlagSpec(True, "OpenJDK 17, Maven and Gradle"),
    "INSTALL_IDEA": FlagSpec(True, "IntelliJ IDEA Community snap"),
    "INSTALL_ANDROID": FlagSpec(False, "Android Studio snap (opt-in)"),
    "INSTALL_DIRENV": FlagSpec(True, "direnv hook in ~/.zshrc"),
    "INSTALL_SSH_KEY": FlagSpec(True, "generate an ed25519 SSH key"),
    "INSTALL_UFW": FlagSpec(False, "enable UFW allowing OpenSSH (opt-in)"),
}

SETTINGS: Dict[str, str] = {
    "CONDA_PY_VERSION": "3.11",
    "ZSH_THEME": "robbyrussell",
}


def parse_flag(raw: Optional[str]) -> Toggle:
    if raw is None or raw == "":
        return Toggle.DEFAULT
    if raw == ENABLING_TOKEN:
        return Toggle.FORCED_ON
    return Toggle.FORCED_OFF


# ----------------------------------------------------------------
# Toggle Set
# ----------------------------------------------------------------
@dataclass(frozen=True)
class ToggleSet:
    flags: Mapping[str, Toggle]
    settings: Mapping[str, str]

    def state(self, name: str) -> Toggle:
        return self.flags[name]

    def enabled(self, name: str, default: Optional[bool] = None) -> bool:
        """
        Resolve a flag to a boolean.

        A forced value always wins. Otherwise default is used when given,
        falling back to the flag's documented default.
        """
        state = self.flags[name]
        if state is Toggle.FORCED_ON:
            return True
        if state is Toggle.FORCED_OFF:
            return False
        return FLAGS[name].default if default is None else default

    def value(self, name: str) -> str:
        return self.settings[name]


def load(env: Optional[Mapping[str, str]] = None) -> ToggleSet:
    """Read every documented flag and setting from env exactly once."""
    env = os.environ if env is None else env
    flags = {name: parse_flag(env.get(name)) for name in FLAGS}
    settings = {
        name: env.get(name) or default for name, default in SETTINGS.items()
    }
    return ToggleSet(
        flags=MappingProxyType(flags), settings=MappingProxyType(settings)
    )
