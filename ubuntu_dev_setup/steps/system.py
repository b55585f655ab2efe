"""
System-level steps: apt upgrade, base packages, apt bundles, SSH key, UFW.
"""

import os
import socket
import time
from pathlib import Path

from ubuntu_dev_setup.packaging import apt_get, apt_install, missing_packages
from ubuntu_dev_setup.step import Step, StepContext
from ubuntu_dev_setup.steps.common import append_block, apt_step, user_in_group

UFW_CONF = Path("/etc/ufw/ufw.conf")

BASE_PACKAGES = [
    "build-essential", "curl", "wget", "git", "vim", "zsh", "unzip",
    "ca-certificates", "gnupg", "software-properties-common",
    "apt-transport-https", "lsb-release", "gnome-tweaks", "htop", "nmap",
    "gnome-system-monitor", "gnome-clocks", "synaptic",
]

DEV_EXTRAS_PACKAGES = [
    "ripgrep", "fd-find", "bat", "tree", "jq", "yq", "tmux", "stow", "zip",
    "unzip", "rsync", "net-tools", "dnsutils", "iproute2", "iputils-ping",
    "tldr", "direnv", "cmake", "clang", "gdb", "lldb", "valgrind", "ccache",
    "pkg-config", "ninja-build",
]
# Ubuntu ships fd and bat under different binary names.
DEBIAN_ALIASES_MARKER = "# --- Debian-friendly aliases ---"
DEBIAN_ALIASES = ["alias fd='fdfind'", "alias bat='batcat'"]

VIRTUALIZATION_PACKAGES = [
    "qemu-kvm", "libvirt-daemon-system", "libvirt-clients", "bridge-utils",
    "virt-manager",
]
VIRTUALIZATION_GROUPS = ("libvirt", "kvm")

SECURITY_PACKAGES = [
    "wireshark", "tcpdump", "nmap", "nikto", "sqlmap", "john", "hydra",
    "hashcat", "gobuster", "wfuzz", "binwalk", "radare2", "strace", "ltrace",
    "gdb",
]


# ----------------------------------------------------------------
# System Update
# ----------------------------------------------------------------
def upgrade_is_fresh(ctx: StepContext) -> bool:
    stamp = ctx.config.upgrade_stamp
    if not stamp.is_file():
        return False
    age = time.time() - stamp.stat().st_mtime
    return age < ctx.config.UPGRADE_FRESHNESS_HOURS * 3600


def update_system(ctx: StepContext) -> None:
    ctx.logger.info("Updating system packages...")
    apt_get(ctx.runner, "update", "-y")
    apt_get(ctx.runner, "full-upgrade", "-y")
    apt_get(ctx.runner, "--fix-broken", "install", "-y", check=False)
    apt_get(ctx.runner, "autoremove", "-y")
    apt_get(ctx.runner, "autoclean", "-y")
    stamp = ctx.config.upgrade_stamp
    stamp.parent.mkdir(parents=True, exist_ok=True)
    stamp.touch()


SYSTEM_UPDATE = Step(
    id="system_update",
    display_name="System update",
    precondition=upgrade_is_fresh,
    action=update_system,
    fatal=True,
)

BASE_CLI = apt_step(
    "base_cli", "Base CLI utilities", BASE_PACKAGES, fatal=True
)


# ----------------------------------------------------------------
# Developer Extras
# ----------------------------------------------------------------
def dev_extras_present(ctx: StepContext) -> bool:
    return ctx.profile.contains(DEBIAN_ALIASES_MARKER) and not missing_packages(
        ctx.runner, DEV_EXTRAS_PACKAGES
    )


def install_dev_extras(ctx: StepContext) -> None:
    apt_install(ctx.runner, DEV_EXTRAS_PACKAGES)
    append_block(ctx, DEBIAN_ALIASES_MARKER, DEBIAN_ALIASES)


DEV_EXTRAS = Step(
    id="dev_extras",
    display_name="Developer utilities",
    precondition=dev_extras_present,
    action=install_dev_extras,
    toggle="INSTALL_DEV_EXTRAS",
)


# ----------------------------------------------------------------
# Virtualization (KVM/QEMU)
# ----------------------------------------------------------------
def virtualization_present(ctx: StepContext) -> bool:
    user = ctx.config.USERNAME
    if missing_packages(ctx.runner, VIRTUALIZATION_PACKAGES):
        return False
    return all(user_in_group(user, group) for group in VIRTUALIZATION_GROUPS)


def install_virtualization(ctx: StepContext) -> None:
    apt_install(ctx.runner, VIRTUALIZATION_PACKAGES)
    result = ctx.runner.sudo(
        ["usermod", "-aG", ",".join(VIRTUALIZATION_GROUPS), ctx.config.USERNAME],
        check=False,
    )
    if result.returncode != 0:
        ctx.logger.warning(
            f"Could not add {ctx.config.USERNAME} to {', '.join(VIRTUALIZATION_GROUPS)}."
        )


VIRTUALIZATION = Step(
    id="virtualization",
    display_name="Virtualization tools (KVM/QEMU + virt-manager)",
    precondition=virtualization_present,
    action=install_virtualization,
    toggle="INSTALL_DEVOPS",
    follow_up="Log out and back in so libvirt/kvm group membership takes effect.",
)


# ----------------------------------------------------------------
# Plain apt Bundles
# ----------------------------------------------------------------
def git_lfs_present(ctx: StepContext) -> bool:
    return not missing_packages(ctx.runner, ["git-lfs"])


def install_git_lfs(ctx: StepContext) -> None:
    apt_install(ctx.runner, ["git-lfs"])
    if ctx.runner.sudo(["git", "lfs", "install", "--system"], check=False).returncode:
        ctx.logger.warning("git lfs install --system failed; run it manually.")


GIT_LFS = Step(
    id="git_lfs",
    display_name="Git LFS",
    precondition=git_lfs_present,
    action=install_git_lfs,
    toggle="INSTALL_GIT_LFS",
)

PSQL_CLIENT = apt_step(
    "psql_client", "PostgreSQL client", ["postgresql-client"],
    toggle="INSTALL_PSQL_CLIENT",
)
FONTS = apt_step(
    "fonts", "Developer fonts (Fira Code, JetBrains Mono)",
    ["fonts-firacode", "fonts-jetbrains-mono"], toggle="INSTALL_FONTS",
)
DEVOPS = apt_step(
    "devops", "DevOps tooling (Ansible, Vagrant)", ["ansible", "vagrant"],
    toggle="INSTALL_DEVOPS",
)
SECURITY_TOOLS = apt_step(
    "security_tools", "Security & analysis tools", SECURITY_PACKAGES,
    toggle="INSTALL_SECURITY",
)
GO = apt_step("go", "Go (golang-go)", ["golang-go"], toggle="INSTALL_GO")
JAVA = apt_step(
    "java", "Java (OpenJDK 17, Maven, Gradle)",
    ["openjdk-17-jdk", "maven", "gradle"], toggle="INSTALL_JAVA",
)


# ----------------------------------------------------------------
# SSH Key
# ----------------------------------------------------------------
def ssh_key_present(ctx: StepContext) -> bool:
    return ctx.config.ssh_key.exists()


def generate_ssh_key(ctx: StepContext) -> None:
    key = ctx.config.ssh_key
    key.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    os.chmod(key.parent, 0o700)
    comment = f"{ctx.config.USERNAME}@{socket.gethostname()}"
    ctx.logger.info("Generating SSH key (ed25519)...")
    ctx.runner.run(
        ["ssh-keygen", "-t", "ed25519", "-N", "", "-C", comment, "-f", str(key)]
    )
    os.chmod(key, 0o600)
    os.chmod(key.with_name(key.name + ".pub"), 0o644)


SSH_KEY = Step(
    id="ssh_key",
    display_name="SSH key",
    precondition=ssh_key_present,
    action=generate_ssh_key,
    toggle="INSTALL_SSH_KEY",
    follow_up="Your new SSH public key is at ~/.ssh/id_ed25519.pub.",
)


# ----------------------------------------------------------------
# UFW Firewall
# ----------------------------------------------------------------
def ufw_enabled(ctx: StepContext) -> bool:
    try:
        lines = UFW_CONF.read_text().splitlines()
    except OSError:
        return False
    return any(line.strip().replace('"', "") == "ENABLED=yes" for line in lines)


def setup_ufw(ctx: StepContext) -> None:
    apt_install(ctx.runner, ["ufw"])
    ctx.runner.sudo(["ufw", "allow", "OpenSSH"])
    ctx.runner.sudo(["ufw", "--force", "enable"])


UFW = Step(
    id="ufw",
    display_name="UFW firewall",
    precondition=ufw_enabled,
    action=setup_ufw,
    toggle="INSTALL_UFW",
)
