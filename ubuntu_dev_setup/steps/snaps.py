"""
snapd and the snap-based application bundles, Kubernetes tooling and
minikube.
"""

import subprocess
import tempfile
from pathlib import Path

from ubuntu_dev_setup.packaging import (
    apt_get,
    apt_install,
    dpkg_architecture,
    snap_install_all,
    snaps_installed,
)
from ubuntu_dev_setup.step import Step, StepContext

GUI_APPS = [
    ("code", True),
    ("postman", False),
    ("slack", False),
    ("doctl", False),
    ("hugo", False),
    ("vlc", False),
    ("gimp", False),
    ("libreoffice", False),
    ("keepassxc", False),
    ("mysql-shell", False),
    ("termius-app", False),
    ("bw", False),
    ("fkill", False),
    ("tio", True),
    ("gutenprint-printer-app", False),
]
GUI_APPS_OPTIONAL = ("termius-app", "gutenprint-printer-app")

IDES = [("pycharm-community", True), ("sublime-text", True), ("gitkraken", True)]
IDES_OPTIONAL = ("gitkraken",)

BROWSERS = [("brave", False), ("opera", False)]

DB_GUI_APPS = [
    ("dbeaver-ce", False),
    ("insomnia", False),
    ("drawio", False),
    ("obsidian", True),
]

K8S_SNAPS = [
    ("kubectl", True),
    ("helm", True),
    ("k9s", False),
    ("kustomize", False),
]
K8S_OPTIONAL = ("helm", "k9s", "kustomize")

MINIKUBE_URL = "https://storage.googleapis.com/minikube/releases/latest/{package}"


def required(snaps, optional=()):
    return [name for name, _ in snaps if name not in optional]


def snap_bundle_step(
    id: str,
    display_name: str,
    snaps,
    optional=(),
    toggle=None,
) -> Step:
    """
    A graphical step installing a list of (name, classic) snaps. The
    precondition only looks at the required members, so a failing optional
    snap does not make every later run redo the bundle.
    """

    def precondition(ctx: StepContext) -> bool:
        return snaps_installed(ctx.runner, required(snaps, optional))

    def action(ctx: StepContext) -> None:
        failed = snap_install_all(ctx.runner, snaps, optional=optional)
        if failed:
            ctx.logger.warning(f"Optional snaps not installed: {', '.join(failed)}")

    return Step(
        id=id,
        display_name=display_name,
        precondition=precondition,
        action=action,
        toggle=toggle,
        graphical=True,
    )


# ----------------------------------------------------------------
# snapd
# ----------------------------------------------------------------
def snapd_ready(ctx: StepContext) -> bool:
    if not ctx.runner.command_exists("snap"):
        return False
    return ctx.runner.succeeds(["systemctl", "is-enabled", "--quiet", "snapd.socket"])


def setup_snapd(ctx: StepContext) -> None:
    if not ctx.runner.command_exists("snap"):
        ctx.logger.info("Installing snapd...")
        apt_install(ctx.runner, ["snapd"])
    ctx.runner.sudo(["systemctl", "enable", "--now", "snapd.socket"], check=False)
    ctx.runner.sudo(["ln", "-sf", "/var/lib/snapd/snap", "/snap"], check=False)


SNAPD = Step(
    id="snapd",
    display_name="snapd",
    precondition=snapd_ready,
    action=setup_snapd,
    native_only=True,
)


# ----------------------------------------------------------------
# GUI Bundles
# ----------------------------------------------------------------
GUI_APPS_STEP = snap_bundle_step(
    "gui_apps", "Common GUI apps (VS Code, Postman, Slack, ...)",
    GUI_APPS, optional=GUI_APPS_OPTIONAL,
)
IDES_STEP = snap_bundle_step(
    "ides", "IDEs (PyCharm, Sublime Text, GitKraken)",
    IDES, optional=IDES_OPTIONAL, toggle="INSTALL_IDES",
)
BROWSERS_STEP = snap_bundle_step(
    "browsers", "Browsers (Brave, Opera)", BROWSERS, toggle="INSTALL_BROWSERS"
)
DB_GUI_STEP = snap_bundle_step(
    "db_gui", "Database GUIs (DBeaver, Insomnia, draw.io, Obsidian)",
    DB_GUI_APPS, toggle="INSTALL_DB_GUI",
)
INTELLIJ_IDEA = snap_bundle_step(
    "intellij_idea", "IntelliJ IDEA Community",
    [("intellij-idea-community", True)], toggle="INSTALL_IDEA",
)
ANDROID_STUDIO = snap_bundle_step(
    "android_studio", "Android Studio",
    [("android-studio", True)], toggle="INSTALL_ANDROID",
)


# ----------------------------------------------------------------
# Kubernetes Tooling
# ----------------------------------------------------------------
def k8s_tools_present(ctx: StepContext) -> bool:
    if ctx.facts.is_virtualized_shell:
        return ctx.runner.command_exists("kubectl")
    return snaps_installed(ctx.runner, required(K8S_SNAPS, K8S_OPTIONAL))


def install_k8s_tools(ctx: StepContext) -> None:
    if ctx.facts.is_virtualized_shell:
        # snapd needs systemd, which WSL does not run by default.
        ctx.logger.warning("WSL detected; installing kubectl via apt.")
        apt_install(ctx.runner, ["kubectl"])
        return
    failed = snap_install_all(ctx.runner, K8S_SNAPS, optional=K8S_OPTIONAL)
    try:
        apt_install(ctx.runner, ["kubectx"])
    except subprocess.CalledProcessError as e:
        ctx.logger.warning(f"kubectx apt install failed (optional): {e}")
        failed.append("kubectx")
    if failed:
        ctx.logger.warning(f"Optional Kubernetes tools not installed: {', '.join(failed)}")


K8S_TOOLS = Step(
    id="k8s_tools",
    display_name="Kubernetes tooling (kubectl, helm, k9s, kubectx, kustomize)",
    precondition=k8s_tools_present,
    action=install_k8s_tools,
    toggle="INSTALL_K8S",
)


# ----------------------------------------------------------------
# minikube
# ----------------------------------------------------------------
def minikube_present(ctx: StepContext) -> bool:
    return ctx.runner.command_exists("minikube")


def install_minikube(ctx: StepContext) -> None:
    package = f"minikube_latest_{dpkg_architecture(ctx.runner)}.deb"
    with tempfile.TemporaryDirectory(prefix=ctx.config.TEMP_PREFIX) as tmp:
        deb = ctx.runner.download(MINIKUBE_URL.format(package=package), Path(tmp) / package)
        if ctx.runner.sudo(["dpkg", "-i", str(deb)], check=False).returncode != 0:
            ctx.logger.warning("dpkg -i failed; letting apt fix dependencies.")
            apt_get(ctx.runner, "-f", "install", "-y")


MINIKUBE = Step(
    id="minikube",
    display_name="minikube",
    precondition=minikube_present,
    action=install_minikube,
    toggle="INSTALL_MINIKUBE",
    graphical=True,
)
