"""
The declared step catalog, in execution order.
"""

from typing import Tuple

from ubuntu_dev_setup.step import Step
from ubuntu_dev_setup.steps.cloud import AWS_CLI, AZURE_CLI, GCLOUD, GH_CLI, TERRAFORM
from ubuntu_dev_setup.steps.containers import DOCKER
from ubuntu_dev_setup.steps.shell import (
    DEFAULT_SHELL,
    DIRENV_HOOK,
    OH_MY_ZSH,
    SHELL_ALIASES,
    ZSH,
    ZSH_EXTRAS,
    ZSH_PLUGINS_STEP,
    ZSH_PROFILE,
)
from ubuntu_dev_setup.steps.snaps import (
    ANDROID_STUDIO,
    BROWSERS_STEP,
    DB_GUI_STEP,
    GUI_APPS_STEP,
    IDES_STEP,
    INTELLIJ_IDEA,
    K8S_TOOLS,
    MINIKUBE,
    SNAPD,
)
from ubuntu_dev_setup.steps.system import (
    BASE_CLI,
    DEV_EXTRAS,
    DEVOPS,
    FONTS,
    GIT_LFS,
    GO,
    JAVA,
    PSQL_CLIENT,
    SECURITY_TOOLS,
    SSH_KEY,
    SYSTEM_UPDATE,
    UFW,
    VIRTUALIZATION,
)
from ubuntu_dev_setup.steps.toolchains import (
    CONDA_ENV,
    MINICONDA,
    NODE,
    PYTHON_TOOLING,
    RUST,
)

STEPS: Tuple[Step, ...] = (
    SYSTEM_UPDATE,
    BASE_CLI,
    DEV_EXTRAS,
    SNAPD,
    GUI_APPS_STEP,
    IDES_STEP,
    BROWSERS_STEP,
    K8S_TOOLS,
    MINIKUBE,
    VIRTUALIZATION,
    DOCKER,
    NODE,
    MINICONDA,
    CONDA_ENV,
    PYTHON_TOOLING,
    GIT_LFS,
    PSQL_CLIENT,
    FONTS,
    TERRAFORM,
    AWS_CLI,
    GCLOUD,
    AZURE_CLI,
    DEVOPS,
    GH_CLI,
    SECURITY_TOOLS,
    DB_GUI_STEP,
    RUST,
    GO,
    JAVA,
    INTELLIJ_IDEA,
    ANDROID_STUDIO,
    ZSH,
    OH_MY_ZSH,
    ZSH_PLUGINS_STEP,
    ZSH_PROFILE,
    SHELL_ALIASES,
    DEFAULT_SHELL,
    ZSH_EXTRAS,
    DIRENV_HOOK,
    SSH_KEY,
    UFW,
)
