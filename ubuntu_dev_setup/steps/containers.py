"""
Docker Engine from Docker's official apt repository. Always installed.
"""

from ubuntu_dev_setup.packaging import (
    add_apt_source,
    apt_get,
    apt_install,
    missing_packages,
    package_installed,
)
from ubuntu_dev_setup.step import Step, StepContext
from ubuntu_dev_setup.steps.common import codename, group_exists, user_in_group

DOCKER_KEY_URL = "https://download.docker.com/linux/ubuntu/gpg"
DOCKER_REPO_URL = "https://download.docker.com/linux/ubuntu"
DOCKER_PACKAGES = [
    "docker-ce", "docker-ce-cli", "containerd.io", "docker-buildx-plugin",
    "docker-compose-plugin",
]
# Distribution packages that conflict with Docker's own.
CONFLICTING_PACKAGES = [
    "docker.io", "docker-doc", "docker-compose", "docker-compose-v2",
    "podman-docker", "containerd", "runc",
]


def docker_present(ctx: StepContext) -> bool:
    if not ctx.runner.command_exists("docker"):
        return False
    if missing_packages(ctx.runner, DOCKER_PACKAGES):
        return False
    return user_in_group(ctx.config.USERNAME, "docker")


def install_docker(ctx: StepContext) -> None:
    conflicting = [
        pkg for pkg in CONFLICTING_PACKAGES if package_installed(ctx.runner, pkg)
    ]
    if conflicting:
        ctx.logger.info(f"Removing conflicting packages: {' '.join(conflicting)}")
        apt_get(ctx.runner, "remove", "-y", *conflicting, check=False)
    add_apt_source(
        ctx.runner,
        "docker",
        key_url=DOCKER_KEY_URL,
        repo_url=DOCKER_REPO_URL,
        suite=codename(ctx),
        component="stable",
    )
    apt_install(ctx.runner, DOCKER_PACKAGES)
    if not group_exists("docker"):
        ctx.runner.sudo(["groupadd", "docker"])
    ctx.runner.sudo(["usermod", "-aG", "docker", ctx.config.USERNAME])
    ctx.logger.info("Docker installed. Log out/in for group changes to apply.")


DOCKER = Step(
    id="docker",
    display_name="Docker Engine",
    precondition=docker_present,
    action=install_docker,
    follow_up="Log out and back in (or reboot) so the 'docker' group takes effect.",
)
