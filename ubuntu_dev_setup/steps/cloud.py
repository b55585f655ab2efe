"""
Cloud and infrastructure CLIs: Terraform/Packer, AWS, Google Cloud, Azure,
GitHub.
"""

import platform
import tempfile
from pathlib import Path

from ubuntu_dev_setup.packaging import add_apt_source, apt_install, missing_packages
from ubuntu_dev_setup.step import Step, StepContext
from ubuntu_dev_setup.steps.common import codename

HASHICORP_KEY_URL = "https://apt.releases.hashicorp.com/gpg"
HASHICORP_REPO_URL = "https://apt.releases.hashicorp.com"
GCLOUD_KEY_URL = "https://packages.cloud.google.com/apt/doc/apt-key.gpg"
GCLOUD_REPO_URL = "https://packages.cloud.google.com/apt"
AZURE_KEY_URL = "https://packages.microsoft.com/keys/microsoft.asc"
AZURE_REPO_URL = "https://packages.microsoft.com/repos/azure-cli/"
GH_KEY_URL = "https://cli.github.com/packages/githubcli-archive-keyring.gpg"
GH_REPO_URL = "https://cli.github.com/packages"
AWS_CLI_URL = "https://awscli.amazonaws.com/awscli-exe-linux-{arch}.zip"


def repo_package_step(
    id: str,
    display_name: str,
    packages,
    source: dict,
    toggle=None,
) -> Step:
    """
    A step that registers one signed vendor apt repository and installs
    packages from it. source holds add_apt_source keyword arguments; a
    missing "suite" means the host's Ubuntu codename.
    """
    packages = tuple(packages)

    def precondition(ctx: StepContext) -> bool:
        return not missing_packages(ctx.runner, packages)

    def action(ctx: StepContext) -> None:
        options = dict(source)
        options.setdefault("suite", codename(ctx))
        add_apt_source(ctx.runner, id, **options)
        apt_install(ctx.runner, packages)

    return Step(
        id=id,
        display_name=display_name,
        precondition=precondition,
        action=action,
        toggle=toggle,
    )


TERRAFORM = repo_package_step(
    "terraform",
    "HashiCorp tools (Terraform, Packer)",
    ["terraform", "packer"],
    {"key_url": HASHICORP_KEY_URL, "repo_url": HASHICORP_REPO_URL},
    toggle="INSTALL_TERRAFORM",
)
GCLOUD = repo_package_step(
    "gcloud",
    "Google Cloud CLI",
    ["google-cloud-cli"],
    {
        "key_url": GCLOUD_KEY_URL,
        "repo_url": GCLOUD_REPO_URL,
        "suite": "cloud-sdk",
        "with_arch": False,
    },
    toggle="INSTALL_GCLOUD",
)
AZURE_CLI = repo_package_step(
    "azure_cli",
    "Azure CLI",
    ["azure-cli"],
    {"key_url": AZURE_KEY_URL, "repo_url": AZURE_REPO_URL},
    toggle="INSTALL_AZURE",
)


# ----------------------------------------------------------------
# GitHub CLI
# ----------------------------------------------------------------
def gh_present(ctx: StepContext) -> bool:
    return ctx.runner.command_exists("gh")


def install_gh(ctx: StepContext) -> None:
    add_apt_source(
        ctx.runner,
        "github-cli",
        key_url=GH_KEY_URL,
        repo_url=GH_REPO_URL,
        suite="stable",
        dearmor=False,
    )
    apt_install(ctx.runner, ["gh"])


GH_CLI = Step(
    id="gh_cli",
    display_name="GitHub CLI (gh)",
    precondition=gh_present,
    action=install_gh,
)


# ----------------------------------------------------------------
# AWS CLI v2
# ----------------------------------------------------------------
def aws_present(ctx: StepContext) -> bool:
    return ctx.runner.command_exists("aws")


def aws_arch() -> str:
    return "aarch64" if platform.machine() in ("aarch64", "arm64") else "x86_64"


def install_aws_cli(ctx: StepContext) -> None:
    url = AWS_CLI_URL.format(arch=aws_arch())
    with tempfile.TemporaryDirectory(prefix=ctx.config.TEMP_PREFIX) as tmp:
        archive = ctx.runner.download(url, Path(tmp) / Path(url).name)
        ctx.runner.run(["unzip", "-q", str(archive)], cwd=tmp)
        # --update installs over an existing copy.
        ctx.runner.sudo([str(Path(tmp) / "aws" / "install"), "--update"])


AWS_CLI = Step(
    id="aws_cli",
    display_name="AWS CLI v2",
    precondition=aws_present,
    action=install_aws_cli,
    toggle="INSTALL_AWS",
)
