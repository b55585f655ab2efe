"""
Language toolchains: Node.js via nvm, Miniconda and a conda env, Python
tooling via pipx, Rust via rustup.
"""

import json
import platform
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from ubuntu_dev_setup.errors import RecoverableStepFailure
from ubuntu_dev_setup.packaging import apt_install, missing_packages
from ubuntu_dev_setup.step import Step, StepContext
from ubuntu_dev_setup.steps.common import user_binary

NVM_INSTALL_URL = "https://raw.githubusercontent.com/nvm-sh/nvm/v0.39.7/install.sh"
MINICONDA_URL = "https://repo.anaconda.com/miniconda/Miniconda3-latest-{platform}.sh"
RUSTUP_URL = "https://sh.rustup.rs"

CONDA_ENV_PACKAGES = ["jupyter", "numpy", "pandas", "pycodestyle"]

PY_TOOLING_PACKAGES = ["python3-pip", "python3-venv", "pipx"]
PIPX_TOOLS = ["poetry", "pre-commit", "black", "ruff", "pipenv", "pyright"]

CARGO_ENV_LINE = 'source "$HOME/.cargo/env"'


# ----------------------------------------------------------------
# Node.js (nvm)
# ----------------------------------------------------------------
def node_present(ctx: StepContext) -> bool:
    nvm_dir = ctx.config.NVM_DIR
    return (nvm_dir / "nvm.sh").is_file() and (nvm_dir / "alias" / "default").exists()


def install_node(ctx: StepContext) -> None:
    nvm_dir = ctx.config.NVM_DIR
    if not (nvm_dir / "nvm.sh").is_file():
        ctx.logger.info("Installing nvm (Node Version Manager)...")
        # The nvm installer edits the shell profile itself.
        ctx.profile.backup_once()
        ctx.runner.run_remote_script(
            NVM_INSTALL_URL, interpreter=["bash"], env={"NVM_DIR": str(nvm_dir)}
        )
    ctx.logger.info("Installing latest LTS Node.js...")
    script = (
        '. "$NVM_DIR/nvm.sh" && nvm install --lts && nvm alias default "lts/*" '
        "&& (corepack enable || true)"
    )
    ctx.runner.run(["bash", "-c", script], env={"NVM_DIR": str(nvm_dir)})


NODE = Step(
    id="node",
    display_name="Node.js (nvm + LTS)",
    precondition=node_present,
    action=install_node,
    toggle="INSTALL_NODE",
)


# ----------------------------------------------------------------
# Miniconda
# ----------------------------------------------------------------
def conda_executable(ctx: StepContext) -> Optional[str]:
    bundled = ctx.config.MINICONDA_PREFIX / "bin" / "conda"
    if bundled.exists():
        return str(bundled)
    return shutil.which("conda", path=ctx.runner.env.get("PATH"))


def conda_present(ctx: StepContext) -> bool:
    return conda_executable(ctx) is not None


def miniconda_platform() -> str:
    return "Linux-aarch64" if platform.machine() == "aarch64" else "Linux-x86_64"


def install_miniconda(ctx: StepContext) -> None:
    prefix = ctx.config.MINICONDA_PREFIX
    installer = f"Miniconda3-latest-{miniconda_platform()}.sh"
    with tempfile.TemporaryDirectory(prefix=ctx.config.TEMP_PREFIX) as tmp:
        script = ctx.runner.download(
            MINICONDA_URL.format(platform=miniconda_platform()), Path(tmp) / installer
        )
        # -u installs over an existing prefix.
        ctx.runner.run(["bash", str(script), "-b", "-u", "-p", str(prefix)])
    conda = str(prefix / "bin" / "conda")
    ctx.profile.backup_once()
    for shell in ("zsh", "bash"):
        if ctx.runner.run([conda, "init", shell], check=False).returncode != 0:
            ctx.logger.warning(f"conda init {shell} failed.")
    ctx.runner.run([conda, "config", "--set", "auto_activate_base", "false"])


MINICONDA = Step(
    id="miniconda",
    display_name="Miniconda",
    precondition=conda_present,
    action=install_miniconda,
    toggle="INSTALL_CONDA",
    follow_up="Open a new shell to load 'conda' into your PATH.",
)


# ----------------------------------------------------------------
# Conda Environment
# ----------------------------------------------------------------
def conda_env_name(ctx: StepContext) -> str:
    return f"42AI-{ctx.config.USERNAME}"


def conda_env_paths(ctx: StepContext, conda: str) -> List[str]:
    result = ctx.runner.run(
        [conda, "env", "list", "--json"], capture_output=True, text=True, check=False
    )
    if result.returncode != 0:
        return []
    try:
        return json.loads(result.stdout).get("envs", [])
    except ValueError:
        return []


def conda_env_present(ctx: StepContext) -> bool:
    conda = conda_executable(ctx)
    if conda is None:
        return False
    name = conda_env_name(ctx)
    return any(Path(path).name == name for path in conda_env_paths(ctx, conda))


def create_conda_env(ctx: StepContext) -> None:
    conda = conda_executable(ctx)
    if conda is None:
        raise RecoverableStepFailure("conda is not installed")
    name = conda_env_name(ctx)
    version = ctx.toggles.value("CONDA_PY_VERSION")
    ctx.logger.info(f"Creating conda env {name} (Python {version})...")
    ctx.runner.run([conda, "update", "-n", "base", "-c", "defaults", "conda", "-y"], check=False)
    ctx.runner.run([conda, "create", "-n", name, f"python={version}", "-y"])
    pip = [conda, "run", "-n", name, "python", "-m", "pip", "install"]
    ctx.runner.run(pip + ["-U", "pip"])
    ctx.runner.run(pip + CONDA_ENV_PACKAGES)


CONDA_ENV = Step(
    id="conda_env",
    display_name="Conda env 42AI-$USER",
    precondition=conda_env_present,
    action=create_conda_env,
    toggle="INSTALL_42AI_ENV",
    requires=("INSTALL_CONDA",),
)


# ----------------------------------------------------------------
# Python Tooling (pipx)
# ----------------------------------------------------------------
def python_tooling_present(ctx: StepContext) -> bool:
    if missing_packages(ctx.runner, PY_TOOLING_PACKAGES):
        return False
    return all(user_binary(ctx, tool) for tool in PIPX_TOOLS)


def install_python_tooling(ctx: StepContext) -> None:
    apt_install(ctx.runner, PY_TOOLING_PACKAGES)
    ctx.runner.run(["pipx", "ensurepath"], check=False)
    failed = []
    for tool in PIPX_TOOLS:
        if user_binary(ctx, tool):
            continue
        try:
            ctx.runner.run(["pipx", "install", tool])
        except subprocess.CalledProcessError:
            failed.append(tool)
    if failed:
        raise RecoverableStepFailure(f"pipx could not install: {', '.join(failed)}")


PYTHON_TOOLING = Step(
    id="python_tooling",
    display_name="Python tooling (pipx + linters/formatters)",
    precondition=python_tooling_present,
    action=install_python_tooling,
    toggle="INSTALL_PY_TOOLS",
)


# ----------------------------------------------------------------
# Rust (rustup)
# ----------------------------------------------------------------
def rustup_path(ctx: StepContext) -> Path:
    return ctx.config.USER_HOME / ".cargo" / "bin" / "rustup"


def rust_present(ctx: StepContext) -> bool:
    return rustup_path(ctx).exists() and ctx.profile.contains(CARGO_ENV_LINE)


def install_rust(ctx: StepContext) -> None:
    if not rustup_path(ctx).exists():
        ctx.logger.info("Installing Rust toolchain (rustup)...")
        ctx.runner.run_remote_script(RUSTUP_URL, interpreter=["sh"], args=["-y"])
    if not ctx.profile.contains(CARGO_ENV_LINE):
        ctx.profile.append(CARGO_ENV_LINE)


RUST = Step(
    id="rust",
    display_name="Rust toolchain (rustup)",
    precondition=rust_present,
    action=install_rust,
    toggle="INSTALL_RUST",
)
