"""
Zsh, Oh My Zsh, plugins and the ~/.zshrc blocks.

Edit modes used on ~/.zshrc:
    replace: export ZSH=, ZSH_THEME=, plugins=
    append (guarded by a marker line): every alias/option block
"""

import os
import pwd

from ubuntu_dev_setup.errors import RecoverableStepFailure
from ubuntu_dev_setup.packaging import apt_install
from ubuntu_dev_setup.step import Step, StepContext
from ubuntu_dev_setup.steps.common import append_block

OH_MY_ZSH_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
ZSH_PLUGINS = {
    "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions",
    "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting.git",
}
PLUGINS_LINE = (
    "plugins=(git docker kubectl npm zsh-autosuggestions zsh-syntax-highlighting)"
)

DOCKER_ALIASES_MARKER = "# --- Docker helpers ---"
DOCKER_ALIASES = [
    "alias dockerstp='docker ps -aq | xargs -r docker stop'",
    "alias dockermc='docker ps -aq | xargs -r docker rm -f'",
    "alias dockermi='docker images -aq | xargs -r docker rmi -f'",
    "alias dockermvlm='docker volume ls -q | xargs -r docker volume rm'",
    "alias dockermnet='docker network ls -q | xargs -r docker network rm'",
    "alias dockercl='dockerstp; dockermc; dockermi; dockermvlm; dockermnet'",
]
QOL_ALIASES_MARKER = "# --- QoL aliases ---"
QOL_ALIASES = ["alias ll='ls -alF'", "alias gs='git status'", "alias k='kubectl'"]

ENV_MARKER = "# --- PATH & environment ---"
ENV_BLOCK = [
    'export PATH="$HOME/.local/bin:$PATH"',
    "export EDITOR=vim",
    "",
    "# --- History & shell options ---",
    "export HISTSIZE=100000",
    "export SAVEHIST=100000",
    "setopt INC_APPEND_HISTORY SHARE_HISTORY HIST_IGNORE_DUPS",
]
DIRENV_MARKER = "# direnv (if installed)"
DIRENV_BLOCK = ['command -v direnv >/dev/null && eval "$(direnv hook zsh)"']


def managed_lines(ctx: StepContext):
    """(pattern, line) pairs kept current with find-marker-and-replace."""
    theme = ctx.toggles.value("ZSH_THEME")
    return [
        (r"^export ZSH=", 'export ZSH="$HOME/.oh-my-zsh"'),
        (r"^ZSH_THEME=", f'ZSH_THEME="{theme}"'),
        (r"^plugins=", PLUGINS_LINE),
    ]


SOURCE_PATTERN = r"^source \$ZSH/oh-my-zsh\.sh"
SOURCE_LINE = "source $ZSH/oh-my-zsh.sh"


# ----------------------------------------------------------------
# Zsh and Oh My Zsh
# ----------------------------------------------------------------
def zsh_present(ctx: StepContext) -> bool:
    return ctx.runner.command_exists("zsh")


def install_zsh(ctx: StepContext) -> None:
    apt_install(ctx.runner, ["zsh"])


def oh_my_zsh_present(ctx: StepContext) -> bool:
    return ctx.config.oh_my_zsh_dir.is_dir()


def install_oh_my_zsh(ctx: StepContext) -> None:
    ctx.profile.backup_once()
    ctx.runner.run_remote_script(
        OH_MY_ZSH_URL,
        interpreter=["sh"],
        env={
            "RUNZSH": "no",
            "CHSH": "no",
            "KEEP_ZSHRC": "yes",
            "ZSH": str(ctx.config.oh_my_zsh_dir),
        },
    )


def plugins_present(ctx: StepContext) -> bool:
    plugins_dir = ctx.config.ZSH_CUSTOM / "plugins"
    return all((plugins_dir / name).is_dir() for name in ZSH_PLUGINS)


def clone_plugins(ctx: StepContext) -> None:
    plugins_dir = ctx.config.ZSH_CUSTOM / "plugins"
    plugins_dir.mkdir(parents=True, exist_ok=True)
    for name, url in ZSH_PLUGINS.items():
        target = plugins_dir / name
        if target.is_dir():
            ctx.logger.info(f"Plugin {name} already cloned.")
            continue
        ctx.runner.run(["git", "clone", "--depth=1", url, str(target)])


# ----------------------------------------------------------------
# ~/.zshrc
# ----------------------------------------------------------------
def zsh_profile_current(ctx: StepContext) -> bool:
    if not all(ctx.profile.line_is(p, line) for p, line in managed_lines(ctx)):
        return False
    return ctx.profile.has_line(SOURCE_PATTERN)


def write_zsh_profile(ctx: StepContext) -> None:
    for pattern, line in managed_lines(ctx):
        ctx.profile.replace_line(pattern, line)
    if not ctx.profile.has_line(SOURCE_PATTERN):
        ctx.profile.append(SOURCE_LINE)


def aliases_present(ctx: StepContext) -> bool:
    return ctx.profile.contains(DOCKER_ALIASES_MARKER) and ctx.profile.contains(
        QOL_ALIASES_MARKER
    )


def write_aliases(ctx: StepContext) -> None:
    append_block(ctx, DOCKER_ALIASES_MARKER, DOCKER_ALIASES)
    append_block(ctx, QOL_ALIASES_MARKER, QOL_ALIASES)


def zsh_extras_present(ctx: StepContext) -> bool:
    return ctx.profile.contains(ENV_MARKER)


def write_zsh_extras(ctx: StepContext) -> None:
    append_block(ctx, ENV_MARKER, ENV_BLOCK)


def direnv_hook_present(ctx: StepContext) -> bool:
    return ctx.profile.contains(DIRENV_MARKER)


def write_direnv_hook(ctx: StepContext) -> None:
    append_block(ctx, DIRENV_MARKER, DIRENV_BLOCK)


# ----------------------------------------------------------------
# Login Shell
# ----------------------------------------------------------------
def login_shell(username: str) -> str:
    try:
        return pwd.getpwnam(username).pw_shell
    except KeyError:
        return ""


def default_shell_is_zsh(ctx: StepContext) -> bool:
    return os.path.basename(login_shell(ctx.config.USERNAME)) == "zsh"


def set_default_shell(ctx: StepContext) -> None:
    zsh = next(
        (path for path in ("/usr/bin/zsh", "/bin/zsh") if os.path.exists(path)), None
    )
    if zsh is None:
        raise RecoverableStepFailure("zsh is not installed")
    ctx.logger.info("Changing default shell to zsh (you may be prompted for your password).")
    ctx.runner.run(["chsh", "-s", zsh])


# ----------------------------------------------------------------
# Declarations
# ----------------------------------------------------------------
ZSH = Step(
    id="zsh", display_name="Zsh", precondition=zsh_present, action=install_zsh
)
OH_MY_ZSH = Step(
    id="oh_my_zsh",
    display_name="Oh My Zsh",
    precondition=oh_my_zsh_present,
    action=install_oh_my_zsh,
)
ZSH_PLUGINS_STEP = Step(
    id="zsh_plugins",
    display_name="Zsh plugins (autosuggestions, syntax highlighting)",
    precondition=plugins_present,
    action=clone_plugins,
)
ZSH_PROFILE = Step(
    id="zsh_profile",
    display_name="~/.zshrc theme and plugins",
    precondition=zsh_profile_current,
    action=write_zsh_profile,
)
SHELL_ALIASES = Step(
    id="shell_aliases",
    display_name="Docker and QoL aliases",
    precondition=aliases_present,
    action=write_aliases,
)
DEFAULT_SHELL = Step(
    id="default_shell",
    display_name="Default shell",
    precondition=default_shell_is_zsh,
    action=set_default_shell,
    follow_up="Start a new terminal to use zsh.",
)
ZSH_EXTRAS = Step(
    id="zsh_extras",
    display_name="Zsh PATH, history and shell options",
    precondition=zsh_extras_present,
    action=write_zsh_extras,
)
DIRENV_HOOK = Step(
    id="direnv_hook",
    display_name="direnv hook",
    precondition=direnv_hook_present,
    action=write_direnv_hook,
    toggle="INSTALL_DIRENV",
)
