"""
Building blocks shared by the step catalog modules.
"""

import grp
import pwd
from pathlib import Path
from typing import Optional, Sequence

from ubuntu_dev_setup.packaging import apt_install, missing_packages
from ubuntu_dev_setup.step import Step, StepContext


def apt_step(
    id: str,
    display_name: str,
    packages: Sequence[str],
    toggle: Optional[str] = None,
    fatal: bool = False,
    follow_up: Optional[str] = None,
) -> Step:
    """A step whose whole job is "these apt packages are installed"."""
    packages = tuple(packages)

    def precondition(ctx: StepContext) -> bool:
        return not missing_packages(ctx.runner, packages)

    def action(ctx: StepContext) -> None:
        apt_install(ctx.runner, packages)

    return Step(
        id=id,
        display_name=display_name,
        precondition=precondition,
        action=action,
        toggle=toggle,
        fatal=fatal,
        follow_up=follow_up,
    )


def user_in_group(username: str, group: str) -> bool:
    """Membership as recorded in the group database, not the current session."""
    try:
        entry = grp.getgrnam(group)
    except KeyError:
        return False
    if username in entry.gr_mem:
        return True
    try:
        return pwd.getpwnam(username).pw_gid == entry.gr_gid
    except KeyError:
        return False


def group_exists(group: str) -> bool:
    try:
        grp.getgrnam(group)
    except KeyError:
        return False
    return True


def codename(ctx: StepContext) -> str:
    if ctx.facts.codename:
        return ctx.facts.codename
    result = ctx.runner.run(["lsb_release", "-cs"], capture_output=True, text=True)
    return result.stdout.strip()


def user_binary(ctx: StepContext, name: str) -> bool:
    """name is on PATH or in ~/.local/bin (which may not be on PATH yet)."""
    local = Path(ctx.config.USER_HOME) / ".local" / "bin" / name
    return ctx.runner.command_exists(name) or local.exists()


def append_block(ctx: StepContext, marker: str, lines: Sequence[str]) -> None:
    """Append a marker-headed block unless the marker line is already present."""
    if ctx.profile.contains(marker):
        ctx.logger.info(f"Profile already has '{marker}'.")
        return
    ctx.profile.append("\n".join(["", marker] + list(lines)))
