"""
Single entry point: run the full provisioning sequence once.

There are no flags or subcommands; everything is configured through the
environment toggles documented in ubuntu_dev_setup.toggles.
"""

import datetime
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from ubuntu_dev_setup import APP_NAME, LOGGER_NAME, probe as prober, toggles as toggle_set
from ubuntu_dev_setup.commands import CommandRunner
from ubuntu_dev_setup.config import Config
from ubuntu_dev_setup.errors import (
    EXIT_FATAL,
    EXIT_INTERRUPTED,
    PrivilegeError,
    ProvisionError,
    UnsupportedHostError,
)
from ubuntu_dev_setup.log import setup_logger
from ubuntu_dev_setup.orchestrator import Orchestrator, RunReport, RunState
from ubuntu_dev_setup.profile import ProfileMutator
from ubuntu_dev_setup.step import Step, StepContext
from ubuntu_dev_setup.steps import STEPS
from ubuntu_dev_setup.ui import (
    console,
    create_header,
    print_error,
    print_follow_ups,
    print_status_report,
    print_warning,
)


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def signal_handler(signum, frame):
    sig = signal.Signals(signum).name
    logging.getLogger(LOGGER_NAME).error(f"Interrupted by {sig}; stopping.")
    sys.exit(
        EXIT_INTERRUPTED
        if signum == signal.SIGINT
        else 143
        if signum == signal.SIGTERM
        else 128 + signum
    )


def install_signal_handlers() -> None:
    for s in (signal.SIGINT, signal.SIGTERM, signal.SIGHUP):
        signal.signal(s, signal_handler)


# ----------------------------------------------------------------
# Provisioning
# ----------------------------------------------------------------
def check_not_root(euid: int) -> None:
    if euid == 0:
        raise PrivilegeError(
            "Please run this program as a regular user (it will sudo as needed)."
        )


def provision(
    env: Optional[Mapping[str, str]] = None,
    config: Optional[Config] = None,
    runner: Optional[CommandRunner] = None,
    steps: Sequence[Step] = STEPS,
    euid: Optional[int] = None,
    os_release_path: Union[str, Path] = prober.OS_RELEASE_PATH,
    kernel_release_path: Union[str, Path] = prober.KERNEL_RELEASE_PATH,
) -> RunReport:
    """
    Validate the invocation, probe the host, load toggles, then run steps.

    PrivilegeError and UnsupportedHostError are raised before any step
    executes. Step failures never raise; they are recorded in the report.
    """
    env = dict(os.environ if env is None else env)
    logger = logging.getLogger(LOGGER_NAME)
    check_not_root(os.geteuid() if euid is None else euid)

    config = config or Config.from_env(env)
    runner = runner or CommandRunner(env)
    facts = prober.probe(
        env,
        os_release_path=os_release_path,
        kernel_release_path=kernel_release_path,
        which=lambda cmd: cmd if runner.command_exists(cmd) else None,
    )
    if "apt" not in facts.packaging_backends:
        raise UnsupportedHostError("apt-get was not found on PATH.")
    if "snap" not in facts.packaging_backends:
        logger.info("snap is not installed yet; the snapd step will add it.")
    toggles = toggle_set.load(env)
    if facts.is_virtualized_shell:
        print_warning("WSL detected; snap and GUI steps will be skipped.")
    logger.info(f"Provisioning {facts.os_name} as {config.USERNAME}")

    if not runner.validate_sudo():
        raise PrivilegeError("Could not validate sudo credentials.")

    profile = ProfileMutator(config.PROFILE_PATH, run_started=datetime.datetime.now())
    context = StepContext(
        runner=runner,
        facts=facts,
        toggles=toggles,
        profile=profile,
        config=config,
        logger=logger,
    )
    report = Orchestrator(steps, context).run()
    if profile.writes:
        note = f"{config.PROFILE_PATH} was updated"
        if profile.backup_path:
            note += f" (backup saved to {profile.backup_path})"
        report.follow_ups.append(note + ". Start a new terminal to load it.")
    return report


# ----------------------------------------------------------------
# Main Execution
# ----------------------------------------------------------------
def main() -> int:
    console.print(create_header(APP_NAME))
    install_signal_handlers()
    try:
        config = Config.from_env()
        setup_logger(config.LOG_FILE)
        report = provision(config=config)
    except ProvisionError as e:
        print_error(str(e))
        return e.exit_code
    except KeyboardInterrupt:
        print_warning("Setup interrupted by user.")
        return EXIT_INTERRUPTED
    except Exception:
        console.print_exception()
        return EXIT_FATAL

    print_status_report(report)
    print_follow_ups(
        report.follow_ups, report.elapsed, aborted=report.state is RunState.ABORTED
    )
    for failure in report.failures():
        logging.getLogger(LOGGER_NAME).debug(
            f"{failure.step_id}: {failure.outcome.value}: {failure.message}"
        )
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
