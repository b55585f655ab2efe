"""
Shared fixtures. FakeRunner stands in for CommandRunner: it records every
command and simulates just enough of dpkg, apt and snap for preconditions
to observe what earlier actions installed.
"""

import datetime
import logging
import subprocess

import pytest

from ubuntu_dev_setup import LOGGER_NAME
from ubuntu_dev_setup.commands import CommandRunner
from ubuntu_dev_setup.config import Config
from ubuntu_dev_setup.probe import HostFacts, OsFamily
from ubuntu_dev_setup.profile import ProfileMutator
from ubuntu_dev_setup.step import StepContext
from ubuntu_dev_setup.toggles import load


class Everything(set):
    """A set that contains every item: a host where everything is installed."""

    def __contains__(self, item):
        return True


class FakeRunner(CommandRunner):
    def __init__(self, commands=(), packages=(), snaps=(), fail=(), outputs=None):
        super().__init__(env={"PATH": "/usr/bin:/bin"})
        self.commands = commands if isinstance(commands, Everything) else set(commands)
        self.packages = packages if isinstance(packages, Everything) else set(packages)
        self.snaps = snaps if isinstance(snaps, Everything) else set(snaps)
        self.fail = list(fail)
        # Substring of the command line -> stdout of that command.
        self.outputs = dict(outputs or {})
        self.calls = []

    def command_exists(self, cmd):
        return cmd in self.commands

    def fetch_text(self, url):
        self.calls.append(["fetch", url])
        return "#!/bin/sh\n"

    def run(self, cmd, capture_output=False, text=False, check=True, env=None, cwd=None, input=None):
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        returncode = self.returncode(cmd)
        if check and returncode:
            raise subprocess.CalledProcessError(returncode, cmd)
        line = " ".join(cmd)
        stdout = next((out for key, out in self.outputs.items() if key in line), "")
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")

    def returncode(self, cmd):
        line = " ".join(cmd)
        if any(pattern in line for pattern in self.fail):
            return 1
        if cmd[:2] == ["dpkg", "-s"]:
            return 0 if cmd[2] in self.packages else 1
        if cmd[:2] == ["snap", "list"]:
            return 0 if cmd[2] in self.snaps else 1
        if "apt-get" in cmd and "install" in cmd:
            args = cmd[cmd.index("install") + 1:]
            self.packages.update(arg for arg in args if not arg.startswith("-"))
        if "snap" in cmd and "install" in cmd:
            self.snaps.add(cmd[cmd.index("install") + 1])
        return 0

    def commands_matching(self, *tokens):
        return [call for call in self.calls if all(token in call for token in tokens)]


def make_facts(virtualized=False, headless=False, backends=("apt", "snap")):
    return HostFacts(
        os_family=OsFamily.SUPPORTED,
        is_virtualized_shell=virtualized,
        headless_requested=headless,
        packaging_backends=frozenset(backends),
        os_name="Ubuntu 24.04 LTS",
        codename="noble",
        kernel_release="6.8.0-generic",
    )


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "home" / "tester"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def config(home):
    return Config.from_env({"HOME": str(home), "USER": "tester"})


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def make_context(config, runner):
    def factory(env=None, facts=None, runner=runner, started=None):
        profile = ProfileMutator(
            config.PROFILE_PATH,
            run_started=started or datetime.datetime(2026, 1, 2, 3, 4, 5),
        )
        return StepContext(
            runner=runner,
            facts=facts or make_facts(),
            toggles=load(env or {}),
            profile=profile,
            config=config,
            logger=logging.getLogger(LOGGER_NAME),
        )

    return factory


@pytest.fixture
def os_release(tmp_path):
    def write(text):
        path = tmp_path / "os-release"
        path.write_text(text)
        return path

    return write


UBUNTU_OS_RELEASE = """\
PRETTY_NAME="Ubuntu 24.04 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
UBUNTU_CODENAME=noble
"""
