"""
Tests for the declared step catalog and individual step bodies.
"""

import json

import pytest

from ubuntu_dev_setup.orchestrator import Orchestrator
from ubuntu_dev_setup.step import Outcome
from ubuntu_dev_setup.steps import STEPS, containers, shell, system
from ubuntu_dev_setup.steps.common import apt_step
from ubuntu_dev_setup.steps.containers import DOCKER, DOCKER_PACKAGES
from ubuntu_dev_setup.steps.shell import (
    DIRENV_MARKER,
    PLUGINS_LINE,
    QOL_ALIASES_MARKER,
    SHELL_ALIASES,
    ZSH_PLUGINS,
    ZSH_PROFILE,
)
from ubuntu_dev_setup.steps.snaps import GUI_APPS, GUI_APPS_STEP, K8S_TOOLS
from ubuntu_dev_setup.steps.system import (
    DEBIAN_ALIASES_MARKER,
    DEV_EXTRAS,
    DEV_EXTRAS_PACKAGES,
    SYSTEM_UPDATE,
)
from ubuntu_dev_setup.steps.toolchains import CONDA_ENV, MINICONDA, NODE, RUST

from tests.conftest import Everything, FakeRunner, make_facts


def by_id(step_id):
    return next(step for step in STEPS if step.id == step_id)


class TestCatalog:
    def test_ids_are_unique(self):
        ids = [step.id for step in STEPS]
        assert len(ids) == len(set(ids))

    def test_order_starts_with_system_steps(self):
        assert [step.id for step in STEPS[:3]] == ["system_update", "base_cli", "dev_extras"]
        assert STEPS[-1].id == "ufw"

    def test_only_system_steps_are_fatal(self):
        assert {step.id for step in STEPS if step.fatal} == {"system_update", "base_cli"}

    def test_docker_is_not_gated(self):
        assert by_id("docker").toggle is None

    def test_opt_in_steps_default_off(self):
        assert by_id("ufw").default is False
        assert by_id("android_studio").default is False

    def test_graphical_steps(self):
        graphical = {step.id for step in STEPS if step.graphical}
        assert graphical == {
            "gui_apps", "ides", "browsers", "minikube", "db_gui",
            "intellij_idea", "android_studio",
        }

    def test_all_steps_skip_on_wsl_or_disabled_without_side_effects(self, runner, make_context):
        env = {flag: "0" for flag in ("INSTALL_NODE", "INSTALL_CONDA")}
        context = make_context(env=env, facts=make_facts(virtualized=True))
        steps = [step for step in STEPS if step.graphical or step.id in ("node", "miniconda", "snapd")]
        report = Orchestrator(steps, context).run()
        assert all(r.outcome is Outcome.SKIPPED_BY_TOGGLE for r in report.results)
        assert runner.calls == []


class TestAptSteps:
    def test_installs_only_missing(self, make_context):
        runner = FakeRunner(packages={"git"})
        step = apt_step("demo", "Demo", ["git", "jq"])
        Orchestrator([step], make_context(runner=runner)).run()
        installs = runner.commands_matching("apt-get", "install")
        assert len(installs) == 1
        assert installs[0][-1] == "jq"
        assert "git" not in installs[0][installs[0].index("install"):]

    def test_apt_runs_noninteractively(self, make_context):
        runner = FakeRunner()
        step = apt_step("demo", "Demo", ["jq"])
        Orchestrator([step], make_context(runner=runner)).run()
        install = runner.commands_matching("apt-get", "install")[0]
        assert install[:3] == ["sudo", "env", "DEBIAN_FRONTEND=noninteractive"]

    def test_satisfied_when_all_installed(self, make_context):
        runner = FakeRunner(packages={"jq"})
        step = apt_step("demo", "Demo", ["jq"])
        report = Orchestrator([step], make_context(runner=runner)).run()
        assert report.outcome_of("demo") is Outcome.SKIPPED_BY_PRECONDITION
        assert runner.commands_matching("apt-get") == []

    def test_failure_is_recoverable(self, make_context):
        runner = FakeRunner(fail=["apt-get install"])
        step = apt_step("demo", "Demo", ["jq"])
        report = Orchestrator([step], make_context(runner=runner)).run()
        assert report.outcome_of("demo") is Outcome.FAILED_RECOVERABLE

    def test_fatal_apt_failure_aborts(self, make_context):
        runner = FakeRunner(fail=["apt-get install"])
        steps = [apt_step("base", "Base", ["git"], fatal=True), apt_step("after", "After", ["jq"])]
        report = Orchestrator(steps, make_context(runner=runner)).run()
        assert report.outcome_of("base") is Outcome.FAILED_FATAL
        assert [r.step_id for r in report.results] == ["base"]


class TestSystemUpdate:
    def test_fresh_stamp_skips(self, config, make_context):
        config.upgrade_stamp.parent.mkdir(parents=True)
        config.upgrade_stamp.touch()
        runner = FakeRunner()
        report = Orchestrator([SYSTEM_UPDATE], make_context(runner=runner)).run()
        assert report.outcome_of("system_update") is Outcome.SKIPPED_BY_PRECONDITION
        assert runner.calls == []

    def test_upgrade_writes_stamp(self, config, make_context):
        runner = FakeRunner()
        report = Orchestrator([SYSTEM_UPDATE], make_context(runner=runner)).run()
        assert report.outcome_of("system_update") is Outcome.SUCCESS
        assert runner.commands_matching("apt-get", "full-upgrade")
        assert config.upgrade_stamp.is_file()


class TestDevExtras:
    def test_second_run_is_satisfied(self, make_context):
        runner = FakeRunner()
        first = Orchestrator([DEV_EXTRAS], make_context(runner=runner)).run()
        second_context = make_context(runner=runner)
        second = Orchestrator([DEV_EXTRAS], second_context).run()
        assert first.outcome_of("dev_extras") is Outcome.SUCCESS
        assert second.outcome_of("dev_extras") is Outcome.SKIPPED_BY_PRECONDITION
        assert second_context.profile.read().count(DEBIAN_ALIASES_MARKER) == 1
        assert runner.packages >= set(DEV_EXTRAS_PACKAGES)

    def test_disabled(self, make_context):
        runner = FakeRunner()
        report = Orchestrator(
            [DEV_EXTRAS], make_context(env={"INSTALL_DEV_EXTRAS": "0"}, runner=runner)
        ).run()
        assert report.outcome_of("dev_extras") is Outcome.SKIPPED_BY_TOGGLE
        assert runner.calls == []


class TestSnapBundles:
    def test_optional_snap_failure_is_tolerated(self, make_context):
        runner = FakeRunner(fail=["snap install termius-app"])
        report = Orchestrator([GUI_APPS_STEP], make_context(runner=runner)).run()
        assert report.outcome_of("gui_apps") is Outcome.SUCCESS
        assert "code" in runner.snaps
        assert "termius-app" not in runner.snaps

    def test_required_snap_failure_fails_step(self, make_context):
        runner = FakeRunner(fail=["snap install postman"])
        report = Orchestrator([GUI_APPS_STEP], make_context(runner=runner)).run()
        assert report.outcome_of("gui_apps") is Outcome.FAILED_RECOVERABLE

    def test_classic_flag(self, make_context):
        runner = FakeRunner()
        Orchestrator([GUI_APPS_STEP], make_context(runner=runner)).run()
        assert runner.commands_matching("install", "code")[0][-1] == "--classic"
        assert "--classic" not in runner.commands_matching("install", "postman")[0]

    def test_satisfied_without_optional_snaps(self, make_context):
        installed = {name for name, _ in GUI_APPS} - {"termius-app", "gutenprint-printer-app"}
        runner = FakeRunner(snaps=installed)
        report = Orchestrator([GUI_APPS_STEP], make_context(runner=runner)).run()
        assert report.outcome_of("gui_apps") is Outcome.SKIPPED_BY_PRECONDITION

    def test_headless_skips_gui(self, make_context):
        runner = FakeRunner()
        report = Orchestrator(
            [GUI_APPS_STEP], make_context(runner=runner, facts=make_facts(headless=True))
        ).run()
        assert report.outcome_of("gui_apps") is Outcome.SKIPPED_BY_TOGGLE
        assert runner.calls == []


class TestKubernetes:
    def test_wsl_uses_apt_kubectl(self, make_context):
        runner = FakeRunner()
        Orchestrator([K8S_TOOLS], make_context(runner=runner, facts=make_facts(virtualized=True))).run()
        assert runner.commands_matching("snap", "install") == []
        assert runner.commands_matching("apt-get", "install")[0][-1] == "kubectl"

    def test_native_uses_snaps(self, make_context):
        runner = FakeRunner(fail=["snap install k9s", "kubectx"])
        report = Orchestrator([K8S_TOOLS], make_context(runner=runner)).run()
        assert report.outcome_of("k8s_tools") is Outcome.SUCCESS
        assert {"kubectl", "helm"} <= runner.snaps


class TestDocker:
    def test_installs_from_vendor_repo(self, make_context):
        runner = FakeRunner(packages={"docker.io"})
        report = Orchestrator([DOCKER], make_context(runner=runner)).run()
        assert report.outcome_of("docker") is Outcome.SUCCESS
        assert runner.commands_matching("apt-get", "remove", "docker.io")
        assert runner.commands_matching("tee", "/etc/apt/sources.list.d/docker.list")
        assert runner.packages >= set(DOCKER_PACKAGES)
        assert runner.commands_matching("usermod", "-aG", "docker", "tester")
        assert report.follow_ups == [DOCKER.follow_up]

    def test_runs_even_with_everything_disabled(self, make_context):
        env = {"INSTALL_DEVOPS": "0", "INSTALL_K8S": "0"}
        runner = FakeRunner()
        report = Orchestrator([DOCKER], make_context(env=env, runner=runner)).run()
        assert report.outcome_of("docker") is not Outcome.SKIPPED_BY_TOGGLE


class TestToolchains:
    def test_node_disabled_has_no_side_effects(self, home, make_context):
        runner = FakeRunner()
        report = Orchestrator([NODE], make_context(env={"INSTALL_NODE": "0"}, runner=runner)).run()
        assert report.outcome_of("node") is Outcome.SKIPPED_BY_TOGGLE
        assert runner.calls == []
        assert not (home / ".nvm").exists()

    def test_node_installs_nvm_then_lts(self, make_context):
        runner = FakeRunner()
        Orchestrator([NODE], make_context(runner=runner)).run()
        assert runner.calls[0][0] == "fetch"
        assert runner.calls[1] == ["bash"]
        assert "nvm install --lts" in runner.calls[-1][-1]

    def test_conda_env_without_conda_is_recoverable(self, make_context):
        runner = FakeRunner()
        context = make_context(runner=runner)
        context.runner.env["PATH"] = ""
        report = Orchestrator([CONDA_ENV], context).run()
        assert report.outcome_of("conda_env") is Outcome.FAILED_RECOVERABLE

    def test_conda_opt_out_also_skips_env(self, config, make_context):
        conda = config.MINICONDA_PREFIX / "bin" / "conda"
        conda.parent.mkdir(parents=True)
        conda.touch()
        runner = FakeRunner()
        context = make_context(env={"INSTALL_CONDA": "0"}, runner=runner)
        report = Orchestrator([MINICONDA, CONDA_ENV], context).run()
        assert report.outcome_of("miniconda") is Outcome.SKIPPED_BY_TOGGLE
        assert report.outcome_of("conda_env") is Outcome.SKIPPED_BY_TOGGLE
        assert runner.calls == []

    def test_rust_appends_cargo_env_once(self, home, make_context):
        rustup = home / ".cargo" / "bin" / "rustup"
        rustup.parent.mkdir(parents=True)
        rustup.touch()
        context = make_context()
        Orchestrator([RUST], context).run()
        report = Orchestrator([RUST], make_context()).run()
        assert report.outcome_of("rust") is Outcome.SKIPPED_BY_PRECONDITION
        assert context.profile.read().count('source "$HOME/.cargo/env"') == 1


class TestShellProfile:
    def test_theme_replaced_in_place(self, config, make_context):
        config.PROFILE_PATH.write_text(
            'export ZSH="$HOME/.oh-my-zsh"\nZSH_THEME="robbyrussell"\n'
            "plugins=(git)\nsource $ZSH/oh-my-zsh.sh\n"
        )
        context = make_context(env={"ZSH_THEME": "agnoster"})
        report = Orchestrator([ZSH_PROFILE], context).run()
        assert report.outcome_of("zsh_profile") is Outcome.SUCCESS
        lines = config.PROFILE_PATH.read_text().splitlines()
        assert lines == [
            'export ZSH="$HOME/.oh-my-zsh"',
            'ZSH_THEME="agnoster"',
            PLUGINS_LINE,
            "source $ZSH/oh-my-zsh.sh",
        ]
        assert context.profile.backup_path.read_text().count("robbyrussell") == 1

    def test_unterminated_profile_survives_two_runs(self, config, make_context):
        config.PROFILE_PATH.write_text("alias x='y'")
        Orchestrator([ZSH_PROFILE], make_context()).run()
        report = Orchestrator([ZSH_PROFILE], make_context()).run()
        assert report.outcome_of("zsh_profile") is Outcome.SKIPPED_BY_PRECONDITION
        lines = config.PROFILE_PATH.read_text().splitlines()
        assert lines[0] == "alias x='y'"
        assert lines.count('export ZSH="$HOME/.oh-my-zsh"') == 1

    def test_profile_second_run_is_satisfied(self, config, make_context):
        Orchestrator([ZSH_PROFILE, SHELL_ALIASES], make_context()).run()
        context = make_context()
        report = Orchestrator([ZSH_PROFILE, SHELL_ALIASES], context).run()
        assert all(r.outcome is Outcome.SKIPPED_BY_PRECONDITION for r in report.results)
        text = config.PROFILE_PATH.read_text()
        assert text.count(QOL_ALIASES_MARKER) == 1
        assert text.count("ZSH_THEME=") == 1

    def test_direnv_hook_gated(self, config, make_context):
        direnv = by_id("direnv_hook")
        report = Orchestrator([direnv], make_context(env={"INSTALL_DIRENV": "0"})).run()
        assert report.outcome_of("direnv_hook") is Outcome.SKIPPED_BY_TOGGLE
        assert not config.PROFILE_PATH.exists()

    def test_direnv_hook_appended(self, config, make_context):
        Orchestrator([by_id("direnv_hook")], make_context()).run()
        assert DIRENV_MARKER in config.PROFILE_PATH.read_text()

    @pytest.mark.parametrize("step_id", ["zsh_profile", "shell_aliases", "zsh_extras"])
    def test_unwritable_profile_aborts_run(self, config, make_context, step_id):
        config.PROFILE_PATH.mkdir()
        report = Orchestrator([by_id(step_id), by_id("ssh_key")], make_context()).run()
        assert report.outcome_of(step_id) is Outcome.FAILED_FATAL
        assert len(report.results) == 1


class TestFullCatalogRerun:
    @pytest.fixture
    def provisioned_host(self, config, tmp_path, monkeypatch):
        """A host on which every step's target state already holds."""
        config.upgrade_stamp.parent.mkdir(parents=True)
        config.upgrade_stamp.touch()
        for path in (
            config.NVM_DIR / "nvm.sh",
            config.NVM_DIR / "alias" / "default",
            config.MINICONDA_PREFIX / "bin" / "conda",
            config.USER_HOME / ".cargo" / "bin" / "rustup",
            config.ssh_key,
        ):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
        for name in ZSH_PLUGINS:
            (config.ZSH_CUSTOM / "plugins" / name).mkdir(parents=True)
        ufw_conf = tmp_path / "ufw.conf"
        ufw_conf.write_text("ENABLED=yes\n")
        monkeypatch.setattr(system, "UFW_CONF", ufw_conf)
        monkeypatch.setattr(system, "user_in_group", lambda user, group: True)
        monkeypatch.setattr(containers, "user_in_group", lambda user, group: True)
        monkeypatch.setattr(shell, "login_shell", lambda user: "/usr/bin/zsh")
        envs = {"envs": [str(config.MINICONDA_PREFIX / "envs" / "42AI-tester")]}

        def runner():
            return FakeRunner(
                commands=Everything(),
                packages=Everything(),
                snaps=Everything(),
                outputs={"env list": json.dumps(envs)},
            )

        return runner

    def test_second_run_changes_nothing(self, config, make_context, provisioned_host):
        env = {"INSTALL_UFW": "1", "INSTALL_ANDROID": "1"}
        first = Orchestrator(STEPS, make_context(env=env, runner=provisioned_host())).run()
        assert first.failures() == []

        runner = provisioned_host()
        context = make_context(env=env, runner=runner)
        second = Orchestrator(STEPS, context).run()
        assert len(second.results) == len(STEPS)
        assert {r.outcome for r in second.results} == {Outcome.SKIPPED_BY_PRECONDITION}
        assert context.profile.writes == 0
        assert runner.commands_matching("install") == []
        assert second.exit_code == 0
