import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

from webprovision.errors import AnsibleNotFoundError
from webprovision.main import app
from webprovision.pipeline import PipelineReport
from webprovision.preflight import CheckResult
from webprovision.runner import PlaybookResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo the logging setup each invocation performs."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def inventory_file(tmp_path):
    path = tmp_path / "inventory"
    path.write_text("[webservers]\n203.0.113.10\n")
    return path


@pytest.fixture
def mock_provision(mocker):
    return mocker.patch("webprovision.commands.run.provision")


def report(*results, skipped=()):
    return PipelineReport(run_id="abc123", results=list(results), skipped=list(skipped))


def ok(step):
    return PlaybookResult(step=step, playbook=f"{step}.yml", success=True, exit_code=0)


class TestSteps:
    def test_lists_steps(self):
        result = runner.invoke(app, ["steps"])

        assert result.exit_code == 0
        assert "configure-server" in result.stdout
        assert "install-certbot" in result.stdout


class TestConfig:
    def test_json_output_masks_password(self, provision_env):
        result = runner.invoke(app, ["--log-level", "ERROR", "config", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["app_main_domain"] == "example.com"
        assert data["app_user_password"] == "********"
        assert "s3cret-pass" not in result.stdout

    def test_invalid_config(self):
        result = runner.invoke(app, ["config"])

        assert result.exit_code == 2
        assert "APP_USERNAME" in result.stdout


class TestRun:
    def test_success(self, provision_env, inventory_file, mock_provision):
        mock_provision.return_value = report(ok("configure-server"), ok("install-nginx"))

        result = runner.invoke(app, ["run", "-i", str(inventory_file)])

        assert result.exit_code == 0, result.stdout
        assert "All steps completed" in result.stdout
        settings, inventory, steps = mock_provision.call_args.args
        assert settings.app_main_domain == "example.com"
        assert inventory.hosts == ["203.0.113.10"]
        assert [s.name for s in steps] == [
            "configure-server",
            "install-nginx",
            "install-docker",
            "install-certbot",
        ]

    def test_inventory_from_settings(self, provision_env, inventory_file, mock_provision):
        # INVENTORY_PATH defaults to ./inventory and tests run inside tmp_path
        mock_provision.return_value = report(ok("configure-server"))

        result = runner.invoke(app, ["run", "--only", "configure-server"])

        assert result.exit_code == 0, result.stdout
        assert mock_provision.call_args.args[1].hosts == ["203.0.113.10"]

    def test_failure_exits_1_and_shows_output(self, provision_env, inventory_file, mock_provision):
        failed = PlaybookResult(
            step="install-nginx",
            playbook="install-nginx.yml",
            success=False,
            exit_code=2,
            output="STDERR: [nginx] port 80 already in use",
        )
        mock_provision.return_value = report(
            ok("configure-server"), failed, skipped=["install-docker", "install-certbot"]
        )

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 1
        assert "Step install-nginx failed" in result.stdout
        assert "port 80 already in use" in result.stdout
        assert "skipped" in result.stdout

    def test_options_are_forwarded(self, provision_env, mock_provision):
        mock_provision.return_value = report(ok("install-docker"), ok("install-certbot"))

        result = runner.invoke(
            app,
            [
                "run",
                "--host",
                "198.51.100.4",
                "--start-at",
                "install-docker",
                "--check",
                "-vv",
                "--limit",
                "198.51.100.4",
                "--timeout",
                "90",
            ],
        )

        assert result.exit_code == 0, result.stdout
        args, kwargs = mock_provision.call_args
        assert args[1].hosts == ["198.51.100.4"]
        assert [s.name for s in args[2]] == ["install-docker", "install-certbot"]
        assert kwargs == {
            "check_mode": True,
            "verbosity": 2,
            "limit": "198.51.100.4",
            "timeout": 90,
        }

    def test_json_output(self, provision_env, inventory_file, mock_provision):
        mock_provision.return_value = report(ok("configure-server"))

        result = runner.invoke(app, ["--log-level", "ERROR", "run", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["run_id"] == "abc123"
        assert data["results"][0]["success"] is True

    def test_only_and_start_at_conflict(self, provision_env, inventory_file, mock_provision):
        result = runner.invoke(
            app, ["run", "--only", "install-nginx", "--start-at", "install-docker"]
        )

        assert result.exit_code == 2
        mock_provision.assert_not_called()

    def test_unknown_step(self, provision_env, inventory_file, mock_provision):
        result = runner.invoke(app, ["run", "--only", "install-apache"])

        assert result.exit_code == 2
        assert "Unknown step" in result.stdout

    def test_missing_inventory(self, provision_env, mock_provision):
        result = runner.invoke(app, ["run", "-i", "missing-inventory"])

        assert result.exit_code == 2
        assert "Inventory file not found" in result.stdout
        mock_provision.assert_not_called()

    def test_ansible_missing(self, provision_env, inventory_file, mocker):
        mocker.patch(
            "webprovision.pipeline.AnsibleRunner.run_playbook",
            side_effect=AnsibleNotFoundError(
                "Cannot execute 'ansible-playbook'"
            ),
        )

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 2
        assert "Cannot execute" in result.stdout


class TestCheck:
    def test_all_pass(self, provision_env, inventory_file, mocker):
        mocker.patch(
            "webprovision.commands.check.run_preflight",
            return_value=[CheckResult(name="ansible-playbook", passed=True, detail="core 2.16")],
        )

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0
        assert "Ready to provision" in result.stdout

    def test_failure(self, provision_env, inventory_file, mocker):
        preflight = mocker.patch(
            "webprovision.commands.check.run_preflight",
            return_value=[CheckResult(name="ssh root@203.0.113.10", passed=False)],
        )

        result = runner.invoke(app, ["check", "--no-ssh"])

        assert result.exit_code == 1
        assert preflight.call_args.kwargs["check_ssh"] is False


class TestExport:
    def test_writes_project(self, provision_env, inventory_file, tmp_path):
        dest = tmp_path / "server-setup"

        result = runner.invoke(app, ["export", str(dest)])

        assert result.exit_code == 0, result.stdout
        assert (dest / "configure-server.yml").is_file()
        assert (dest / "vars" / "default.yml").is_file()
        assert "ansible-playbook -i inventory install-certbot.yml" in result.stdout

    def test_refuses_non_empty_directory(self, provision_env, inventory_file, tmp_path):
        dest = tmp_path / "server-setup"
        dest.mkdir()
        (dest / "README").write_text("mine")

        result = runner.invoke(app, ["export", str(dest)])

        assert result.exit_code == 2
        assert "not empty" in result.stdout

        forced = runner.invoke(app, ["export", str(dest), "--force"])
        assert forced.exit_code == 0, forced.stdout

    def test_destination_is_a_file(self, provision_env, inventory_file, tmp_path):
        dest = tmp_path / "server-setup"
        dest.write_text("notes")

        result = runner.invoke(app, ["export", str(dest), "--force"])

        assert result.exit_code == 2
        assert "Not a directory" in result.stdout
        assert dest.read_text() == "notes"


def test_invalid_log_format():
    result = runner.invoke(app, ["--log-format", "xml", "steps"])

    assert result.exit_code != 0


def test_log_level_from_dotenv(tmp_path):
    (tmp_path / ".env").write_text("LOG_LEVEL=ERROR\n")

    result = runner.invoke(app, ["steps"])

    assert result.exit_code == 0
    assert logging.getLogger().level == logging.ERROR


def test_invalid_log_level_in_dotenv(tmp_path):
    (tmp_path / ".env").write_text("LOG_LEVEL=LOUD\n")

    result = runner.invoke(app, ["steps"])

    assert result.exit_code == 2
    assert "Invalid logging settings" in result.stdout
