"""Tests for the s1-agent-helper command line."""

import json

import pytest

from s1_agent_helper import cli
from s1_agent_helper.pipeline import InstallPipeline

from tests.conftest import CONSOLE_URL
from tests.mocks import MockManagementConsole


@pytest.fixture
def pipeline_factory(monkeypatch, redhat_x86_64, runner):
    """Route the CLI's pipeline through a mock console and fake runner."""
    created = []

    def install(console):
        def factory(config, options):
            pipeline = InstallPipeline(
                config,
                options,
                platform=redhat_x86_64,
                transport=console.transport,
                runner=runner,
            )
            created.append(pipeline)
            return pipeline

        monkeypatch.setattr(cli, "InstallPipeline", factory)
        return created

    return install


def positional(api_key, site_token, channel="GA"):
    return [CONSOLE_URL, api_key, site_token, channel]


@pytest.mark.unit
class TestMain:
    """Tests for cli.main."""

    def test_install_success(self, pipeline_factory, console, runner, api_key, site_token, tmp_path, capsys):
        pipeline_factory(console)

        code = cli.main(positional(api_key, site_token) + [
            "--skip-root-check", "--staging-dir", str(tmp_path),
        ])

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["success"] is True
        assert output["state"] == "started"
        assert len(runner.commands) == 3

    def test_short_api_key_exits_1_without_network(self, pipeline_factory, console, api_key, site_token):
        pipeline_factory(console)

        code = cli.main(positional(api_key[:79], site_token) + ["--skip-root-check"])

        assert code == 1
        assert console.requests == []

    def test_invalid_channel(self, pipeline_factory, console, api_key, site_token):
        pipeline_factory(console)
        assert cli.main(positional(api_key, site_token, "beta") + ["--skip-root-check"]) == 1
        assert console.requests == []

    def test_root_required(self, monkeypatch, pipeline_factory, console, runner, api_key, site_token):
        pipeline_factory(console)
        monkeypatch.setattr(cli, "is_privileged", lambda: False)

        assert cli.main(positional(api_key, site_token)) == 1
        assert console.requests == []
        assert runner.commands == []

    def test_dry_run_skips_root_check(self, monkeypatch, pipeline_factory, console, api_key, site_token, tmp_path):
        pipeline_factory(console)
        monkeypatch.setattr(cli, "is_privileged", lambda: False)

        code = cli.main(positional(api_key, site_token) + ["--dry-run", "--staging-dir", str(tmp_path)])

        assert code == 0
        assert console.download_requests == []

    def test_auth_failure_exit_code(self, pipeline_factory, api_key, site_token, rpm_packages):
        console = MockManagementConsole(api_key=api_key, packages=rpm_packages, auth_errors=True)
        pipeline_factory(console)

        assert cli.main(positional(api_key, site_token) + ["--skip-root-check"]) == 1
        assert console.download_requests == []

    def test_no_matching_package_exit_code(self, pipeline_factory, api_key, site_token, runner):
        console = MockManagementConsole(api_key=api_key, packages=[])
        pipeline_factory(console)

        assert cli.main(positional(api_key, site_token) + ["--skip-root-check"]) == 1
        assert runner.commands == []

    def test_list_only(self, pipeline_factory, console, runner, api_key, site_token, capsys):
        pipeline_factory(console)

        code = cli.main(positional(api_key, site_token) + ["--list-only"])

        assert code == 0
        records = json.loads(capsys.readouterr().out)
        assert [r["version"] for r in records] == ["23.4.1.4", "23.3.2.1"]
        assert console.download_requests == []
        assert runner.commands == []

    def test_no_start(self, pipeline_factory, console, runner, api_key, site_token, tmp_path):
        pipeline_factory(console)

        code = cli.main(positional(api_key, site_token) + [
            "--skip-root-check", "--no-start", "--staging-dir", str(tmp_path),
        ])

        assert code == 0
        assert all("control" not in cmd for cmd in runner.commands)

    def test_environment_configuration(self, monkeypatch, pipeline_factory, console, api_key, site_token, tmp_path):
        pipeline_factory(console)
        monkeypatch.setenv("S1_MGMT_URL", CONSOLE_URL)
        monkeypatch.setenv("S1_API_KEY", api_key)
        monkeypatch.setenv("S1_SITE_TOKEN", site_token)
        monkeypatch.setenv("S1_VERSION_STATUS", "ga")

        assert cli.main(["--skip-root-check", "--staging-dir", str(tmp_path)]) == 0
        assert len(console.catalog_requests) == 1

    def test_missing_config_file(self, pipeline_factory, console):
        pipeline_factory(console)
        assert cli.main(["--config", "/nonexistent/helper.yaml", "--skip-root-check"]) == 1


@pytest.mark.unit
class TestBuildOptions:
    """Tests for argument to option mapping."""

    def test_auto_reboot_flag(self):
        args = cli.build_parser().parse_args(["--auto-reboot"])
        assert cli.build_options(args).auto_reboot is True

    def test_auto_reboot_other_value(self):
        args = cli.build_parser().parse_args(["--auto-reboot", "yes"])
        assert cli.build_options(args).auto_reboot is False

    def test_profile_and_policy(self):
        args = cli.build_parser().parse_args(["--profile", "golden-image", "--policy", "first-match"])
        options = cli.build_options(args)
        assert options.start_agent is False
        assert options.selection_policy == "first-match"

    def test_keep_files_and_limits(self):
        args = cli.build_parser().parse_args(["--keep-files", "--limit", "50", "--download-retries", "5"])
        options = cli.build_options(args)
        assert options.cleanup_staged_files is False
        assert options.catalog_limit == 50
        assert options.download_retries == 5

    def test_sort_by(self):
        args = cli.build_parser().parse_args(["--sort-by", "majorVersion"])
        assert cli.build_options(args).catalog_sort == "majorVersion"
        assert cli.build_options(cli.build_parser().parse_args([])).catalog_sort == "createdAt"

    def test_sort_by_rejects_unknown_field(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--sort-by", "fileName"])

    def test_positional_overrides_environment(self, monkeypatch, api_key):
        monkeypatch.setenv("S1_MGMT_URL", "from-env")
        monkeypatch.setenv("S1_VERSION_STATUS", "EA")
        args = cli.build_parser().parse_args(["usea1-cli", api_key])

        config = cli.load_helper_config(args)

        assert config.console_url == "usea1-cli"
        assert config.api_key == api_key
        assert config.version_status == "EA"
