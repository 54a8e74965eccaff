"""Tests for the end-to-end install pipeline."""

import signal
from unittest.mock import patch

import pytest
from pytest_check import check

from s1_agent_helper.config import HelperConfig, InstallOptions
from s1_agent_helper.deployment.profiles import InstallState
from s1_agent_helper.error_handling import (
    CatalogAuthenticationError,
    InstallCancelled,
    InstallStepError,
    PackageSelectionError,
)
from s1_agent_helper.pipeline import CancellationToken, InstallPipeline, cancel_on_signals

from tests.mocks import FakeRunner, MockManagementConsole, MockPackage

SENTINELCTL = "/opt/sentinelone/bin/sentinelctl"


def make_pipeline(config, options, platform, console, runner, **kwargs) -> InstallPipeline:
    return InstallPipeline(
        config,
        options,
        platform=platform,
        transport=console.transport,
        runner=runner,
        **kwargs,
    )


@pytest.mark.unit
class TestInstallPipeline:
    """Tests for InstallPipeline.run."""

    def test_successful_install(
        self, helper_config, install_options, redhat_x86_64, console, runner, site_token
    ):
        pipeline = make_pipeline(helper_config, install_options, redhat_x86_64, console, runner)

        result = pipeline.run()

        assert result.success
        assert result.state is InstallState.STARTED
        staged = install_options.staging_dir / "SentinelAgent_linux_x86_64_v23_4_1_4.rpm"
        assert runner.commands == [
            ["rpm", "-i", "--nodigest", str(staged)],
            [SENTINELCTL, "management", "token", "set", site_token],
            [SENTINELCTL, "control", "start"],
        ]
        with check:
            assert result.details["package"]["version"] == "23.4.1.4"
        with check:
            assert result.details["platform"]["os_family"] == "redhat"
        with check:
            assert result.details["staged_file_removed"] is True
        assert not staged.exists()
        assert len(console.catalog_requests) == 1
        assert len(console.download_requests) == 1

    def test_query_matches_platform(self, helper_config, install_options, debian_x86_64, api_key, runner):
        console = MockManagementConsole(
            api_key=api_key,
            packages=[MockPackage("SentinelAgent_linux_x86_64_v23_4_1_4.deb", "ga", "23.4.1.4")],
        )
        options = InstallOptions.from_profile(
            "standard",
            staging_dir=install_options.staging_dir,
            catalog_limit=10,
            catalog_sort="version",
        )

        make_pipeline(helper_config, options, debian_x86_64, console, runner).run()

        params = console.catalog_requests[0].url.params
        assert params["fileExtension"] == ".deb"
        assert params["platformTypes"] == "linux"
        assert params["limit"] == "10"
        assert params["sortBy"] == "version"
        assert runner.commands[0][:2] == ["dpkg", "-i"]

    def test_short_api_key_fails_before_network(
        self, helper_config, install_options, redhat_x86_64, console, runner, api_key
    ):
        config = helper_config.with_overrides(api_key=api_key[:79])
        pipeline = make_pipeline(config, install_options, redhat_x86_64, console, runner)

        with pytest.raises(ValueError):
            pipeline.run()

        assert console.requests == []
        assert runner.commands == []

    def test_auth_error_stops_before_selection(
        self, helper_config, install_options, redhat_x86_64, api_key, rpm_packages, runner
    ):
        console = MockManagementConsole(api_key=api_key, packages=rpm_packages, auth_errors=True)
        pipeline = make_pipeline(helper_config, install_options, redhat_x86_64, console, runner)

        with patch("s1_agent_helper.pipeline.select_package") as select:
            with pytest.raises(CatalogAuthenticationError):
                pipeline.run()

        select.assert_not_called()
        assert console.download_requests == []
        assert runner.commands == []

    def test_empty_selection_no_download_or_install(
        self, helper_config, install_options, redhat_x86_64, api_key, runner
    ):
        console = MockManagementConsole(
            api_key=api_key,
            packages=[
                MockPackage("SentinelAgent_linux_aarch64_v23_4_1_4.rpm", "ga", "23.4.1.4"),
                MockPackage("SentinelAgent_linux_aarch64_v23_3_2_1.rpm", "ga", "23.3.2.1"),
            ],
        )
        pipeline = make_pipeline(helper_config, install_options, redhat_x86_64, console, runner)

        with pytest.raises(PackageSelectionError):
            pipeline.run()

        assert len(console.catalog_requests) == 1
        assert console.download_requests == []
        assert runner.commands == []

    def test_failed_install_cleans_up_and_skips_later_steps(
        self, helper_config, install_options, redhat_x86_64, console
    ):
        runner = FakeRunner(fail_on={"rpm": 1})
        pipeline = make_pipeline(helper_config, install_options, redhat_x86_64, console, runner)

        with pytest.raises(InstallStepError):
            pipeline.run()

        assert len(runner.commands) == 1
        assert list(install_options.staging_dir.iterdir()) == []

    def test_golden_image_profile(self, helper_config, tmp_path, redhat_x86_64, console, runner):
        options = InstallOptions.from_profile("golden-image", staging_dir=tmp_path)

        result = make_pipeline(helper_config, options, redhat_x86_64, console, runner).run()

        assert result.state is InstallState.TOKEN_SET
        assert all("control" not in cmd for cmd in runner.commands)
        assert result.details["profile"] == "golden-image"
        assert not (tmp_path / "SentinelAgent_linux_x86_64_v23_4_1_4.rpm").exists()

    def test_keep_staged_files(self, helper_config, tmp_path, redhat_x86_64, console, runner):
        options = InstallOptions.from_profile(
            "standard", staging_dir=tmp_path, cleanup_staged_files=False
        )

        result = make_pipeline(helper_config, options, redhat_x86_64, console, runner).run()

        assert result.details["staged_file_removed"] is False
        assert (tmp_path / "SentinelAgent_linux_x86_64_v23_4_1_4.rpm").exists()

    def test_server_ordered_profile_uses_first_match(
        self, helper_config, tmp_path, redhat_x86_64, api_key, runner
    ):
        console = MockManagementConsole(
            api_key=api_key,
            packages=[
                MockPackage("SentinelAgent_linux_x86_64_v23_3_2_1.rpm", "ga", "23.3.2.1"),
                MockPackage("SentinelAgent_linux_x86_64_v23_4_1_4.rpm", "ga-sp1", "23.4.1.4"),
            ],
        )
        options = InstallOptions.from_profile("server-ordered", staging_dir=tmp_path)

        result = make_pipeline(helper_config, options, redhat_x86_64, console, runner).run()

        assert result.details["package"]["version"] == "23.3.2.1"

    def test_dry_run_skips_download(self, helper_config, tmp_path, redhat_x86_64, console):
        options = InstallOptions.from_profile("standard", staging_dir=tmp_path, dry_run=True)
        pipeline = InstallPipeline(
            helper_config, options, platform=redhat_x86_64, transport=console.transport
        )

        with patch("s1_agent_helper.host.command.subprocess.run") as run:
            result = pipeline.run()

        run.assert_not_called()
        assert result.success
        assert result.details["dry_run"] is True
        assert console.download_requests == []

    def test_dry_run_keeps_existing_staged_file(
        self, helper_config, tmp_path, redhat_x86_64, console
    ):
        """A file already at the staging path survives a dry run."""
        existing = tmp_path / "SentinelAgent_linux_x86_64_v23_4_1_4.rpm"
        existing.write_bytes(b"kept from an earlier --keep-files run")
        options = InstallOptions.from_profile("standard", staging_dir=tmp_path, dry_run=True)
        pipeline = InstallPipeline(
            helper_config, options, platform=redhat_x86_64, transport=console.transport
        )

        with patch("s1_agent_helper.host.command.subprocess.run"):
            result = pipeline.run()

        assert result.details["staged_path"] == str(existing)
        assert result.details["staged_file_removed"] is False
        assert existing.read_bytes() == b"kept from an earlier --keep-files run"

    def test_cancel_before_catalog(
        self, helper_config, install_options, redhat_x86_64, console, runner
    ):
        token = CancellationToken()
        token.cancel()
        pipeline = make_pipeline(
            helper_config, install_options, redhat_x86_64, console, runner, cancel_token=token
        )

        with pytest.raises(InstallCancelled):
            pipeline.run()

        assert console.requests == []

    def test_cancel_during_install_stops_before_token(
        self, helper_config, install_options, redhat_x86_64, console
    ):
        token = CancellationToken()
        runner = FakeRunner(on_run=lambda argv: token.cancel())
        pipeline = make_pipeline(
            helper_config, install_options, redhat_x86_64, console, runner, cancel_token=token
        )

        with pytest.raises(InstallCancelled):
            pipeline.run()

        assert len(runner.commands) == 1
        assert runner.commands[0][0] == "rpm"
        assert list(install_options.staging_dir.iterdir()) == []


@pytest.mark.unit
class TestListPackages:
    """Tests for InstallPipeline.list_packages."""

    def test_compatible_only(self, helper_config, redhat_x86_64, console):
        pipeline = InstallPipeline(helper_config, platform=redhat_x86_64, transport=console.transport)

        records = pipeline.list_packages()

        assert [r.file_name for r in records] == [
            "SentinelAgent_linux_x86_64_v23_4_1_4.rpm",
            "SentinelAgent_linux_x86_64_v23_3_2_1.rpm",
        ]

    def test_full_catalog(self, helper_config, redhat_x86_64, console):
        pipeline = InstallPipeline(helper_config, platform=redhat_x86_64, transport=console.transport)
        assert len(pipeline.list_packages(compatible_only=False)) == 4

    def test_site_token_not_required(self, helper_config, redhat_x86_64, console):
        config = HelperConfig(
            console_url=helper_config.console_url,
            api_key=helper_config.api_key,
            site_token="",
            version_status="EA",
        )
        pipeline = InstallPipeline(config, platform=redhat_x86_64, transport=console.transport)

        records = pipeline.list_packages()

        assert [r.version for r in records] == ["23.4.2.1"]


@pytest.mark.unit
class TestCancellation:
    """Tests for CancellationToken and signal handling."""

    def test_token(self):
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled("download")
        token.cancel()
        with pytest.raises(InstallCancelled) as exc_info:
            token.raise_if_cancelled("download")
        assert "download" in str(exc_info.value)

    def test_signal_handlers_are_restored(self):
        before = signal.getsignal(signal.SIGTERM)
        token = CancellationToken()

        with cancel_on_signals(token):
            assert signal.getsignal(signal.SIGTERM) is not before
            handler = signal.getsignal(signal.SIGTERM)
            handler(signal.SIGTERM, None)

        assert token.cancelled
        assert signal.getsignal(signal.SIGTERM) is before
