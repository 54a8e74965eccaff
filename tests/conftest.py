"""Shared pytest fixtures for s1-agent-helper tests.

Unit tests need neither network access nor root: the management console is
replaced by an httpx.MockTransport and installer commands by a fake runner.
"""

import base64
import json

import pytest

from s1_agent_helper.config import HelperConfig, InstallOptions
from s1_agent_helper.host.detect import OSFamily, PlatformDescriptor
from s1_agent_helper.packages.models import ArchitectureTag

from tests.mocks import FakeRunner, MockManagementConsole, MockPackage

CONSOLE_URL = "https://usea1-test.sentinelone.net"

ENV_VARS = (
    "S1_CONFIG_PATH",
    "S1_MGMT_URL",
    "S1_API_KEY",
    "S1_SITE_TOKEN",
    "S1_VERSION_STATUS",
    "S1_AUTH_SCHEME",
    "S1_VERIFY_TLS",
    "S1_CATALOG_TIMEOUT",
    "S1_DOWNLOAD_TIMEOUT",
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (no external dependencies)")


def make_site_token(url: str = CONSOLE_URL, site_key: str = "0f1e2d3c4b5a69788796a5b4c3d2e1f0") -> str:
    """Build a site token the way the console encodes them."""
    payload = json.dumps({"url": url, "site_key": site_key})
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's S1_* variables out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def api_key() -> str:
    """An API key of the expected length (80 alphanumeric characters)."""
    return "A1b2C3d4" * 10


@pytest.fixture
def site_token() -> str:
    return make_site_token()


@pytest.fixture
def helper_config(api_key, site_token) -> HelperConfig:
    return HelperConfig(
        console_url=CONSOLE_URL,
        api_key=api_key,
        site_token=site_token,
        version_status="GA",
    )


@pytest.fixture
def debian_x86_64() -> PlatformDescriptor:
    return PlatformDescriptor.for_family(OSFamily.DEBIAN, ArchitectureTag.X86_64, "ubuntu")


@pytest.fixture
def redhat_x86_64() -> PlatformDescriptor:
    return PlatformDescriptor.for_family(OSFamily.REDHAT, ArchitectureTag.X86_64, "rocky")


@pytest.fixture
def windows_x86_64() -> PlatformDescriptor:
    return PlatformDescriptor.for_family(OSFamily.WINDOWS, ArchitectureTag.X86_64, "windows")


@pytest.fixture
def rpm_packages() -> list[MockPackage]:
    """Catalog for rpm hosts, newest first as the console sorts it."""
    return [
        MockPackage("SentinelAgent_linux_aarch64_v23_4_1_4.rpm", "ga-sp1", "23.4.1.4"),
        MockPackage("SentinelAgent_linux_x86_64_v23_4_1_4.rpm", "ga-sp1", "23.4.1.4"),
        MockPackage("SentinelAgent_linux_x86_64_v23_4_2_1.rpm", "ea", "23.4.2.1"),
        MockPackage("SentinelAgent_linux_x86_64_v23_3_2_1.rpm", "ga", "23.3.2.1"),
    ]


@pytest.fixture
def console(api_key, rpm_packages) -> MockManagementConsole:
    return MockManagementConsole(api_key=api_key, packages=rpm_packages)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def install_options(tmp_path) -> InstallOptions:
    return InstallOptions.from_profile("standard", staging_dir=tmp_path / "staging")
