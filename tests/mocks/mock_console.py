"""Mock management console and command runner for unit testing.

The console mock answers the agent package listing and download endpoints
through an httpx.MockTransport and records every request, so tests can
assert which network calls were (or were not) made.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from s1_agent_helper.client import PACKAGES_ENDPOINT
from s1_agent_helper.host.command import CommandResult

DOWNLOAD_PREFIX = "/web/api/v2.1/update/agent/download"


@dataclass
class MockPackage:
    """Represents one package in the mock catalog."""

    file_name: str
    status: str
    version: str
    major_version: str = ""
    package_id: str = ""
    created_at: str = "2024-01-01T00:00:00.000000Z"

    def __post_init__(self):
        if not self.major_version:
            self.major_version = ".".join(self.version.split(".")[:2])
        if not self.package_id:
            self.package_id = str(abs(hash(self.file_name + self.status)))

    def to_dict(self, base_url: str) -> Dict[str, Any]:
        """Convert to dictionary format matching the console API."""
        return {
            "id": self.package_id,
            "fileName": self.file_name,
            "status": self.status,
            "version": self.version,
            "majorVersion": self.major_version,
            "createdAt": self.created_at,
            "link": f"{base_url}{DOWNLOAD_PREFIX}/{self.package_id}",
            "packageType": "Agent",
            "fileSize": 1024,
        }


class MockManagementConsole:
    """Mock SentinelOne console serving the agent package endpoints.

    Args:
        api_key: The only API key the console accepts
        packages: Catalog entries, in the order the console returns them
        base_url: Console URL used for download links
        auth_errors: Return a 200 response carrying an 'errors' array
        download_body: Bytes served for every download
        download_failures: Number of downloads answered with failure_status
            before a download succeeds
        failure_status: Status used for failed downloads
        content_length: Override the Content-Length of downloads
    """

    def __init__(
        self,
        api_key: str,
        packages: Optional[Sequence[MockPackage]] = None,
        base_url: str = "https://usea1-test.sentinelone.net",
        auth_errors: bool = False,
        download_body: bytes = b"\x7fELF agent package payload",
        download_failures: int = 0,
        failure_status: int = 503,
        content_length: Optional[int] = None,
    ):
        self.api_key = api_key
        self.packages: List[MockPackage] = list(packages or [])
        self.base_url = base_url
        self.auth_errors = auth_errors
        self.download_body = download_body
        self.download_failures = download_failures
        self.failure_status = failure_status
        self.content_length = content_length
        self.requests: List[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def catalog_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == PACKAGES_ENDPOINT]

    @property
    def download_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.startswith(DOWNLOAD_PREFIX)]

    def _authorized(self, request: httpx.Request) -> bool:
        header = request.headers.get("Authorization", "")
        scheme, _, key = header.partition(" ")
        return scheme.lower() == "apitoken" and key == self.api_key

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if not self._authorized(request):
            return httpx.Response(
                401,
                json={"errors": [{"code": 4010010, "title": "Authentication Failed"}]},
            )

        if request.url.path == PACKAGES_ENDPOINT:
            return self._catalog(request)

        if request.url.path.startswith(DOWNLOAD_PREFIX):
            return self._download()

        return httpx.Response(404, json={"errors": [{"title": "Not Found"}]})

    def _catalog(self, request: httpx.Request) -> httpx.Response:
        if self.auth_errors:
            return httpx.Response(
                200,
                json={"errors": [{"code": 4010010, "title": "Authentication Failed"}]},
            )

        params = request.url.params
        extension = params.get("fileExtension")
        limit = int(params.get("limit", "10"))
        data = [
            p.to_dict(self.base_url) for p in self.packages
            if not extension or p.file_name.endswith(extension)
        ][:limit]
        return httpx.Response(
            200,
            json={"data": data, "pagination": {"totalItems": len(data), "nextCursor": None}},
        )

    def _download(self) -> httpx.Response:
        if self.download_failures > 0:
            self.download_failures -= 1
            return httpx.Response(self.failure_status)

        headers = {}
        if self.content_length is not None:
            headers["Content-Length"] = str(self.content_length)
        return httpx.Response(200, content=self.download_body, headers=headers)


@dataclass
class FakeRunner:
    """Stands in for CommandRunner; records commands instead of running them.

    Args:
        fail_on: Map of a command word (e.g. 'dpkg', 'token') to the exit
            status returned for commands containing it
    """

    fail_on: Dict[str, int] = field(default_factory=dict)
    commands: List[List[str]] = field(default_factory=list)
    on_run: Optional[Any] = None

    def run(self, argv, env=None, timeout=None) -> CommandResult:
        argv = [str(a) for a in argv]
        self.commands.append(argv)
        if self.on_run is not None:
            self.on_run(argv)
        for word, returncode in self.fail_on.items():
            if word in argv:
                return CommandResult(argv=argv, returncode=returncode, stdout="", stderr=f"{word} failed")
        return CommandResult(argv=argv, returncode=0, stdout="", stderr="")
