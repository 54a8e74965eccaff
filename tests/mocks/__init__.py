"""Mock implementations for s1-agent-helper tests.

Provides mock objects for:
- The management console package API (httpx.MockTransport)
- The installer command runner
"""

from .mock_console import FakeRunner, MockManagementConsole, MockPackage

__all__ = ["FakeRunner", "MockManagementConsole", "MockPackage"]
