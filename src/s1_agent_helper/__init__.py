"""
S1 Agent Helper - SentinelOne agent download and install automation.

This package queries a SentinelOne management console for the available
agent packages, selects the newest package for the requested release
channel and CPU architecture, downloads it and drives the platform
installer with a site token.
"""

__version__ = "2.0.0"
