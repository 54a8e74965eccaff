"""
Package catalog tools for the agent helper MCP server.

Provides tools for listing the console's agent packages and previewing which
package an install would choose.
"""

import asyncio
import json
import logging
from typing import Optional

from mcp.types import TextContent

from ..server import mcp
from ..config import InstallOptions, resolve_config
from ..error_handling import AgentHelperError, validate_limit
from ..host.detect import describe_platform
from ..pipeline import InstallPipeline

logger = logging.getLogger(__name__)


def build_pipeline(
    options: InstallOptions,
    console_url: Optional[str] = None,
    api_key: Optional[str] = None,
    version_status: Optional[str] = None,
    site_token: Optional[str] = None,
    os_family: Optional[str] = None,
    architecture: Optional[str] = None,
) -> InstallPipeline:
    """Create a pipeline from the server's configuration plus tool arguments.

    Without os_family the platform is detected from the host running the
    server.
    """
    config = resolve_config(
        console_url=console_url,
        api_key=api_key,
        version_status=version_status,
        site_token=site_token,
    )
    platform = None
    if os_family:
        platform = describe_platform(os_family, architecture or "x86_64")
    return InstallPipeline(config, options, platform=platform)


def _error(payload: dict) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload, indent=2))]


@mcp.tool()
async def list_agent_packages(
    version_status: Optional[str] = None,
    os_family: Optional[str] = None,
    architecture: Optional[str] = None,
    limit: int = 20,
    compatible_only: bool = True,
    sort_by: str = "createdAt",
) -> list[TextContent]:
    """List agent packages published by the management console.

    Args:
        version_status: Release channel, GA or EA (defaults to configuration)
        os_family: Target family (debian, redhat, suse, fedora, windows) or a
                   distribution ID like 'ubuntu'. Defaults to this host.
        architecture: Target architecture (x86_64, aarch64, '32 bit')
        limit: Number of catalog entries to request (1-100, default 20)
        compatible_only: Only return packages matching channel and architecture
        sort_by: Console sort field: createdAt, version or majorVersion

    Returns:
        Package records with file name, status, version and download link.
    """
    try:
        limit = validate_limit(limit, min_val=1, max_val=100)
        options = InstallOptions.from_profile(
            "standard", catalog_limit=limit, catalog_sort=sort_by
        )
        options.validate()
        pipeline = build_pipeline(
            options,
            version_status=version_status,
            os_family=os_family,
            architecture=architecture,
        )
        try:
            records = await asyncio.to_thread(pipeline.list_packages, compatible_only)
        finally:
            pipeline.close()

        return [TextContent(
            type="text",
            text=json.dumps([record.to_dict() for record in records], indent=2)
        )]

    except ValueError as e:
        return _error({
            "error": str(e),
            "hint": "Check the channel, platform and limit values and the console configuration"
        })

    except AgentHelperError as e:
        return _error(e.to_dict())

    except Exception:
        logger.exception("Listing agent packages failed")
        return _error({
            "error": "Failed to list agent packages",
            "hint": "Check the management console connection and try again"
        })


@mcp.tool()
async def select_agent_package(
    version_status: Optional[str] = None,
    os_family: Optional[str] = None,
    architecture: Optional[str] = None,
    policy: str = "canonical-version",
    limit: int = 20,
    sort_by: str = "createdAt",
) -> list[TextContent]:
    """Show which agent package an install would download, without installing.

    Args:
        version_status: Release channel, GA or EA (defaults to configuration)
        os_family: Target family or distribution ID. Defaults to this host.
        architecture: Target architecture (x86_64, aarch64, '32 bit')
        policy: 'canonical-version' (highest dotted version) or
                'first-match' (first match in the console's order)
        limit: Number of catalog entries to consider (1-100, default 20)
        sort_by: Console sort field, which decides what 'first-match' picks

    Returns:
        The selected package with file name, version and download link.
    """
    try:
        limit = validate_limit(limit, min_val=1, max_val=100)
        options = InstallOptions.from_profile(
            "standard", selection_policy=policy, catalog_limit=limit, catalog_sort=sort_by
        )
        options.validate()
        pipeline = build_pipeline(
            options,
            version_status=version_status,
            os_family=os_family,
            architecture=architecture,
        )
        try:
            records = await asyncio.to_thread(pipeline.list_packages, False)
            selection = pipeline.select(records)
        finally:
            pipeline.close()

        return [TextContent(
            type="text",
            text=json.dumps({
                "package": selection.to_dict(),
                "platform": pipeline.platform.to_dict(),
                "catalog_entries": len(records),
            }, indent=2)
        )]

    except ValueError as e:
        return _error({
            "error": str(e),
            "hint": "Check the channel, platform, policy and limit values"
        })

    except AgentHelperError as e:
        return _error(e.to_dict())

    except Exception:
        logger.exception("Selecting an agent package failed")
        return _error({
            "error": "Failed to select an agent package",
            "hint": "Check the management console connection and try again"
        })
