"""
Agent install tool for the agent helper MCP server.

Installs the agent on the host running the server.
"""

import asyncio
import json
import logging
from typing import Optional

from mcp.types import TextContent

from ..server import mcp
from ..config import InstallOptions
from ..deployment.profiles import PROFILES
from ..error_handling import AgentHelperError, InstallStepError
from .packages import build_pipeline

logger = logging.getLogger(__name__)


@mcp.tool()
async def install_agent(
    profile: str = "standard",
    version_status: Optional[str] = None,
    site_token: Optional[str] = None,
    policy: Optional[str] = None,
    auto_reboot: Optional[str] = None,
    start_agent: Optional[bool] = None,
    keep_files: bool = False,
    dry_run: bool = True,
) -> list[TextContent]:
    """Download and install the agent on this host.

    Runs the full pipeline: catalog query, package selection, download,
    install, site token and service start. Defaults to a dry run; pass
    dry_run=False to change the host.

    Args:
        profile: Install profile (standard, golden-image, server-ordered)
        version_status: Release channel, GA or EA (defaults to configuration)
        site_token: Site token (defaults to configuration)
        policy: Override the profile's selection policy
        auto_reboot: 'True' lets a legacy Windows installer reboot the host
        start_agent: Override whether the agent is started after install
        keep_files: Keep the downloaded installer
        dry_run: Log the install commands without running them

    Returns:
        Install result with the steps run, the package and the platform.
    """
    try:
        if profile not in PROFILES:
            return [TextContent(
                type="text",
                text=json.dumps({
                    "error": f"Unknown profile '{profile}'",
                    "hint": f"Available profiles: {', '.join(PROFILES)}"
                })
            )]

        options = InstallOptions.from_profile(
            profile,
            selection_policy=policy,
            auto_reboot=auto_reboot,
            start_agent=start_agent,
            cleanup_staged_files=False if keep_files else None,
            dry_run=dry_run,
        )
        pipeline = build_pipeline(options, version_status=version_status, site_token=site_token)
        result = await asyncio.to_thread(pipeline.run)

        return [TextContent(
            type="text",
            text=json.dumps(result.to_dict(), indent=2)
        )]

    except ValueError as e:
        return [TextContent(
            type="text",
            text=json.dumps({
                "error": str(e),
                "hint": "Check the site token, channel and console configuration"
            })
        )]

    except InstallStepError as e:
        payload = e.to_dict()
        payload["command"] = " ".join(e.command)
        return [TextContent(type="text", text=json.dumps(payload, indent=2))]

    except AgentHelperError as e:
        return [TextContent(type="text", text=json.dumps(e.to_dict(), indent=2))]

    except Exception:
        logger.exception("Agent install failed")
        return [TextContent(
            type="text",
            text=json.dumps({
                "error": "Failed to install the agent",
                "hint": "Check the server logs for details"
            })
        )]
