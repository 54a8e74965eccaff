"""
Command line entry point.

    s1-agent-helper [CONSOLE API_KEY SITE_TOKEN VERSION_STATUS] [options]

Positional arguments take precedence over values from --config or the
S1_* environment variables.
"""

import argparse
import json
import logging
import os
import sys
from typing import Optional

from . import __version__
from .config import HelperConfig, InstallOptions, resolve_config
from .deployment.profiles import PROFILES
from .error_handling import AgentHelperError
from .packages.models import CATALOG_SORT_FIELDS
from .packages.selector import SelectionPolicy
from .pipeline import InstallPipeline

logger = logging.getLogger("s1-agent-helper")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="s1-agent-helper",
        description="Download and install the SentinelOne agent from the management console.",
    )
    p.add_argument("console", nargs="?", help="Console URL or prefix (e.g. usea1-purple)")
    p.add_argument("api_key", nargs="?", help="Console API token")
    p.add_argument("site_token", nargs="?", help="Site token the agent registers with")
    p.add_argument("version_status", nargs="?", help="Release channel: GA or EA")

    p.add_argument("--config", default=None, help="YAML config file (overrides S1_CONFIG_PATH)")
    p.add_argument("--profile", default="standard", choices=sorted(PROFILES),
                   help="Install profile")
    p.add_argument("--policy", default=None, choices=[policy.value for policy in SelectionPolicy],
                   help="Package selection policy (default from the profile)")
    p.add_argument("--auto-reboot", nargs="?", const="True", default=None,
                   help="Let a legacy Windows installer reboot ('True' to enable)")
    p.add_argument("--no-start", action="store_true", help="Set the site token but do not start the agent")
    p.add_argument("--keep-files", action="store_true", help="Keep the downloaded installer")
    p.add_argument("--staging-dir", default=None, help="Directory to download the installer to")
    p.add_argument("--limit", type=int, default=None, help="Number of catalog entries to request")
    p.add_argument("--sort-by", default=None, choices=list(CATALOG_SORT_FIELDS),
                   help="Field the console sorts the catalog by (default createdAt)")
    p.add_argument("--download-retries", type=int, default=None, help="Download attempts")
    p.add_argument("--catalog-timeout", type=float, default=None, help="Catalog request timeout (seconds)")
    p.add_argument("--download-timeout", type=float, default=None, help="Download timeout (seconds)")
    p.add_argument("--auth-scheme", default=None, choices=["ApiToken", "APIToken"],
                   help="Authorization header scheme")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")
    p.add_argument("--skip-root-check", action="store_true", help="Do not require root/Administrator")
    p.add_argument("--list-only", action="store_true",
                   help="Print the matching catalog entries as JSON and exit")
    p.add_argument("--log-level", default="INFO",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def load_helper_config(args: argparse.Namespace) -> HelperConfig:
    """Merge the config file or environment with command line values."""
    return resolve_config(
        args.config,
        console_url=args.console,
        api_key=args.api_key,
        site_token=args.site_token,
        version_status=args.version_status,
        auth_scheme=args.auth_scheme,
        catalog_timeout=args.catalog_timeout,
        download_timeout=args.download_timeout,
    )


def build_options(args: argparse.Namespace) -> InstallOptions:
    return InstallOptions.from_profile(
        args.profile,
        selection_policy=args.policy,
        auto_reboot=args.auto_reboot,
        start_agent=False if args.no_start else None,
        cleanup_staged_files=False if args.keep_files else None,
        staging_dir=args.staging_dir,
        catalog_limit=args.limit,
        catalog_sort=args.sort_by,
        download_retries=args.download_retries,
        dry_run=args.dry_run or None,
    )


def is_privileged() -> bool:
    """Check for root (POSIX) or Administrator (Windows) rights."""
    if os.name == "nt":
        import ctypes

        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    return os.geteuid() == 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    logger.info("s1-agent-helper v%s", __version__)

    try:
        config = load_helper_config(args)
        options = build_options(args)
        pipeline = InstallPipeline(config, options)

        if args.list_only:
            try:
                records = pipeline.list_packages()
            finally:
                pipeline.close()
            print(json.dumps([record.to_dict() for record in records], indent=2))
            return 0

        if not (options.dry_run or args.skip_root_check or is_privileged()):
            logger.error("This command must be run as root (Administrator on Windows)")
            return 1

        result = pipeline.run()

    except AgentHelperError as e:
        logger.error("%s", e)
        logger.error("Hint: %s", e.hint)
        return e.exit_code

    except (ValueError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
