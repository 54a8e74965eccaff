"""
Abstract base class for installer drivers.

An installer driver walks a staged package through the install lifecycle:
Downloaded -> Installed -> TokenSet -> Started. Each transition is a
separate external command, and a failed command stops the driver before
any later step runs.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from ..profiles import InstallState
from ...error_handling import InstallCancelled, InstallStepError
from ...host.command import CommandResult, CommandRunner, mask_argv
from ...packages.models import StagedArtifact

logger = logging.getLogger(__name__)


@dataclass
class StepRecord:
    """One executed (or skipped) install step."""
    name: str
    command: list[str]
    returncode: Optional[int]
    skipped: bool = False
    note: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "command": self.command,
            "returncode": self.returncode,
            "skipped": self.skipped,
            "note": self.note,
        }


@dataclass
class InstallResult:
    """Result of an install run.

    Attributes:
        success: Whether every requested step succeeded
        state: Last lifecycle state reached
        message: Human-readable status message
        steps: The steps executed, in order
        error: Error message if failed
        details: Additional details (package, platform)
    """
    success: bool
    state: InstallState
    message: str
    steps: list[StepRecord] = field(default_factory=list)
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "success": self.success,
            "state": self.state.value,
            "message": self.message,
            "steps": [step.to_dict() for step in self.steps],
            "details": self.details,
        }
        if self.error:
            result["error"] = self.error
        return result


class BaseInstaller(ABC):
    """Abstract base class for platform installer drivers.

    Subclasses provide the command for each lifecycle step; the base class
    runs them in order and enforces the stop-on-failure rule.
    """

    def __init__(
        self,
        runner: CommandRunner,
        site_token: str,
        start_agent: bool = True,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ):
        """Initialize the installer.

        Args:
            runner: Executes external commands
            site_token: Token associating the agent with a site
            start_agent: Start the agent service after setting the token
            cancel_requested: Callable returning True once cancellation was
                requested
        """
        self.runner = runner
        self.site_token = site_token
        self.start_agent = start_agent
        self._cancel_requested = cancel_requested or (lambda: False)
        self.state = InstallState.NOT_STARTED
        self.steps: list[StepRecord] = []

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Return a short name of the platform this driver installs on."""
        pass

    @abstractmethod
    def install_command(self, artifact: StagedArtifact) -> list[str]:
        """Return the command that installs the staged package."""
        pass

    @abstractmethod
    def token_command(self) -> Optional[list[str]]:
        """Return the command that sets the site token, or None if the
        installer already applied it."""
        pass

    @abstractmethod
    def start_command(self) -> Optional[list[str]]:
        """Return the command that starts the agent, or None if the
        installer already started it."""
        pass

    def _run_step(self, name: str, argv: Optional[list[str]], next_state: InstallState) -> None:
        """Run one lifecycle step and advance the state.

        Raises:
            InstallStepError: If the command exits non-zero, or an earlier
                step already failed
        """
        if self.state is InstallState.FAILED:
            raise InstallStepError(
                name, mask_argv(argv or [], (self.site_token,)), 1, "an earlier install step failed"
            )

        if argv is None:
            logger.info("Step '%s' was performed by the installer", name)
            self.steps.append(
                StepRecord(name=name, command=[], returncode=None, note="performed by installer")
            )
            self.state = next_state
            return

        result: CommandResult = self.runner.run(argv)
        shown = mask_argv(result.argv, (self.site_token,))
        self.steps.append(StepRecord(name=name, command=shown, returncode=result.returncode))

        if not result.ok:
            failed_from = self.state
            self.state = InstallState.FAILED
            logger.error(
                "Step '%s' failed with exit status %d (state was %s)",
                name, result.returncode, failed_from.value,
            )
            stderr, stdout = mask_argv([result.stderr, result.stdout], (self.site_token,))
            raise InstallStepError(name, shown, result.returncode, stderr, stdout)

        self.state = next_state

    def _check_cancelled(self, before: str) -> None:
        if self._cancel_requested():
            raise InstallCancelled(f"Cancelled before '{before}'")

    def install(self, artifact: StagedArtifact) -> InstallState:
        """Install the staged package.

        Raises:
            InstallCancelled: If cancellation was requested before the
                install began
            InstallStepError: If the installer fails
        """
        self.state = InstallState.DOWNLOADED
        self._check_cancelled("install")
        logger.info("Installing agent on %s: %s", self.platform_name, artifact.path.name)
        self._run_step("install", self.install_command(artifact), InstallState.INSTALLED)
        return self.state

    def set_site_token(self) -> InstallState:
        """Associate the installed agent with its site.

        Raises:
            InstallStepError: If the token command fails
        """
        logger.info("Setting site token...")
        self._run_step("set_site_token", self.token_command(), InstallState.TOKEN_SET)
        return self.state

    def start(self) -> InstallState:
        """Start the agent service.

        Raises:
            InstallStepError: If the start command fails
        """
        logger.info("Starting agent...")
        self._run_step("start_agent", self.start_command(), InstallState.STARTED)
        return self.state

    def run(self, artifact: StagedArtifact) -> InstallResult:
        """Run install, token and start steps in order.

        A cancellation requested while the install command runs lets that
        command finish, then stops before the next step.

        Raises:
            InstallStepError: If any step fails; later steps are not run
            InstallCancelled: If cancellation was requested
        """
        self.install(artifact)

        self._check_cancelled("set_site_token")
        self.set_site_token()

        if self.start_agent:
            self._check_cancelled("start_agent")
            self.start()
        else:
            logger.info("Not starting the agent (start disabled by profile)")
            self.steps.append(
                StepRecord(name="start_agent", command=[], returncode=None, skipped=True,
                           note="disabled by profile")
            )

        return InstallResult(
            success=True,
            state=self.state,
            message=f"Agent installed on {self.platform_name}",
            steps=list(self.steps),
            details={"completed_at": datetime.now(timezone.utc).isoformat()},
        )
