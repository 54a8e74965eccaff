import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from ..error_handling import mask_secret

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def mask_argv(argv: Sequence[str], secrets: Sequence[str] = ()) -> list[str]:
    masked = []
    for arg in argv:
        for secret in secrets:
            if secret and secret in arg:
                arg = arg.replace(secret, mask_secret(secret))
        masked.append(arg)
    return masked


def format_argv(argv: Sequence[str], secrets: Sequence[str] = ()) -> str:
    """Render a command line for logs, masking any secret arguments."""
    return " ".join(shlex.quote(arg) for arg in mask_argv(argv, secrets))


def detached_process_options() -> dict:
    """Popen arguments that keep a child out of the terminal's process group.

    Ctrl-C on the terminal signals the whole foreground group; a child
    started with these options does not receive it and runs to completion.
    """
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


class CommandRunner:
    """Runs installer and agent-control commands with consistent logging.

    - Always logs the command (with secrets masked).
    - Never raises on a non-zero exit; callers inspect the result.
    - Children run detached from terminal signals and finish once started.
    - dry_run logs but does not execute.
    """

    def __init__(self, dry_run: bool = False, secrets: Sequence[str] = ()):
        self.dry_run = dry_run
        self.secrets = tuple(s for s in secrets if s)

    def run(
        self,
        argv: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        argv_list = [str(a) for a in argv]
        logger.info("CMD %s", format_argv(argv_list, self.secrets))

        if self.dry_run:
            return CommandResult(argv=argv_list, returncode=0, stdout="", stderr="")

        try:
            p = subprocess.run(
                argv_list,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=dict(os.environ, **(env or {})),
                timeout=timeout,
                **detached_process_options(),
            )
        except FileNotFoundError as e:
            return CommandResult(argv=argv_list, returncode=127, stdout="", stderr=str(e))
        except subprocess.TimeoutExpired as e:
            return CommandResult(
                argv=argv_list, returncode=124, stdout="", stderr=f"Timed out after {e.timeout}s"
            )

        level = logging.DEBUG if p.returncode == 0 else logging.ERROR
        for label, output in (("STDOUT", p.stdout), ("STDERR", p.stderr)):
            if output:
                logger.log(level, "%s %s", label, mask_argv([output.strip()], self.secrets)[0])

        return CommandResult(argv=argv_list, returncode=p.returncode, stdout=p.stdout, stderr=p.stderr)
