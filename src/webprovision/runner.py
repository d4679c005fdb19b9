"""Ansible playbook execution.

Each step is one ``ansible-playbook`` invocation inside a staged project
directory. A failing playbook is reported through ``PlaybookResult``;
only a missing executable raises.
"""

from pathlib import Path
import subprocess
import time

from pydantic import BaseModel, Field
import structlog

from webprovision.constants import Output, Paths
from webprovision.errors import AnsibleNotFoundError
from webprovision.recap import HostRecap, RecapParser
from webprovision.steps import Step

logger = structlog.get_logger(__name__)


class PlaybookResult(BaseModel):
    """Outcome of one playbook run."""

    step: str
    playbook: str
    success: bool
    exit_code: int | None = None
    duration_sec: float = 0.0
    output: str = ""
    timed_out: bool = False
    recap: dict[str, HostRecap] = Field(default_factory=dict)


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _brief(text: str, limit: int = Output.MAX_LOG_LENGTH) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class AnsibleRunner:
    """Runs playbooks from a staged project directory."""

    def __init__(
        self,
        project_dir: str | Path,
        ansible_playbook_bin: str = "ansible-playbook",
        timeout: int = 1200,
        check_mode: bool = False,
        verbosity: int = 0,
        limit: str | None = None,
    ):
        self.project_dir = Path(project_dir)
        self.ansible_playbook_bin = ansible_playbook_bin
        self.timeout = timeout
        self.check_mode = check_mode
        self.verbosity = verbosity
        self.limit = limit

    def build_command(self, step: Step) -> list[str]:
        cmd = [
            self.ansible_playbook_bin,
            "-i",
            Paths.INVENTORY_FILE,
            step.playbook,
        ]
        if self.check_mode:
            cmd.append("--check")
        if self.limit:
            cmd.extend(["--limit", self.limit])
        if self.verbosity > 0:
            cmd.append("-" + "v" * min(self.verbosity, 4))
        return cmd

    def run_playbook(self, step: Step) -> PlaybookResult:
        """Run a single step's playbook.

        Raises:
            AnsibleNotFoundError: If the ansible-playbook binary cannot be found.
        """
        cmd = self.build_command(step)
        logger.info(
            "ansible_playbook_start",
            step=step.name,
            playbook=step.playbook,
            check_mode=self.check_mode,
            limit=self.limit,
        )

        start = time.monotonic()
        try:
            process = subprocess.run(  # noqa: S603
                cmd,
                cwd=self.project_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise AnsibleNotFoundError(
                f"Cannot execute {self.ansible_playbook_bin!r}; is Ansible installed?"
            ) from e
        except subprocess.TimeoutExpired as e:
            duration = time.monotonic() - start
            stdout = _as_text(e.stdout)
            logger.error(
                "ansible_playbook_timeout",
                step=step.name,
                timeout=self.timeout,
                stdout_tail=stdout[-Output.MAX_LOG_LENGTH :],
            )
            return PlaybookResult(
                step=step.name,
                playbook=step.playbook,
                success=False,
                duration_sec=round(duration, 2),
                output=f"Timeout after {self.timeout}s\n\nSTDOUT TAIL:\n"
                f"{stdout[-Output.FAILURE_TAIL_LENGTH :]}",
                timed_out=True,
                recap=RecapParser.parse(stdout),
            )

        duration = time.monotonic() - start
        logger.debug("ansible_stdout", step=step.name, output=_brief(process.stdout))
        if process.stderr:
            logger.warning("ansible_stderr", step=step.name, output=_brief(process.stderr))

        success = process.returncode == 0
        logger.info(
            "ansible_playbook_complete",
            step=step.name,
            exit_code=process.returncode,
            success=success,
            duration_sec=round(duration, 2),
        )

        if success:
            output = process.stdout
        else:
            # stderr plus the end of stdout, where Ansible prints the failing task
            stdout_tail = process.stdout[-Output.FAILURE_TAIL_LENGTH :]
            output = f"STDERR: {process.stderr}\n\nSTDOUT TAIL:\n{stdout_tail}"

        return PlaybookResult(
            step=step.name,
            playbook=step.playbook,
            success=success,
            exit_code=process.returncode,
            duration_sec=round(duration, 2),
            output=output,
            recap=RecapParser.parse(process.stdout),
        )
