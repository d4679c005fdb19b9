"""Sequential execution of provisioning steps.

Steps run one after another. The first failing step ends the run; the
steps after it are reported as skipped, never retried.
"""

import tempfile
import uuid

from pydantic import BaseModel, Field, computed_field
import structlog

from webprovision.config import ProvisionSettings
from webprovision.inventory import Inventory
from webprovision.logging_config import clear_run_id, set_run_id
from webprovision.project import stage_project
from webprovision.runner import AnsibleRunner, PlaybookResult
from webprovision.steps import Step

logger = structlog.get_logger(__name__)


class PipelineReport(BaseModel):
    """Results of a provisioning run."""

    run_id: str
    results: list[PlaybookResult] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def success(self) -> bool:
        return not self.skipped and all(result.success for result in self.results)

    @computed_field
    @property
    def failed_step(self) -> str | None:
        for result in self.results:
            if not result.success:
                return result.step
        return None


def run_pipeline(runner: AnsibleRunner, steps: list[Step]) -> PipelineReport:
    """Run ``steps`` in order, stopping at the first failure."""
    report = PipelineReport(run_id=uuid.uuid4().hex[:12])
    set_run_id(report.run_id)
    try:
        logger.info("pipeline_start", steps=[step.name for step in steps])

        for index, step in enumerate(steps):
            result = runner.run_playbook(step)
            report.results.append(result)
            if not result.success:
                report.skipped = [s.name for s in steps[index + 1 :]]
                logger.error(
                    "pipeline_step_failed",
                    step=step.name,
                    exit_code=result.exit_code,
                    timed_out=result.timed_out,
                    skipped=report.skipped,
                )
                break

        logger.info(
            "pipeline_complete",
            success=report.success,
            completed=[r.step for r in report.results if r.success],
        )
        return report
    finally:
        clear_run_id()


def provision(
    settings: ProvisionSettings,
    inventory: Inventory,
    steps: list[Step],
    check_mode: bool = False,
    verbosity: int = 0,
    limit: str | None = None,
    timeout: int | None = None,
) -> PipelineReport:
    """Stage a temporary project directory and run ``steps`` against it.

    The directory holds the account password and is removed afterwards.
    """
    with tempfile.TemporaryDirectory(prefix="webprovision-") as workdir:
        stage_project(workdir, settings, inventory, overwrite=True)
        runner = AnsibleRunner(
            workdir,
            ansible_playbook_bin=settings.ansible_playbook_bin,
            timeout=timeout or settings.playbook_timeout,
            check_mode=check_mode,
            verbosity=verbosity,
            limit=limit,
        )
        return run_pipeline(runner, steps)
