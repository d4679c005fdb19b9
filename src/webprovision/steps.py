"""The provisioning steps, in the order they must run."""

from dataclasses import dataclass

from webprovision.errors import UnknownStepError


@dataclass(frozen=True)
class Step:
    """One playbook run against the inventory."""

    name: str
    playbook: str
    description: str


STEPS: tuple[Step, ...] = (
    Step(
        name="configure-server",
        playbook="configure-server.yml",
        description="Create the app user, harden SSH, enable UFW, set the timezone",
    ),
    Step(
        name="install-nginx",
        playbook="install-nginx.yml",
        description="Install Nginx and publish the vhost for the main domain",
    ),
    Step(
        name="install-docker",
        playbook="install-docker.yml",
        description="Install Docker CE from the official apt repository",
    ),
    Step(
        name="install-certbot",
        playbook="install-certbot.yml",
        description="Install Certbot, obtain a certificate, schedule renewal",
    ),
)


def step_names() -> list[str]:
    return [step.name for step in STEPS]


def get_step(name: str) -> Step:
    """Look up a step by name.

    Raises:
        UnknownStepError: If no step has that name.
    """
    for step in STEPS:
        if step.name == name:
            return step
    raise UnknownStepError(f"Unknown step: {name!r}. Known steps: {', '.join(step_names())}")


def select_steps(only: list[str] | None = None, start_at: str | None = None) -> list[Step]:
    """Choose which steps to run.

    The result always follows the canonical order, whatever order ``only``
    was given in.

    Args:
        only: Run just these steps.
        start_at: Run this step and every step after it.

    Raises:
        UnknownStepError: If a name does not match a step.
        ValueError: If both ``only`` and ``start_at`` are given.
    """
    if only and start_at:
        raise ValueError("'only' and 'start_at' are mutually exclusive")

    if only:
        wanted = {get_step(name).name for name in only}
        return [step for step in STEPS if step.name in wanted]

    if start_at:
        first = STEPS.index(get_step(start_at))
        return list(STEPS[first:])

    return list(STEPS)
