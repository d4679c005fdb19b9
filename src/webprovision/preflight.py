"""Checks run before touching any server.

Nothing here changes state: it looks for the ansible-playbook executable,
the SSH keys the playbooks rely on, and whether each host answers over
SSH.
"""

from pathlib import Path
import shutil
import subprocess

from pydantic import BaseModel
import structlog

from webprovision.config import ProvisionSettings
from webprovision.constants import Timeouts
from webprovision.inventory import Inventory
from webprovision.ssh import check_ssh_access

logger = structlog.get_logger(__name__)


class CheckResult(BaseModel):
    name: str
    passed: bool
    detail: str = ""


def check_ansible(binary: str) -> CheckResult:
    """Verify ansible-playbook is on PATH and report its version."""
    path = shutil.which(binary)
    if path is None:
        return CheckResult(
            name="ansible-playbook", passed=False, detail=f"{binary} not found on PATH"
        )

    try:
        result = subprocess.run(
            [path, "--version"],
            capture_output=True,
            text=True,
            timeout=Timeouts.VERSION_PROBE,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        return CheckResult(name="ansible-playbook", passed=False, detail=str(e))

    if result.returncode != 0:
        return CheckResult(
            name="ansible-playbook",
            passed=False,
            detail=f"--version exited with {result.returncode}",
        )
    version = result.stdout.splitlines()[0][:60] if result.stdout else path
    return CheckResult(name="ansible-playbook", passed=True, detail=version)


def check_key_file(name: str, key_path: str) -> CheckResult:
    path = Path(key_path).expanduser()
    if not path.is_file():
        return CheckResult(name=name, passed=False, detail=f"{path} does not exist")
    try:
        path.read_bytes()
    except OSError as e:
        return CheckResult(name=name, passed=False, detail=f"{path} is not readable: {e}")
    return CheckResult(name=name, passed=True, detail=str(path))


def _ssh_target(
    settings: ProvisionSettings, inventory: Inventory, host: str
) -> tuple[str, str, str | None, str | None]:
    """Address, user, port and key Ansible would use to reach ``host``."""
    variables = inventory.host_variables(host)
    return (
        variables.get("ansible_host", host),
        variables.get("ansible_user", settings.remote_user),
        variables.get("ansible_port"),
        variables.get(
            "ansible_ssh_private_key_file",
            variables.get("ansible_private_key_file", settings.ssh_private_key_path),
        ),
    )


def check_host(settings: ProvisionSettings, inventory: Inventory, host: str) -> CheckResult:
    address, user, port, private_key_path = _ssh_target(settings, inventory, host)
    target = f"{user}@{address}" + (f":{port}" if port else "")
    name = f"ssh {target}" if address == host else f"ssh {host} ({target})"

    if port is not None and not port.isdigit():
        return CheckResult(name=name, passed=False, detail=f"invalid ansible_port {port!r}")

    reachable = check_ssh_access(
        address,
        user=user,
        private_key_path=private_key_path,
        port=int(port) if port else None,
    )
    return CheckResult(
        name=name,
        passed=reachable,
        detail="reachable" if reachable else "key-based login failed",
    )


def run_preflight(
    settings: ProvisionSettings,
    inventory: Inventory,
    check_ssh: bool = True,
) -> list[CheckResult]:
    """Run every check and return the results in display order."""
    results = [
        check_ansible(settings.ansible_playbook_bin),
        check_key_file("ssh public key", settings.ssh_public_key_path),
    ]
    if settings.ssh_private_key_path:
        results.append(check_key_file("ssh private key", settings.ssh_private_key_path))

    if check_ssh:
        results.extend(check_host(settings, inventory, host) for host in inventory.hosts)

    logger.info(
        "preflight_complete",
        passed=sum(r.passed for r in results),
        failed=[r.name for r in results if not r.passed],
    )
    return results
