"""Staging of a self-contained Ansible project directory.

A staged directory is laid out exactly like the hand-run setup:

    ansible.cfg
    inventory
    vars/default.yml
    configure-server.yml
    install-nginx.yml
    install-docker.yml
    install-certbot.yml
    templates/nginx-site.conf.j2

so ``ansible-playbook -i inventory configure-server.yml`` works from
inside it without this tool.
"""

from importlib.resources import files
from importlib.resources.abc import Traversable
import os
from pathlib import Path

import structlog
import yaml

from webprovision.config import ProvisionSettings
from webprovision.constants import Paths
from webprovision.errors import ProvisionError
from webprovision.inventory import Inventory

logger = structlog.get_logger(__name__)

ANSIBLE_CFG = """\
[defaults]
inventory = inventory
host_key_checking = False
retry_files_enabled = False
interpreter_python = auto_silent
"""


def playbook_source() -> Traversable:
    """Location of the playbooks shipped with the package."""
    return files("webprovision") / "playbooks"


def _copy_tree(src: Traversable, dest: Path) -> None:
    dest.mkdir(parents=True, exist_ok=True)
    for entry in src.iterdir():
        if entry.name.startswith((".", "__")):
            continue
        target = dest / entry.name
        if entry.is_dir():
            _copy_tree(entry, target)
        else:
            target.write_bytes(entry.read_bytes())


def _write_private(path: Path, content: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)
    # O_CREAT mode is ignored for files that already existed
    path.chmod(0o600)


class UnsafeText(str):
    """A string Ansible must use as-is, never as a template."""


class VarsDumper(yaml.SafeDumper):
    """Safe dumper that writes ``UnsafeText`` with Ansible's ``!unsafe`` tag."""


def _represent_unsafe(dumper: yaml.SafeDumper, data: UnsafeText) -> yaml.ScalarNode:
    return dumper.represent_scalar("!unsafe", str(data))


VarsDumper.add_representer(UnsafeText, _represent_unsafe)


def render_vars_file(settings: ProvisionSettings) -> str:
    """Render the defaults file every playbook loads.

    String values are tagged ``!unsafe`` so that ``{{``, ``{%`` or ``{#`` in
    a password or email reach the server verbatim.
    """
    variables = {
        key: UnsafeText(value) if isinstance(value, str) else value
        for key, value in settings.to_ansible_vars().items()
    }
    body = yaml.dump(
        variables, Dumper=VarsDumper, default_flow_style=False, sort_keys=False
    )
    return f"---\n{body}"


def stage_project(
    dest: str | Path,
    settings: ProvisionSettings,
    inventory: Inventory,
    overwrite: bool = False,
) -> Path:
    """Write playbooks, templates, defaults file, inventory and ansible.cfg.

    Args:
        dest: Target directory, created if missing.
        settings: Values for ``vars/default.yml``.
        inventory: Target hosts.
        overwrite: Allow staging into a non-empty directory.

    Returns:
        The staged directory.

    Raises:
        ProvisionError: If ``dest`` is not a directory, or is not empty and
            ``overwrite`` is false.
    """
    dest = Path(dest)
    if dest.exists() and not dest.is_dir():
        raise ProvisionError(f"Not a directory: {dest}")
    if dest.exists() and any(dest.iterdir()) and not overwrite:
        raise ProvisionError(f"Directory is not empty: {dest}")

    _copy_tree(playbook_source(), dest)

    (dest / Paths.VARS_DIR).mkdir(exist_ok=True)
    _write_private(dest / Paths.VARS_FILE, render_vars_file(settings))

    (dest / Paths.INVENTORY_FILE).write_text(
        inventory.render(settings.remote_user, settings.ssh_private_key_path),
        encoding="utf-8",
    )
    (dest / Paths.ANSIBLE_CFG).write_text(ANSIBLE_CFG, encoding="utf-8")

    logger.info("project_staged", path=str(dest), hosts=inventory.hosts)
    return dest
