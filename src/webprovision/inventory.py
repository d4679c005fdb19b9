"""Ansible INI inventory parsing and rendering.

Only the subset of the format a single-server setup needs is supported:
groups, host variables, ``[group:vars]`` blocks. ``[group:children]``
blocks are accepted and ignored.
"""

from ipaddress import ip_address
from pathlib import Path
import re
import shlex

from pydantic import BaseModel, Field
import structlog

from webprovision.constants import DNS_NAME_RE, Inventory as InventoryDefaults
from webprovision.errors import InventoryError

logger = structlog.get_logger(__name__)

_HEADER_RE = re.compile(r"^\[([A-Za-z0-9_.-]+)(?::(vars|children))?\]$")


def is_valid_address(address: str) -> bool:
    """True for an IPv4/IPv6 address or a DNS name."""
    try:
        ip_address(address)
        return True
    except ValueError:
        return bool(DNS_NAME_RE.match(address.lower()))


class InventoryHost(BaseModel):
    """A single target machine."""

    address: str
    variables: dict[str, str] = Field(default_factory=dict)


class Inventory(BaseModel):
    """Target hosts grouped the way Ansible groups them."""

    groups: dict[str, list[InventoryHost]] = Field(default_factory=dict)
    group_vars: dict[str, dict[str, str]] = Field(default_factory=dict)

    @classmethod
    def from_hosts(
        cls, addresses: list[str], group: str = InventoryDefaults.DEFAULT_GROUP
    ) -> "Inventory":
        """Build an inventory from bare addresses (e.g. ``--host`` options)."""
        hosts = []
        for address in addresses:
            if not is_valid_address(address):
                raise InventoryError(f"Invalid host address: {address!r}")
            hosts.append(InventoryHost(address=address))
        if not hosts:
            raise InventoryError("Inventory contains no hosts")
        return cls(groups={group: hosts})

    @property
    def hosts(self) -> list[str]:
        """Unique host addresses in file order."""
        seen: dict[str, None] = {}
        for members in self.groups.values():
            for host in members:
                seen.setdefault(host.address, None)
        return list(seen)

    def host_variables(self, address: str) -> dict[str, str]:
        """Variables in effect for one host.

        ``[all:vars]`` first, then the vars of each group the host is in,
        then the host's own line, later values winning.
        """
        merged = dict(self.group_vars.get("all", {}))
        own: dict[str, str] = {}
        for group, members in self.groups.items():
            matching = [host for host in members if host.address == address]
            if not matching:
                continue
            merged.update(self.group_vars.get(group, {}))
            for host in matching:
                own.update(host.variables)
        merged.update(own)
        return merged

    def render(self, remote_user: str, private_key_path: str | None = None) -> str:
        """Render as INI text with connection settings under ``[all:vars]``."""
        lines: list[str] = []
        for group, members in self.groups.items():
            lines.append(f"[{group}]")
            for host in members:
                host_vars = " ".join(
                    f"{key}={_quote(value)}" for key, value in host.variables.items()
                )
                lines.append(f"{host.address} {host_vars}".rstrip())
            lines.append("")

        for group, variables in self.group_vars.items():
            if group == "all":
                continue
            lines.append(f"[{group}:vars]")
            lines.extend(f"{key}={_quote(value)}" for key, value in variables.items())
            lines.append("")

        all_vars = {
            "ansible_user": remote_user,
            "ansible_python_interpreter": InventoryDefaults.PYTHON_INTERPRETER,
            "ansible_ssh_common_args": InventoryDefaults.SSH_COMMON_ARGS,
        }
        if private_key_path:
            all_vars["ansible_ssh_private_key_file"] = str(Path(private_key_path).expanduser())
        # Explicit [all:vars] from the source file win over the defaults above
        all_vars.update(self.group_vars.get("all", {}))

        lines.append("[all:vars]")
        lines.extend(f"{key}={_quote(value)}" for key, value in all_vars.items())
        return "\n".join(lines) + "\n"


def _quote(value: str) -> str:
    if re.search(r"\s", value):
        return f"'{value}'"
    return value


def _parse_assignments(tokens: list[str], line_no: int) -> dict[str, str]:
    variables = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key:
            raise InventoryError(f"Expected key=value, got {token!r}", line=line_no)
        variables[key] = value
    return variables


def _parse_group_var(line: str, line_no: int) -> tuple[str, str]:
    """Split a ``[group:vars]`` line; the value is everything after the first ``=``."""
    key, sep, value = line.partition("=")
    key, value = key.strip(), value.strip()
    if not sep or not key or re.search(r"\s", key):
        raise InventoryError(f"Expected key=value, got {line!r}", line=line_no)
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        value = value[1:-1]
    return key, value


def parse_inventory(text: str) -> Inventory:
    """Parse INI inventory text.

    Raises:
        InventoryError: On malformed lines or when no hosts are defined.
    """
    inventory = Inventory()
    group = InventoryDefaults.UNGROUPED
    section = "hosts"

    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith(("#", ";")):
            continue

        if line.startswith("["):
            match = _HEADER_RE.match(line)
            if not match:
                raise InventoryError(f"Malformed section header: {line!r}", line=line_no)
            group, kind = match.group(1), match.group(2)
            section = kind or "hosts"
            if section == "hosts":
                inventory.groups.setdefault(group, [])
            continue

        if section == "children":
            continue

        if section == "vars":
            key, value = _parse_group_var(line, line_no)
            inventory.group_vars.setdefault(group, {})[key] = value
            continue

        try:
            tokens = shlex.split(line, comments=True)
        except ValueError as e:
            raise InventoryError(f"Cannot parse line: {e}", line=line_no) from e
        if not tokens:
            continue

        address, *rest = tokens
        if not is_valid_address(address):
            raise InventoryError(f"Invalid host address: {address!r}", line=line_no)
        inventory.groups.setdefault(group, []).append(
            InventoryHost(address=address, variables=_parse_assignments(rest, line_no))
        )

    # Drop empty groups so rendering does not emit bare headers
    inventory.groups = {name: hosts for name, hosts in inventory.groups.items() if hosts}
    if not inventory.groups:
        raise InventoryError("Inventory contains no hosts")
    return inventory


def load_inventory(path: str | Path) -> Inventory:
    """Read and parse an inventory file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise InventoryError(f"Inventory file not found: {path}") from e

    inventory = parse_inventory(text)
    logger.debug("inventory_loaded", path=str(path), hosts=inventory.hosts)
    return inventory
