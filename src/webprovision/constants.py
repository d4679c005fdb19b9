"""Centralized constants for webprovision.

Paths, patterns and limits shared across modules live here; anything an
operator is expected to tune is a setting in ``webprovision.config``.
"""

import re


class Paths:
    """Layout of a staged Ansible project directory."""

    VARS_DIR = "vars"
    VARS_FILE = "vars/default.yml"
    INVENTORY_FILE = "inventory"
    ANSIBLE_CFG = "ansible.cfg"


class Inventory:
    """Inventory defaults."""

    DEFAULT_GROUP = "webservers"
    UNGROUPED = "ungrouped"
    PYTHON_INTERPRETER = "/usr/bin/python3"
    SSH_COMMON_ARGS = "-o StrictHostKeyChecking=no -o UserKnownHostsFile=/dev/null"


class Output:
    """Limits for captured subprocess output."""

    MAX_LOG_LENGTH = 1000
    FAILURE_TAIL_LENGTH = 2000


class Timeouts:
    """Timeout values in seconds for preflight probes."""

    SSH_CHECK = 10
    VERSION_PROBE = 10


DNS_NAME_RE = re.compile(
    r"^(?=.{1,253}$)(?!-)[a-z0-9-]{1,63}(?<!-)(\.(?!-)[a-z0-9-]{1,63}(?<!-))*$"
)
LINUX_USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
BODY_SIZE_RE = re.compile(r"^\d+[kKmMgG]?$")
