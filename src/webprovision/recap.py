"""Parsing of the PLAY RECAP summary ansible-playbook prints last."""

import re

from pydantic import BaseModel


class HostRecap(BaseModel):
    """Per-host counters from Ansible's PLAY RECAP."""

    ok: int = 0
    changed: int = 0
    unreachable: int = 0
    failed: int = 0
    skipped: int = 0
    rescued: int = 0
    ignored: int = 0


class RecapParser:
    """Extracts the PLAY RECAP block from ansible-playbook output.

    The block looks like:

        PLAY RECAP *********************************************
        203.0.113.10 : ok=7 changed=2 unreachable=0 failed=0 ...
    """

    _HEADER_PATTERN = re.compile(r"^PLAY RECAP\b", re.MULTILINE)
    _LINE_PATTERN = re.compile(r"^(?P<host>\S+)\s*:\s*(?P<counters>(?:\w+=\d+\s*)+)$")
    _COUNTER_PATTERN = re.compile(r"(\w+)=(\d+)")

    @classmethod
    def parse(cls, stdout: str) -> dict[str, HostRecap]:
        """Return counters per host; empty if there is no recap block."""
        headers = list(cls._HEADER_PATTERN.finditer(stdout))
        if not headers:
            return {}
        header = headers[-1]

        recap: dict[str, HostRecap] = {}
        for line in stdout[header.end() :].splitlines()[1:]:
            line = line.strip()
            if not line:
                if recap:
                    break
                continue
            match = cls._LINE_PATTERN.match(line)
            if not match:
                break
            counters = {
                key: int(value)
                for key, value in cls._COUNTER_PATTERN.findall(match.group("counters"))
                if key in HostRecap.model_fields
            }
            recap[match.group("host")] = HostRecap(**counters)
        return recap
