"""Exceptions raised by webprovision.

Playbook failures are not exceptions: they come back as failed
``PlaybookResult`` objects. These errors cover the cases where a run
cannot be started at all.
"""


class ProvisionError(Exception):
    """Base class for all webprovision errors."""

    pass


class ConfigurationError(ProvisionError):
    """Raised when settings are missing or invalid."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []

    def __str__(self) -> str:
        if not self.errors:
            return super().__str__()
        details = "\n".join(f"  - {e}" for e in self.errors)
        return f"{super().__str__()}\n{details}"


class InventoryError(ProvisionError):
    """Raised when an inventory file cannot be parsed."""

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class UnknownStepError(ProvisionError):
    """Raised when a step name does not match any known step."""

    pass


class AnsibleNotFoundError(ProvisionError):
    """Raised when the ansible-playbook binary cannot be executed."""

    pass
