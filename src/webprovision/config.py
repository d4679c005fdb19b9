"""Settings with pydantic-settings.

``BaseSettings`` carries the logging options every entry point shares.
``ProvisionSettings`` adds the values the playbooks consume. Both read the
process environment first and fall back to a ``.env`` file.

Usage:
    from webprovision.config import load_settings

    settings = load_settings(".env")
    variables = settings.to_ansible_vars()
"""

from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict

from webprovision.constants import (
    BODY_SIZE_RE,
    DNS_NAME_RE,
    EMAIL_RE,
    LINUX_USERNAME_RE,
)
from webprovision.errors import ConfigurationError

MASK = "********"


class BaseSettings(PydanticBaseSettings):
    """Base application settings.

    All fields here are optional with sensible defaults.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Logging configuration
    service_name: str = Field(
        default="webprovision",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


class ProvisionSettings(BaseSettings):
    """Values consumed by the provisioning playbooks."""

    # === Required: the server being built ===

    app_username: str = Field(
        ..., alias="APP_USERNAME", description="Account name to create on the server"
    )
    app_user_password: SecretStr = Field(
        ..., alias="APP_USER_PASSWORD", description="Password for the new account"
    )
    app_main_domain: str = Field(
        ...,
        alias="APP_MAIN_DOMAIN",
        description="DNS name for the TLS certificate and Nginx vhost",
        examples=["example.com"],
    )
    lets_encrypt_email: str = Field(
        ..., alias="LETS_ENCRYPT_EMAIL", description="Contact email for ACME registration"
    )

    # === Optional with defaults ===

    nginx_max_body_size: str = Field(
        default="1m",
        alias="NGINX_MAX_BODY_SIZE",
        description="Nginx client_max_body_size",
        examples=["1m", "64M"],
    )
    timezone: str = Field(
        default="Etc/UTC",
        alias="TIMEZONE",
        description="IANA timezone for the system clock",
    )

    # Runner
    inventory_path: str = Field(
        default="inventory", alias="INVENTORY_PATH", description="Default inventory file"
    )
    ansible_playbook_bin: str = Field(
        default="ansible-playbook",
        alias="ANSIBLE_PLAYBOOK_BIN",
        description="ansible-playbook executable",
    )
    playbook_timeout: int = Field(
        default=1200,
        ge=1,
        alias="PLAYBOOK_TIMEOUT",
        description="Per-playbook timeout in seconds",
    )
    remote_user: str = Field(
        default="root", alias="REMOTE_USER", description="SSH user for the first connection"
    )
    ssh_private_key_path: str | None = Field(
        default=None, alias="SSH_PRIVATE_KEY_PATH", description="Private key used by Ansible"
    )
    ssh_public_key_path: str = Field(
        default="~/.ssh/id_rsa.pub",
        alias="SSH_PUBLIC_KEY_PATH",
        description="Public key authorized for the new account",
    )

    # Certbot
    lets_encrypt_staging: bool = Field(
        default=False,
        alias="LETS_ENCRYPT_STAGING",
        description="Request certificates from the ACME staging endpoint",
    )
    certbot_repo: str = Field(
        default="https://github.com/certbot/certbot.git",
        alias="CERTBOT_REPO",
        description="Git repository Certbot is installed from",
    )
    certbot_version: str = Field(
        default="v2.11.0", alias="CERTBOT_VERSION", description="Git ref to check out"
    )
    certbot_renew_hour: int = Field(default=2, ge=0, le=23, alias="CERTBOT_RENEW_HOUR")
    certbot_renew_minute: int = Field(default=30, ge=0, le=59, alias="CERTBOT_RENEW_MINUTE")

    @field_validator("app_username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        if not LINUX_USERNAME_RE.match(v):
            raise ValueError(f"Invalid Linux user name: {v!r}")
        return v

    @field_validator("app_user_password")
    @classmethod
    def validate_password(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("Password must not be empty")
        return v

    @field_validator("app_main_domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        domain = v.strip().lower().rstrip(".")
        if "." not in domain or not DNS_NAME_RE.match(domain):
            raise ValueError(f"Invalid domain name: {v!r} (expected e.g. example.com)")
        return domain

    @field_validator("lets_encrypt_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        email = v.strip()
        if not EMAIL_RE.match(email):
            raise ValueError(f"Invalid email address: {v!r}")
        return email

    @field_validator("nginx_max_body_size")
    @classmethod
    def validate_body_size(cls, v: str) -> str:
        size = v.strip()
        if not BODY_SIZE_RE.match(size):
            raise ValueError(f"Invalid size literal: {v!r} (expected e.g. 1m, 512k, 2g)")
        return size

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v!r}") from e
        return v

    def to_ansible_vars(self) -> dict[str, Any]:
        """Build the variables written to the playbooks' defaults file."""
        return {
            "app_username": self.app_username,
            "app_user_password": self.app_user_password.get_secret_value(),
            "app_main_domain": self.app_main_domain,
            "lets_encrypt_email": self.lets_encrypt_email,
            "lets_encrypt_staging": self.lets_encrypt_staging,
            "nginx_max_body_size": self.nginx_max_body_size,
            "timezone": self.timezone,
            "ssh_public_key_path": str(Path(self.ssh_public_key_path).expanduser()),
            "certbot_repo": self.certbot_repo,
            "certbot_version": self.certbot_version,
            "certbot_renew_hour": self.certbot_renew_hour,
            "certbot_renew_minute": self.certbot_renew_minute,
        }

    def masked(self) -> dict[str, Any]:
        """Same as ``to_ansible_vars`` with the password hidden."""
        variables = self.to_ansible_vars()
        variables["app_user_password"] = MASK
        return variables


def _format_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "settings"
    return f"{location}: {error.get('msg', 'invalid value')}"


def load_logging_settings() -> BaseSettings:
    """Logging options from the environment and ``.env``.

    Raises:
        ConfigurationError: If LOG_FORMAT or LOG_LEVEL is invalid.
    """
    try:
        return BaseSettings()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid logging settings",
            errors=[_format_error(err) for err in e.errors()],
        ) from e


def load_settings(env_file: str | Path | None = None) -> ProvisionSettings:
    """Load provisioning settings from the environment and an env file.

    Args:
        env_file: Explicit env file. When omitted, ``.env`` in the current
                  directory is used if present.

    Raises:
        ConfigurationError: If the env file is missing or any value is invalid.
    """
    kwargs: dict[str, Any] = {}
    if env_file is not None:
        path = Path(env_file)
        if not path.is_file():
            raise ConfigurationError(f"Environment file not found: {path}")
        kwargs["_env_file"] = path

    try:
        return ProvisionSettings(**kwargs)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid provisioning settings",
            errors=[_format_error(err) for err in e.errors()],
        ) from e
