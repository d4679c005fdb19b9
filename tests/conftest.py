import pytest

from webprovision.config import ProvisionSettings
from webprovision.inventory import Inventory

SETTINGS_ENV_VARS = [
    "APP_USERNAME",
    "APP_USER_PASSWORD",
    "APP_MAIN_DOMAIN",
    "LETS_ENCRYPT_EMAIL",
    "NGINX_MAX_BODY_SIZE",
    "TIMEZONE",
    "INVENTORY_PATH",
    "ANSIBLE_PLAYBOOK_BIN",
    "PLAYBOOK_TIMEOUT",
    "REMOTE_USER",
    "SSH_PRIVATE_KEY_PATH",
    "SSH_PUBLIC_KEY_PATH",
    "LETS_ENCRYPT_STAGING",
    "CERTBOT_REPO",
    "CERTBOT_VERSION",
    "CERTBOT_RENEW_HOUR",
    "CERTBOT_RENEW_MINUTE",
    "SERVICE_NAME",
    "LOG_FORMAT",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test in an empty directory with no provisioning env vars."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def provision_env(monkeypatch):
    values = {
        "APP_USERNAME": "deploy",
        "APP_USER_PASSWORD": "s3cret-pass",
        "APP_MAIN_DOMAIN": "example.com",
        "LETS_ENCRYPT_EMAIL": "admin@example.com",
        "NGINX_MAX_BODY_SIZE": "64m",
        "TIMEZONE": "Europe/Paris",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values


@pytest.fixture
def settings():
    return ProvisionSettings(
        app_username="deploy",
        app_user_password="s3cret-pass",
        app_main_domain="example.com",
        lets_encrypt_email="admin@example.com",
        nginx_max_body_size="64m",
        timezone="Europe/Paris",
        ssh_public_key_path="/home/operator/.ssh/id_rsa.pub",
    )


@pytest.fixture
def inventory():
    return Inventory.from_hosts(["203.0.113.10"])
