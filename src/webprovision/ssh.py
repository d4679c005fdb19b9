"""SSH reachability probe."""

from pathlib import Path
import subprocess
import time

import structlog

from webprovision.constants import Timeouts

logger = structlog.get_logger(__name__)


def build_ssh_command(
    host: str,
    user: str,
    private_key_path: str | None = None,
    port: int | None = None,
) -> list[str]:
    cmd = [
        "ssh",
        "-o",
        "StrictHostKeyChecking=no",
        "-o",
        "UserKnownHostsFile=/dev/null",
        "-o",
        "BatchMode=yes",
        "-o",
        "ConnectTimeout=5",
    ]
    if private_key_path:
        cmd.extend(["-i", str(Path(private_key_path).expanduser())])
    if port:
        cmd.extend(["-p", str(port)])
    cmd.extend([f"{user}@{host}", "echo success"])
    return cmd


def check_ssh_access(
    host: str,
    user: str = "root",
    private_key_path: str | None = None,
    port: int | None = None,
    timeout: int = Timeouts.SSH_CHECK,
) -> bool:
    """Check if a host accepts key-based SSH logins.

    Args:
        host: Server IP address or DNS name
        user: Remote user
        private_key_path: Optional identity file
        port: SSH port, the client default when omitted
        timeout: Check timeout in seconds

    Returns:
        True if accessible via SSH key
    """
    cmd = build_ssh_command(host, user, private_key_path, port)

    start = time.time()
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired) as e:
        duration_ms = (time.time() - start) * 1000
        logger.warning(
            "ssh_connection_test_failed",
            host=host,
            duration_ms=round(duration_ms, 2),
            error=str(e),
            error_type=type(e).__name__,
        )
        return False

    success = result.returncode == 0 and "success" in result.stdout
    duration_ms = (time.time() - start) * 1000
    logger.info(
        "ssh_connection_test",
        host=host,
        user=user,
        port=port,
        success=success,
        duration_ms=round(duration_ms, 2),
    )
    return success
