"""
Host-specific configuration management utility.

Handles automatic creation and selection of hostname-specific configuration files,
plus resolution of the host names reported in status and monitoring payloads.
"""

import logging
import shutil
import socket
from pathlib import Path


def get_hostname_settings_file() -> str:
    """
    Get the appropriate settings file for this host.

    Logic:
    1. Get current hostname
    2. Check if {hostname}-settings.env exists
    3. If not, create it by copying settings.env
    4. Return the hostname-specific file path

    Returns:
        str: Path to the hostname-specific settings file
    """
    try:
        hostname = get_hostname()

        base_settings = Path("settings.env")
        host_settings = Path(f"{hostname}-settings.env")

        if not host_settings.exists():
            if base_settings.exists():
                shutil.copy2(base_settings, host_settings)
                logging.info(f"Created host-specific configuration: {host_settings}")

                content = host_settings.read_text(encoding="utf-8")
                host_header = (
                    f"# Host-specific configuration for: {hostname}\n"
                    "# This file was auto-generated from settings.env\n"
                    "# ==========================================================\n\n"
                )
                host_settings.write_text(host_header + content, encoding="utf-8")
            else:
                logging.debug("Base settings.env not found, falling back to default")
                return "settings.env"
        else:
            logging.debug(f"Using existing host-specific configuration: {host_settings}")

        return str(host_settings)

    except OSError as e:
        logging.error(f"Error handling host-specific settings: {e}")
        logging.info("Falling back to default settings.env")
        return "settings.env"


def list_all_settings_files() -> list[str]:
    """List all available settings files (base + host-specific)."""
    settings_files = []

    if Path("settings.env").exists():
        settings_files.append("settings.env")

    for file_path in Path(".").glob("*-settings.env"):
        settings_files.append(str(file_path))

    return settings_files


def get_hostname() -> str:
    """Get the current hostname (without domain)."""
    return socket.gethostname().split(".")[0]


def get_canonical_hostname() -> str:
    """Internal FQDN used in monitoring payloads, 'localhost' when it cannot be resolved."""
    try:
        return socket.getfqdn() or "localhost"
    except OSError as e:
        logging.warning(f"Failed to resolve hostname (using 'localhost'): {e}")
        return "localhost"
