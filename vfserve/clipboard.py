"""Copies a ready-to-run download command to the system clipboard."""

from __future__ import annotations

import logging

import pyperclip

from .models import Config

logger = logging.getLogger(__name__)


def download_command(config: Config) -> str:
    """Render the configured command template for the listener address."""

    return config.clipboard.command.format(address=config.server.address)


def copy_download_command(config: Config) -> bool:
    """Place the download command on the clipboard; returns False if unavailable."""

    if not config.clipboard.enabled:
        return False

    command = download_command(config)
    try:
        pyperclip.copy(command)
        copied = pyperclip.paste()
    except pyperclip.PyperclipException as exc:
        logger.warning("Clipboard unavailable, command not copied: %s", exc)
        return False

    if copied != command:
        logger.warning("Clipboard holds %r instead of the download command", copied)
        return False

    logger.info("Copied to clipboard: %s", command)
    return True


__all__ = ["download_command", "copy_download_command"]
