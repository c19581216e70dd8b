"""
Utility functions for the Disqus to GitHub Discussions migration tool.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from subprocess import CompletedProcess
from typing import Final

LOG_FORMAT: Final[str] = "%(asctime)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE: Final[str] = "migration.log"


class PassError(Exception):
    """Base class for pass-related errors."""


class InvalidPassPathError(PassError):
    """Raised when the pass path does not exist in the password store."""


class PassphraseRequiredError(PassError):
    """Raised when a GPG passphrase is required for the pass utility."""


def setup_logging(*, verbosity: int = 0, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    """Configure logging for the migration process.

    The console shows warnings by default, info with ``-v`` and debug with ``-vv``.
    The log file always receives everything.
    """
    console_level = logging.WARNING
    if verbosity == 1:
        console_level = logging.INFO
    elif verbosity >= 2:  # noqa: PLR2004
        console_level = logging.DEBUG

    console = logging.StreamHandler()
    console.setLevel(console_level)
    handlers: list[logging.Handler] = [console]
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG, format=LOG_FORMAT, handlers=handlers)


def _validate_pass_path(pass_path: str) -> None:
    if not re.fullmatch(r"(?:[A-Za-z0-9_-]+)(?:/[A-Za-z0-9_-]+)*", pass_path):
        msg = f"Invalid pass path: {pass_path}"
        raise InvalidPassPathError(msg)


def _run_pass(pass_path: str, *, passphrase: str | None = None) -> CompletedProcess[str]:
    env = None
    if passphrase is not None:
        env = os.environ.copy() | {"PASSWORD_STORE_GPG_OPTS": "--pinentry-mode=loopback --passphrase-fd 0"}
    return subprocess.run(  # noqa: S603
        ["pass", pass_path],  # noqa: S607
        input=passphrase,
        capture_output=True,
        text=True,
        check=True,
        env=env,
    )


def get_pass_value(pass_path: str) -> str:
    """Get a secret from the ``pass`` password store.

    Raises:
        InvalidPassPathError: If the path is malformed or not in the store
        PassphraseRequiredError: If the GPG key needs a passphrase that could not be obtained
        PassError: For any other failure of the pass utility
    """
    _validate_pass_path(pass_path)

    try:
        result = _run_pass(pass_path)
    except subprocess.CalledProcessError as e:
        stderr = e.stderr.lower()
        if e.returncode == 1 and "not in the password store" in stderr:
            msg = f"Pass path '{pass_path}' not found or invalid."
            raise InvalidPassPathError(msg) from e
        if e.returncode == 2 and "gpg" in stderr and "public key decryption failed" in stderr:  # noqa: PLR2004
            # The GPG agent wants a passphrase; this fails in non-interactive sessions
            try:
                passphrase = input("Enter passphrase for GPG key used by pass: ")
            except EOFError as eof:
                msg = "Passphrase input was interrupted. Please run the command in an interactive session."
                raise PassphraseRequiredError(msg) from eof
            try:
                result = _run_pass(pass_path, passphrase=passphrase)
            except subprocess.CalledProcessError as retry_error:
                msg = f"Failed to get value from pass at '{pass_path}' with passphrase: {retry_error.stderr.strip()}"
                raise PassphraseRequiredError(msg) from retry_error
        else:
            msg = (
                f"Failed to get value from pass at '{pass_path}'.\n"
                f"Error: {e.stderr.strip()}\n"
                f"Return code: {e.returncode}"
            )
            raise PassError(msg) from e

    return result.stdout.strip()
