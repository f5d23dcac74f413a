"""API token storage — a single-line file readable by its owner only."""

import logging
import os
import stat
from pathlib import Path

from cfddns.config import TOKEN_FILE

logger = logging.getLogger(__name__)

_OWNER_ONLY = 0o600


class CredentialError(Exception):
    """Raised when the API token file is missing, unreadable or empty."""


def load_token(path: Path = TOKEN_FILE) -> str:
    """Return the bearer token stored in *path*.

    Only the first line is used; surrounding whitespace is stripped.
    The token itself is never logged, only its length.
    """
    if not path.exists():
        raise CredentialError(f"API token file not found: {path}")
    try:
        with open(path, encoding="utf-8") as fh:
            first_line = fh.readline()
    except OSError as exc:
        raise CredentialError(
            f"API token file is not readable: {path} (check permissions)"
        ) from exc

    token = first_line.strip()
    if not token:
        raise CredentialError(f"API token file is empty: {path}")

    if _is_group_or_world_accessible(path):
        logger.warning(
            "API token file %s is accessible by other users; run 'chmod 600 %s'",
            path, path,
        )
    logger.debug("Loaded API token (length: %d)", len(token))
    return token


def store_token(path: Path, token: str) -> None:
    """Write *token* to *path* with owner-only read/write permission."""
    path.parent.mkdir(parents=True, exist_ok=True)
    # Create with restricted mode so the token is never briefly world-readable
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, _OWNER_ONLY)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(token.strip() + "\n")
    os.chmod(path, _OWNER_ONLY)


def mask_token(token: str) -> str:
    """Render *token* for display without revealing it."""
    if len(token) <= 8:
        return f"{'*' * len(token)} ({len(token)} chars)"
    return f"{token[:4]}…{token[-4:]} ({len(token)} chars)"


def _is_group_or_world_accessible(path: Path) -> bool:
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return bool(mode & (stat.S_IRWXG | stat.S_IRWXO))
