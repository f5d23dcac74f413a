"""Log levels and log-file rotation."""

import logging
import os
import tempfile
from collections import deque
from pathlib import Path

from cfddns.config import DEFAULT_LOG_MAX_LINES

# Between INFO (20) and WARNING (30)
SUCCESS = 25

logging.addLevelName(SUCCESS, "SUCCESS")
logging.addLevelName(logging.WARNING, "WARN")

logger = logging.getLogger(__name__)


def rotate_log(path: Path, max_lines: int = DEFAULT_LOG_MAX_LINES) -> bool:
    """Trim *path* to its last *max_lines* lines.

    The trimmed copy is written next to the log and swapped in with
    ``os.replace`` so readers never observe a half-written file.
    Returns ``True`` if the file was rotated.
    """
    if max_lines <= 0:
        max_lines = DEFAULT_LOG_MAX_LINES
    if not path.is_file():
        return False

    with open(path, encoding="utf-8", errors="replace") as fh:
        total = 0
        tail: deque[str] = deque(maxlen=max_lines)
        for line in fh:
            total += 1
            tail.append(line)
    if total <= max_lines:
        return False

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.writelines(tail)
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.info("Log file exceeded %d lines; rotated (%d lines dropped)", max_lines, total - max_lines)
    return True
