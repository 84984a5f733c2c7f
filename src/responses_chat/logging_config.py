"""Loguru sinks for the chat client.

The console sink defaults to WARNING so log lines do not interleave with the
prompt. The file sink is written next to the saved conversation state unless
a ``path`` is configured.
"""

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from loguru import logger

LOG_FILE_NAME = "chat.log"

_CONSOLE_FORMAT = "<level>{level:<8}</level> | <level>{message}</level>"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{line} - {message}"

DEFAULT_CONSUMERS: tuple[dict[str, Any], ...] = (
    {"type": "console", "level": "WARNING"},
    {"type": "file"},
)


def _add_console_sink(level: str, options: dict[str, Any], state_dir: Path) -> str:
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)
    return f"console ({level})"


def _add_file_sink(level: str, options: dict[str, Any], state_dir: Path) -> str:
    path = Path(options["path"]) if options.get("path") else state_dir / LOG_FILE_NAME
    path.parent.mkdir(parents=True, exist_ok=True)
    logger.add(
        path,
        level=level,
        format=_FILE_FORMAT,
        rotation=options.get("rotation", "5 MB"),
        retention=options.get("retention", 3),
        encoding="utf-8",
    )
    return f"file ({path}, {level})"


_SINKS: dict[str, Callable[[str, dict[str, Any], Path], str]] = {
    "console": _add_console_sink,
    "file": _add_file_sink,
}


def setup_logging(
    level: str = "INFO",
    consumers: list[dict[str, Any]] | None = None,
    *,
    state_dir: Path | None = None,
) -> list[str]:
    """Replace loguru's default sink with the configured ones. Returns their descriptions."""
    logger.remove()
    state_dir = state_dir or Path.cwd() / ".responses_chat"

    descriptions: list[str] = []
    for options in consumers if consumers is not None else DEFAULT_CONSUMERS:
        sink_type = options.get("type", "")
        add_sink = _SINKS.get(sink_type)
        if add_sink is None:
            logger.warning(f"Unknown log consumer type: {sink_type!r}")
            continue
        sink_level = str(options.get("level", level)).upper()
        descriptions.append(add_sink(sink_level, options, state_dir))
    return descriptions
