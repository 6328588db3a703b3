from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

# third-party loggers that flood INFO with per-request lines
NOISY_LOGGERS = {
    "urllib3": logging.WARNING,
    "werkzeug": logging.WARNING,
    "flask_cors": logging.WARNING,
}

_CONSOLE_HANDLER = "feedhub.console"
_FILE_HANDLER = "feedhub.file"


def parse_level(value: int | str) -> int:
    """Accept a numeric level or a name such as ``"debug"``."""
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value!r}")
    return level


def _own_handlers(root: logging.Logger) -> dict[str, logging.Handler]:
    return {h.get_name(): h for h in root.handlers if h.get_name() in (_CONSOLE_HANDLER, _FILE_HANDLER)}


def setup_logging(level: int | str = logging.INFO, log_file: str | None = None) -> logging.Logger:
    """Attach feedhub's console handler (and a file handler when *log_file* is
    set) to the root logger.

    Calling it again only adjusts the level, so the CLI and the server can
    both call it without duplicating output. Handlers installed by others
    (pytest's capture handler, for one) are left alone.
    """
    level = parse_level(level)
    root = logging.getLogger()
    root.setLevel(level)

    existing = _own_handlers(root)
    if existing:
        for handler in existing.values():
            handler.setLevel(level)
        return root

    formatter = logging.Formatter(LOG_FORMAT)
    handlers: list[tuple[str, logging.Handler]] = []
    if log_file:
        handlers.append((_FILE_HANDLER, logging.FileHandler(log_file, encoding="utf-8")))
    stream = sys.stderr if sys.platform == "win32" else sys.stdout
    handlers.append((_CONSOLE_HANDLER, logging.StreamHandler(stream)))

    for name, handler in handlers:
        handler.set_name(name)
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(max(noisy_level, level))

    return root
