# src/logging_utils.py
# Shared logger setup driven by LOG_FILE / LOG_LEVEL
import logging
import os
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "src"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# LOG_LEVEL: 0 = silent, 1 = informational, 2 = debug
_LEVELS = {
    "0": None,
    "1": logging.INFO,
    "2": logging.DEBUG,
}


def _resolve_level() -> Optional[int]:
    raw = os.getenv("LOG_LEVEL", "0").strip()
    return _LEVELS.get(raw)


def _file_handler(log_file: str) -> Optional[logging.Handler]:
    """
    Open ``log_file`` for appending, or return ``None`` when it cannot be used.

    Only ``.log`` paths are accepted. CLIApp reports a bad path to the user,
    so this must not raise while the package is being imported.
    """
    path = Path(log_file)
    if path.suffix != ".log":
        return None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.touch(exist_ok=True)
        handler = logging.FileHandler(path, encoding="utf-8")
    except OSError:
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def _configure() -> Optional[int]:
    """
    (Re)build the package logger from the environment.

    Returns
    -------
    Optional[int]
        The active logging level, or ``None`` when logging is disabled.

    Notes
    -----
    A valid ``.log`` file is always created when ``LOG_FILE`` is set, even
    if the level disables logging, so callers can rely on its existence.
    Any other ``LOG_FILE`` falls back to a ``NullHandler``.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = False

    level = _resolve_level()
    log_file = os.getenv("LOG_FILE")

    handler = _file_handler(log_file) if log_file else None
    if handler is None:
        handler = logging.NullHandler()
    root.addHandler(handler)

    root.setLevel(level if level is not None else logging.CRITICAL)
    root.disabled = level is None
    return level


_ACTIVE_LEVEL = _configure()


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return a logger attached to the package's file handler.

    Parameters
    ----------
    name : Optional[str]
        Module name, usually ``__name__``. ``None`` returns the package
        logger itself.

    Returns
    -------
    logging.Logger
        Logger that is disabled when ``LOG_LEVEL`` is 0 or invalid.
    """
    if name is None or name == ROOT_LOGGER_NAME:
        full_name = ROOT_LOGGER_NAME
    elif name.startswith(ROOT_LOGGER_NAME + "."):
        full_name = name
    else:
        full_name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(full_name)
    logger.disabled = _ACTIVE_LEVEL is None
    return logger
