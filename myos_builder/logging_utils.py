from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Tuple

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"

_HANDLER_TAG = "_myos_handler"


def _file_handler(path: str, level: int, fmt: logging.Formatter) -> Tuple[logging.Handler, str]:
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        chosen = path
    except OSError:
        # Fall back to a writable location.
        chosen = str(Path.cwd() / Path(path).name)
        handler = logging.FileHandler(chosen, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler, chosen


def reset_logging() -> None:
    """Detach and close the handlers installed by configure_logging()."""

    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, _HANDLER_TAG, False):
            root.removeHandler(h)
            h.close()
    setattr(root, "_myos_log_paths", None)


def configure_logging(
    log_path: str,
    error_log_path: str,
    level: int = logging.INFO,
    also_console: bool = True,
) -> Tuple[str, str]:
    """Configure logging.

    Two append-only files are written: the general build log (``level`` and
    above) and an error-only log (ERROR and above). Calling this again with
    the same paths is a no-op; different paths replace the previous handlers.

    Returns the actual (log, error log) paths being used.
    """

    root = logging.getLogger()
    requested = (str(log_path), str(error_log_path))
    current: Optional[Tuple[str, str]] = getattr(root, "_myos_log_paths", None)
    if current is not None and getattr(root, "_myos_requested_paths", None) == requested:
        return current
    reset_logging()

    root.setLevel(level)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    handlers: List[logging.Handler] = []

    general, chosen_log = _file_handler(str(log_path), level, fmt)
    errors, chosen_err = _file_handler(str(error_log_path), logging.ERROR, fmt)
    handlers += [general, errors]

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(level)
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        setattr(h, _HANDLER_TAG, True)
        root.addHandler(h)

    chosen = (chosen_log, chosen_err)
    setattr(root, "_myos_log_paths", chosen)
    setattr(root, "_myos_requested_paths", requested)

    logging.getLogger(__name__).info(
        "Logging initialized (log=%s, error_log=%s)", chosen_log, chosen_err
    )
    return chosen
