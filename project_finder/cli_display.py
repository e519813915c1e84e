import logging
import os
import sys
from datetime import datetime
from typing import Iterable

from .variants import ProjectMatch


def setup_logger(log_dir: str = ".project_finder/logs", verbose: bool = False) -> logging.Logger:
    """Attach a timestamped file handler and a stderr handler to the package logger.

    Everything goes to the file; the console only shows warnings unless
    *verbose* is set.
    """
    logger = logging.getLogger("project_finder")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    try:
        os.makedirs(log_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        fh = logging.FileHandler(os.path.join(log_dir, f"project_finder_{timestamp}.log"),
                                 encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S"
        ))
        logger.addHandler(fh)
    except OSError as e:
        print(f"Warning: file logging disabled ({e})", file=sys.stderr)

    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(logging.DEBUG if verbose else logging.WARNING)
    sh.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(sh)
    return logger


def format_matches(matches: Iterable[ProjectMatch], title: str) -> str:
    """Render matches as an aligned table."""
    matches = list(matches)
    if not matches:
        return f"  (no results for: {title})"
    width = max(len(m.key) for m in matches)
    lines = [f"\n{title}  [{len(matches)} result(s)]", "-" * 60]
    for m in matches:
        lines.append(f"  {m.key:<{width}}  {m.score:6.4f}  {m.name}")
    return "\n".join(lines)
