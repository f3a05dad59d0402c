# slidesmith/logging_utils.py
"""Logging helpers for consistent console output."""
import logging
import sys
from pathlib import Path
from typing import Optional


def setup_logging(level: str = "INFO", log_path: Optional[str] = None) -> None:
    """Configure root logging for the app."""
    handlers = [logging.StreamHandler()]
    if log_path:
        path = Path(log_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(path, mode="a", encoding="utf-8"))
        except OSError as exc:
            print(
                f"[WARN] Failed to open log file at {path} ({exc}). Continuing without file logging.",
                file=sys.stderr,
            )
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )
    # urllib3 logs full request URLs at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
