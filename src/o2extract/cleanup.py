"""Temporary file management for the DuckDB spill directory and partial outputs."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path


def get_project_temp_dir() -> Path:
    """Get the shared temp directory for extract runs."""
    return Path(tempfile.gettempdir()) / "overture_extract"


def get_pid_temp_dir() -> Path:
    """Get process-isolated temp directory for current PID."""
    pid_dir = get_project_temp_dir() / f"pid_{os.getpid()}"
    pid_dir.mkdir(parents=True, exist_ok=True)
    return pid_dir


def cleanup_current_pid() -> None:
    """Clean up temp files for current process."""
    pid_dir = get_project_temp_dir() / f"pid_{os.getpid()}"
    if pid_dir.exists():
        try:
            shutil.rmtree(pid_dir)
            logging.debug(f"Cleaned up PID temp directory: {pid_dir}")
        except OSError as e:
            logging.warning(f"Could not clean PID temp directory {pid_dir}: {e}")


def partial_path_for(output_path: Path) -> Path:
    """
    Sibling path an output is written to before being moved into place.

    Keeps the suffix so format-sniffing writers behave as for the final path.
    """
    return output_path.with_name(f".{output_path.stem}.{os.getpid()}.partial{output_path.suffix}")


def remove_partial(path: Path) -> None:
    """Remove a partial output left by a failed write; missing files are fine."""
    try:
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
            logging.debug(f"Removed partial output: {path}")
    except OSError as e:
        logging.warning(f"Could not remove partial output {path}: {e}")
