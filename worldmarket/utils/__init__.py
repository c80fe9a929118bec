"""Utility functions."""

from .logger import configure_logging, log_file_path

__all__ = ["configure_logging", "log_file_path"]
