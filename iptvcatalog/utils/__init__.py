"""Utility modules for iptvcatalog"""

from .logging_setup import parse_size, resolve_log_path, setup_logging

__all__ = [
    "parse_size",
    "resolve_log_path",
    "setup_logging",
]
