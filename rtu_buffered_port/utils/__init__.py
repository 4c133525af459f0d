"""Utility functions."""

from .logging_setup import setup_logging
from .crc import crc16, append_crc, check_crc

__all__ = ["setup_logging", "crc16", "append_crc", "check_crc"]
