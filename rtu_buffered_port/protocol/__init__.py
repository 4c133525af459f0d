"""Protocol module for frame reassembly."""

from .constants import (
    MIN_REQUEST_LENGTH, EXCEPTION_LENGTH, MAX_BUFFER_LENGTH, CRC_LENGTH,
    EXCEPTION_BIT, FUNCTION_CODE_MASK, EXCEPTION_NAMES
)
from .frame_parser import Expectation, FrameMatch, FrameParser, InvalidRequestError
from .serial_handler import PortNotOpenError, RTUBufferedProtocol

__all__ = [
    "MIN_REQUEST_LENGTH", "EXCEPTION_LENGTH", "MAX_BUFFER_LENGTH", "CRC_LENGTH",
    "EXCEPTION_BIT", "FUNCTION_CODE_MASK", "EXCEPTION_NAMES",
    "Expectation", "FrameMatch", "FrameParser", "InvalidRequestError",
    "PortNotOpenError", "RTUBufferedProtocol"
]
