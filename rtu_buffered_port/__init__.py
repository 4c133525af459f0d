"""Modbus RTU buffered serial port with response frame reassembly."""

from .client import (
    CRCError, ModbusExceptionResponse, RequestInProgressError, ResponseTimeoutError,
    RTUClient, UnsupportedFunctionError
)
from .port import RTUBufferedPort
from .protocol import (
    Expectation, FrameMatch, FrameParser, InvalidRequestError, PortNotOpenError,
    RTUBufferedProtocol
)

__all__ = [
    "CRCError", "ModbusExceptionResponse", "RequestInProgressError", "ResponseTimeoutError",
    "RTUClient", "UnsupportedFunctionError", "RTUBufferedPort", "Expectation", "FrameMatch",
    "FrameParser", "InvalidRequestError", "PortNotOpenError", "RTUBufferedProtocol"
]
