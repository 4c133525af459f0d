"""Buffered Modbus RTU serial port.

Wraps a pyserial-asyncio connection around RTUBufferedProtocol and fans the
reassembled frames and debug records out to registered listeners.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import serial_asyncio

from .config import config
from .protocol import PortNotOpenError, RTUBufferedProtocol

logger = logging.getLogger(__name__)


class RTUBufferedPort:
    """RTUフレーム再構成付きシリアルポート"""

    def __init__(self, port: Optional[str] = None, baudrate: Optional[int] = None,
                 debug: bool = False, **serial_kwargs):
        self.port = port or config.SERIAL_PORT
        self.baudrate = baudrate or config.BAUD_RATE
        self.serial_kwargs = {
            "bytesize": config.BYTESIZE,
            "parity": config.PARITY,
            "stopbits": config.STOPBITS,
        }
        self.serial_kwargs.update(serial_kwargs)

        self.transport = None
        self.protocol: Optional[RTUBufferedProtocol] = None
        self.connection_lost_future: Optional[asyncio.Future] = None
        self._debug = debug
        self._frame_listeners: List[Callable[[bytes], None]] = []
        self._debug_listeners: List[Callable[[Dict[str, Any]], None]] = []

    @property
    def debug(self) -> bool:
        return self._debug

    @debug.setter
    def debug(self, value: bool):
        self._debug = value
        if self.protocol is not None:
            self.protocol.debug = value

    def add_frame_listener(self, callback: Callable[[bytes], None]):
        self._frame_listeners.append(callback)

    def remove_frame_listener(self, callback: Callable[[bytes], None]):
        if callback in self._frame_listeners:
            self._frame_listeners.remove(callback)

    def add_debug_listener(self, callback: Callable[[Dict[str, Any]], None]):
        self._debug_listeners.append(callback)

    def _dispatch_frame(self, frame: bytes):
        for callback in list(self._frame_listeners):
            callback(frame)

    def _dispatch_debug(self, record: Dict[str, Any]):
        for callback in list(self._debug_listeners):
            callback(record)

    def _protocol_factory(self) -> RTUBufferedProtocol:
        return RTUBufferedProtocol(
            frame_callback=self._dispatch_frame,
            debug_callback=self._dispatch_debug,
            debug=self._debug,
            connection_lost_future=self.connection_lost_future,
        )

    async def open(self):
        """Open the serial connection. Raises serial.SerialException on failure."""
        if self.is_open():
            return

        loop = asyncio.get_running_loop()
        self.connection_lost_future = loop.create_future()
        self.connection_lost_future.add_done_callback(self._on_connection_lost)

        logger.info(f"Attempting to connect to {self.port} at {self.baudrate} baud...")
        self.transport, self.protocol = await serial_asyncio.create_serial_connection(
            loop, self._protocol_factory, self.port, baudrate=self.baudrate, **self.serial_kwargs
        )
        logger.info("Serial connection established.")

    def _on_connection_lost(self, future: asyncio.Future):
        # 切断時の例外を取り出しておく（未取得警告の抑止）
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.warning(f"Serial connection to {self.port} lost: {exc}")

    def close(self):
        """Close the serial connection if it is open."""
        if self.transport and not self.transport.is_closing():
            logger.info("Closing serial transport.")
            self.transport.close()
        self.transport = None

    def is_open(self) -> bool:
        return self.transport is not None and not self.transport.is_closing()

    def write(self, data: bytes):
        """Send a request frame; raises InvalidRequestError for frames shorter than 6 bytes."""
        if not self.is_open() or self.protocol is None:
            raise PortNotOpenError(f"Serial port {self.port} is not open")
        self.protocol.write(data)

    async def wait_closed(self):
        """接続が失われるまで待機"""
        if self.connection_lost_future is not None:
            await self.connection_lost_future
