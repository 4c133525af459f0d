"""Serial protocol handler for Modbus RTU frame reassembly."""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from .constants import EXCEPTION_LENGTH, MAX_BUFFER_LENGTH, MIN_REQUEST_LENGTH
from .frame_parser import Expectation, FrameParser, InvalidRequestError
from ..config import config

logger = logging.getLogger(__name__)

FrameCallback = Callable[[bytes], None]
DebugCallback = Callable[[Dict[str, Any]], None]


class PortNotOpenError(ConnectionError):
    """ポートが開いていない状態での書き込みエラー"""
    pass


class RTUBufferedProtocol(asyncio.Protocol):
    """
    Asyncio protocol that rebuilds RTU frames from an unframed serial stream.

    Every request written through the protocol arms an Expectation. Received
    bytes are buffered (at most max_buffer_length of them) and scanned for a
    response matching it; once a frame is extracted the protocol is unarmed
    until the next write.
    """

    def __init__(self, frame_callback: Optional[FrameCallback] = None,
                 debug_callback: Optional[DebugCallback] = None, debug: bool = False,
                 connection_lost_future: Optional[asyncio.Future] = None,
                 max_buffer_length: Optional[int] = None):
        super().__init__()
        self.buffer = bytearray()
        self.transport = None
        self.expectation: Optional[Expectation] = None
        self.frame_callback = frame_callback
        self.debug_callback = debug_callback
        self.debug = debug
        self.connection_lost_future = connection_lost_future
        self.max_buffer_length = max_buffer_length or MAX_BUFFER_LENGTH

        # 破棄・拒否されたデータの統計（サイレントドロップを観測可能にする）
        self.stats = {
            "frames": 0,
            "exception_frames": 0,
            "skipped_bytes": 0,
            "overflows": 0,
            "dropped_bytes": 0,
            "rejected_requests": 0,
            "unsupported_requests": 0,
        }

        logger.debug("RTU buffered protocol initialized.")

    @property
    def expected_length(self) -> int:
        """予測される応答長（未アーム時は0）"""
        return self.expectation.expected_length if self.expectation else 0

    @property
    def armed(self) -> bool:
        return self.expectation is not None

    def connection_made(self, transport):
        self.transport = transport
        port = getattr(getattr(transport, "serial", None), "port", "unknown")
        logger.info(f"Serial port {port} opened.")

    def expect(self, data: bytes) -> Optional[Expectation]:
        """送信フレームから応答の予測を更新"""
        try:
            expectation = FrameParser.parse_request(data)
        except InvalidRequestError:
            self.stats["rejected_requests"] += 1
            raise

        if expectation.expected_length == 0:
            self.stats["unsupported_requests"] += 1
            logger.warning(
                f"Unsupported function code {expectation.function_code} for unit "
                f"{expectation.unit_id}: response matching disabled until next request"
            )
            self.expectation = None
        else:
            self.expectation = expectation

        return self.expectation

    def write(self, data: bytes):
        """Arm the expectation for data and hand it to the transport."""
        if self.transport is None or self.transport.is_closing():
            raise PortNotOpenError("Serial port is not open")

        self.expect(data)
        self._emit_debug("send", data)
        if config.DEBUG_FRAMES:
            logger.debug(f"Sending request: {bytes(data).hex()} (expecting {self.expected_length} bytes)")

        self.transport.write(bytes(data))

    def data_received(self, data):
        """Called when data is received from the serial port."""
        if config.DEBUG_FRAMES:
            logger.debug(f"Raw serial data received: {data.hex()}")

        self.buffer.extend(data)
        self._limit_buffer()
        self.process_buffer()

    def _limit_buffer(self):
        """バッファ長を上限以内に保つ（古いデータから破棄）"""
        overflow = len(self.buffer) - self.max_buffer_length
        if overflow <= 0:
            return

        self.stats["overflows"] += 1
        self.stats["dropped_bytes"] += overflow
        logger.warning(
            f"Receive buffer exceeded {self.max_buffer_length} bytes, "
            f"dropping {overflow} oldest bytes (possible desynchronization)"
        )
        del self.buffer[:overflow]

    def process_buffer(self) -> Optional[bytes]:
        """Extract at most one frame matching the current expectation."""
        if self.expected_length < MIN_REQUEST_LENGTH or len(self.buffer) < EXCEPTION_LENGTH:
            return None

        match = FrameParser.find_frame(self.buffer, self.expectation)
        if match is None:
            if config.DEBUG_FRAMES:
                logger.debug(f"No complete frame yet. Buffer len: {len(self.buffer)}")
            return None

        if match.start > 0:
            self.stats["skipped_bytes"] += match.start
            logger.debug(f"Skipping {match.start} bytes before frame: {self.buffer[:match.start].hex()}")

        frame = bytes(self.buffer[match.start:match.end])
        del self.buffer[:match.end]
        self.expectation = None

        self.stats["frames"] += 1
        if match.is_exception:
            self.stats["exception_frames"] += 1

        self._emit_debug("receive", frame)
        if self.frame_callback is not None:
            try:
                self.frame_callback(frame)
            except Exception:
                logger.exception("Frame callback raised an exception")
        return frame

    def _emit_debug(self, action: str, data: bytes):
        if not self.debug or self.debug_callback is None:
            return
        try:
            self.debug_callback({"action": action, "data": bytes(data)})
        except Exception:
            logger.exception("Debug callback raised an exception")

    def connection_lost(self, exc):
        log_prefix = f"connection_lost ({id(self)}):"
        if exc:
            logger.error(f"{log_prefix} Serial port connection lost: {exc}")
        else:
            logger.info(f"{log_prefix} Serial port closed.")

        self.transport = None
        self.expectation = None

        if self.connection_lost_future and not self.connection_lost_future.done():
            if exc:
                self.connection_lost_future.set_exception(exc)
            else:
                self.connection_lost_future.set_result(True)
