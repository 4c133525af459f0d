"""Request/response layer on top of the buffered RTU port."""

import asyncio
import logging
from typing import Optional

from .config import config
from .port import RTUBufferedPort
from .protocol import EXCEPTION_NAMES, FUNCTION_CODE_MASK, FrameParser
from .utils.crc import check_crc

logger = logging.getLogger(__name__)


class RequestInProgressError(RuntimeError):
    """前のリクエストの応答待ち中に新しいリクエストが送信された"""
    pass


class UnsupportedFunctionError(ValueError):
    """応答長を予測できないファンクションコード"""

    def __init__(self, function_code: int):
        super().__init__(f"Unsupported function code: {function_code}")
        self.function_code = function_code


class ResponseTimeoutError(TimeoutError):
    """応答タイムアウト"""
    pass


class CRCError(ValueError):
    """応答フレームのCRC不一致"""
    pass


class ModbusExceptionResponse(Exception):
    """スレーブから例外応答が返された"""

    def __init__(self, function_code: int, exception_code: int):
        name = EXCEPTION_NAMES.get(exception_code, "UNKNOWN")
        super().__init__(
            f"Exception response for function {function_code}: "
            f"code {exception_code:#04x} ({name})"
        )
        self.function_code = function_code
        self.exception_code = exception_code


class RTUClient:
    """
    Half-duplex request layer.

    Only one request may be outstanding at a time; the response is the next
    frame the port reassembles. Timeouts are enforced here because the
    reassembler itself never gives up on a pending response.
    """

    def __init__(self, port: RTUBufferedPort, timeout: Optional[float] = None,
                 verify_crc: bool = False):
        self.port = port
        self.timeout = config.RESPONSE_TIMEOUT if timeout is None else timeout
        self.verify_crc = verify_crc
        self._pending: Optional[asyncio.Future] = None
        self.port.add_frame_listener(self._on_frame)

    def _on_frame(self, frame: bytes):
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(frame)
        else:
            logger.warning(f"Unsolicited frame dropped: {frame.hex()}")

    def close(self):
        """ポートからリスナーを外す"""
        self.port.remove_frame_listener(self._on_frame)

    async def request(self, frame: bytes, timeout: Optional[float] = None) -> bytes:
        """
        Send a request frame and wait for its response.

        Args:
            frame: Complete request frame including CRC
            timeout: Seconds to wait, defaults to the client timeout

        Returns:
            The normal response frame

        Raises:
            InvalidRequestError: frame shorter than 6 bytes
            UnsupportedFunctionError: response length cannot be predicted
            RequestInProgressError: another request is still waiting
            ResponseTimeoutError: no response within timeout
            CRCError: verify_crc is set and the response CRC is wrong
            ModbusExceptionResponse: the slave returned an exception response
        """
        if self._pending is not None:
            raise RequestInProgressError("A request is already waiting for its response")

        expectation = FrameParser.parse_request(frame)
        if expectation.expected_length == 0:
            raise UnsupportedFunctionError(expectation.function_code)

        timeout = self.timeout if timeout is None else timeout
        self._pending = asyncio.get_running_loop().create_future()
        try:
            self.port.write(frame)
            response = await asyncio.wait_for(self._pending, timeout)
        except asyncio.TimeoutError as e:
            raise ResponseTimeoutError(
                f"No response from unit {expectation.unit_id} within {timeout}s"
            ) from e
        finally:
            self._pending = None

        if self.verify_crc and not check_crc(response):
            raise CRCError(f"CRC mismatch in response: {response.hex()}")

        if FrameParser.is_exception_frame(response):
            raise ModbusExceptionResponse(response[1] & FUNCTION_CODE_MASK, response[2])

        return response
