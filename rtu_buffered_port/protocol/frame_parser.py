"""Frame parsing utilities.

The RTU framing has no delimiter, so frame boundaries are predicted from the
last request: the function code and quantity fields fix the length of the
normal response, and an exception response is always EXCEPTION_LENGTH bytes.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

from .constants import (
    MIN_REQUEST_LENGTH, EXCEPTION_LENGTH, EXCEPTION_BIT, FUNCTION_CODE_MASK,
    BIT_READ_FUNCTIONS, WORD_READ_FUNCTIONS, WRITE_FUNCTIONS,
    READ_RESPONSE_OVERHEAD, WRITE_RESPONSE_LENGTH
)

Buffer = Union[bytes, bytearray, memoryview]


class InvalidRequestError(ValueError):
    """送信フレームが短すぎて応答長を予測できないエラー"""
    pass


@dataclass(frozen=True)
class Expectation:
    """次に受信する応答フレームの予測"""
    unit_id: int
    function_code: int
    expected_length: int

    @property
    def exception_code(self) -> int:
        return EXCEPTION_BIT | self.function_code

    @property
    def pending_code(self) -> int:
        return FUNCTION_CODE_MASK & self.function_code


class FrameMatch(NamedTuple):
    """バッファ内で見つかったフレームの位置"""
    start: int
    length: int
    is_exception: bool

    @property
    def end(self) -> int:
        return self.start + self.length


class FrameParser:
    """フレーム解析クラス"""

    @staticmethod
    def expected_response_length(function_code: int, quantity: int) -> int:
        """Return the response length for a request, or 0 if the function code is unknown."""
        if function_code in BIT_READ_FUNCTIONS:
            # coils/discrete inputs are packed 8 per byte
            return READ_RESPONSE_OVERHEAD + (quantity + 7) // 8
        if function_code in WORD_READ_FUNCTIONS:
            return READ_RESPONSE_OVERHEAD + 2 * quantity
        if function_code in WRITE_FUNCTIONS:
            return WRITE_RESPONSE_LENGTH
        return 0

    @staticmethod
    def parse_request(frame: Buffer) -> Expectation:
        """送信フレームから応答の予測を作成"""
        if len(frame) < MIN_REQUEST_LENGTH:
            raise InvalidRequestError(
                f"Request too short: need {MIN_REQUEST_LENGTH} bytes, got {len(frame)}"
            )

        unit_id = frame[0]
        function_code = frame[1]
        quantity = int.from_bytes(frame[4:6], byteorder="big")

        return Expectation(
            unit_id=unit_id,
            function_code=function_code,
            expected_length=FrameParser.expected_response_length(function_code, quantity),
        )

    @staticmethod
    def find_frame(buffer: Buffer, expectation: Optional[Expectation]) -> Optional[FrameMatch]:
        """
        Scan the buffer for the first frame matching the expectation.

        Offsets whose unit id matches but whose function code does not are
        skipped, so a stray byte never blocks a frame starting later. A
        matching normal header without enough bytes behind it stops the scan:
        the frame has started arriving and the rest is still on the wire.

        Args:
            buffer: Unconsumed received bytes
            expectation: Prediction from the last request, or None when unarmed

        Returns:
            FrameMatch for the first complete frame, or None
        """
        if expectation is None or expectation.expected_length < MIN_REQUEST_LENGTH:
            return None

        buffer_length = len(buffer)
        if buffer_length < EXCEPTION_LENGTH:
            return None

        expected_length = expectation.expected_length
        for i in range(buffer_length - EXCEPTION_LENGTH + 1):
            if buffer[i] != expectation.unit_id:
                continue

            function_code = buffer[i + 1]
            if function_code == expectation.function_code and i + expected_length <= buffer_length:
                return FrameMatch(i, expected_length, False)
            if function_code == expectation.exception_code and i + EXCEPTION_LENGTH <= buffer_length:
                return FrameMatch(i, EXCEPTION_LENGTH, True)

            # ヘッダーは一致したが残りのバイトが未着
            if function_code == expectation.pending_code:
                break

        return None

    @staticmethod
    def is_exception_frame(frame: Buffer) -> bool:
        """応答フレームが例外応答かどうか"""
        return len(frame) >= 2 and bool(frame[1] & EXCEPTION_BIT)
