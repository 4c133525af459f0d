import math

import pytest

from rtu_buffered_port.protocol import (EXCEPTION_LENGTH, Expectation, FrameMatch,
                                        FrameParser, InvalidRequestError)


def make_request(unit_id, function_code, address=0, quantity=1):
    return (
        bytes([unit_id, function_code]) +
        address.to_bytes(2, byteorder="big") +
        quantity.to_bytes(2, byteorder="big") +
        b"\x00\x00"  # CRCは検証されない
    )


@pytest.mark.parametrize("function_code", [1, 2])
def test_bit_read_response_length(function_code):
    for quantity in range(0, 2001, 7):
        request = make_request(1, function_code, quantity=quantity)
        expectation = FrameParser.parse_request(request)
        assert expectation.expected_length == 3 + math.ceil(quantity / 8) + 2


@pytest.mark.parametrize("function_code", [3, 4])
def test_word_read_response_length(function_code):
    for quantity in range(0, 126):
        request = make_request(1, function_code, quantity=quantity)
        expectation = FrameParser.parse_request(request)
        assert expectation.expected_length == 3 + 2 * quantity + 2


@pytest.mark.parametrize("function_code", [5, 6, 15, 16])
def test_write_response_length_is_fixed(function_code):
    for address, quantity in [(0, 0), (1, 1), (0x1234, 0xFF00), (0xFFFF, 0xFFFF)]:
        request = make_request(7, function_code, address, quantity)
        assert FrameParser.parse_request(request).expected_length == 8


@pytest.mark.parametrize("function_code", [0, 7, 8, 17, 23, 43, 99, 0x83])
def test_unknown_function_code_disables_matching(function_code):
    expectation = FrameParser.parse_request(make_request(1, function_code, quantity=2))
    assert expectation.expected_length == 0


def test_parse_request_fields():
    expectation = FrameParser.parse_request(bytes([0x11, 0x03, 0x00, 0x6B, 0x00, 0x03]))
    assert expectation == Expectation(unit_id=0x11, function_code=0x03, expected_length=11)


def test_parse_request_reads_quantity_big_endian():
    # quantity = 0x0102 = 258 coils -> 33 bytes
    expectation = FrameParser.parse_request(bytes([1, 1, 0xFF, 0xFF, 0x01, 0x02]))
    assert expectation.expected_length == 3 + 33 + 2


@pytest.mark.parametrize("frame", [b"", b"\x01", b"\x01\x03\x00\x00\x00"])
def test_parse_request_too_short(frame):
    with pytest.raises(InvalidRequestError):
        FrameParser.parse_request(frame)


def test_invalid_request_is_value_error():
    assert issubclass(InvalidRequestError, ValueError)


class TestFindFrame:
    """フレーム検索のテスト"""

    expectation = Expectation(unit_id=1, function_code=3, expected_length=9)
    response = bytes([0x01, 0x03, 0x04, 0x00, 0x01, 0x00, 0x02, 0x2A, 0x32])

    def test_normal_frame_at_start(self):
        match = FrameParser.find_frame(self.response, self.expectation)
        assert match == FrameMatch(0, 9, False)
        assert match.end == 9

    def test_exception_frame(self):
        match = FrameParser.find_frame(bytes([0x01, 0x83, 0x02, 0xC0, 0xF1]), self.expectation)
        assert match == FrameMatch(0, EXCEPTION_LENGTH, True)

    def test_frame_after_garbage(self):
        buffer = b"\xff\x00\x42" + self.response
        assert FrameParser.find_frame(buffer, self.expectation) == FrameMatch(3, 9, False)

    def test_stray_unit_id_byte_is_skipped(self):
        buffer = b"\x01" + self.response
        assert FrameParser.find_frame(buffer, self.expectation) == FrameMatch(1, 9, False)

    def test_incomplete_frame_returns_none(self):
        assert FrameParser.find_frame(self.response[:8], self.expectation) is None

    def test_pending_header_stops_scan(self):
        # 未完了フレームの途中に例外応答に見えるバイト列があっても一致させない
        buffer = bytes([0x01, 0x03, 0x04, 0x01, 0x83, 0x05, 0x06, 0x07])
        assert FrameParser.find_frame(buffer, self.expectation) is None

    def test_other_unit_is_ignored(self):
        buffer = bytes([0x02]) + self.response[1:]
        assert FrameParser.find_frame(buffer, self.expectation) is None

    def test_buffer_shorter_than_exception_frame(self):
        assert FrameParser.find_frame(b"\x01\x83\x02\x00", self.expectation) is None

    def test_unarmed_never_matches(self):
        assert FrameParser.find_frame(self.response, None) is None

    def test_zero_length_expectation_never_matches(self):
        expectation = Expectation(unit_id=1, function_code=99, expected_length=0)
        assert FrameParser.find_frame(bytes([1, 99, 0, 0, 0, 0, 0, 0]), expectation) is None

    def test_exception_frame_at_end_of_buffer(self):
        buffer = b"\x00\x00\x00" + bytes([0x01, 0x83, 0x04, 0x40, 0xF3])
        assert FrameParser.find_frame(buffer, self.expectation) == FrameMatch(3, 5, True)


def test_is_exception_frame():
    assert FrameParser.is_exception_frame(bytes([0x01, 0x83, 0x02, 0xC0, 0xF1]))
    assert not FrameParser.is_exception_frame(bytes([0x01, 0x03, 0x02, 0x00, 0x01, 0x00, 0x00]))
    assert not FrameParser.is_exception_frame(b"\x01")
