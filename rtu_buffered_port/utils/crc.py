"""Modbus RTU CRC-16 helpers.

The reassembler itself never checks the CRC; these helpers are for callers
that build requests or want to verify responses.
"""

from typing import Union

Buffer = Union[bytes, bytearray, memoryview]

CRC_POLYNOMIAL = 0xA001
CRC_INITIAL = 0xFFFF


def _build_table():
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ CRC_POLYNOMIAL
            else:
                crc >>= 1
        table.append(crc)
    return table


_CRC_TABLE = _build_table()


def crc16(data: Buffer) -> int:
    """Modbus CRC-16 (reflected poly 0x8005, init 0xFFFF)."""
    crc = CRC_INITIAL
    for byte in data:
        crc = (crc >> 8) ^ _CRC_TABLE[(crc ^ byte) & 0xFF]
    return crc


def append_crc(frame: Buffer) -> bytes:
    """フレーム末尾にCRCを付加（リトルエンディアン）"""
    return bytes(frame) + crc16(frame).to_bytes(2, byteorder="little")


def check_crc(frame: Buffer) -> bool:
    """末尾2バイトのCRCが正しいか検証"""
    if len(frame) < 3:
        return False
    expected = int.from_bytes(frame[-2:], byteorder="little")
    return crc16(frame[:-2]) == expected
