from rtu_buffered_port.config import Config, config
from rtu_buffered_port.protocol import MAX_BUFFER_LENGTH, RTUBufferedProtocol


def test_buffer_cap_comes_from_protocol_constant():
    """バッファ上限はプロトコル定数のみで定義される"""
    assert not hasattr(config, "MAX_BUFFER_LENGTH")
    assert RTUBufferedProtocol().max_buffer_length == MAX_BUFFER_LENGTH == 256


def test_buffer_cap_override():
    assert RTUBufferedProtocol(max_buffer_length=32).max_buffer_length == 32


def test_config_fields():
    fields = set(Config.__dataclass_fields__)
    assert "IS_TEST_ENV" not in fields
    assert {"SERIAL_PORT", "BAUD_RATE", "RESPONSE_TIMEOUT", "DEBUG_FRAMES", "LOG_LEVEL"} <= fields
