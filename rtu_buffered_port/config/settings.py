"""Application configuration settings."""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Config:
    """アプリケーション設定"""
    # Serial communication settings
    SERIAL_PORT: str = os.environ.get("RTU_SERIAL_PORT", "/dev/ttyUSB0")
    BAUD_RATE: int = int(os.environ.get("RTU_BAUD_RATE", "9600"))
    BYTESIZE: int = 8
    PARITY: str = os.environ.get("RTU_PARITY", "N")  # N, E, O
    STOPBITS: int = int(os.environ.get("RTU_STOPBITS", "1"))

    # Frame reassembly settings
    RESPONSE_TIMEOUT: float = float(os.environ.get("RTU_RESPONSE_TIMEOUT", "1.0"))

    # Polling settings
    POLL_INTERVAL: float = 1.0
    RECONNECT_DELAY: float = 5.0

    # Debug settings
    DEBUG_FRAMES: bool = os.environ.get("DEBUG_FRAMES", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL


# Global configuration instance
config = Config()
