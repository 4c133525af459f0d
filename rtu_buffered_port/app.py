"""
Modbus RTU polling tool

Sends a raw request frame over a buffered RTU port at a fixed interval and
logs each reassembled response. Reconnects when the serial port goes away.
"""

import argparse
import asyncio
from typing import Any, Dict, List, Optional

import serial

from .client import ModbusExceptionResponse, ResponseTimeoutError, RTUClient
from .config import config
from .port import RTUBufferedPort
from .protocol import FrameParser, InvalidRequestError, PortNotOpenError
from .utils import append_crc, setup_logging

# Setup logging
logger = setup_logging()


def parse_hex(value: str) -> bytes:
    """16進文字列をバイト列に変換（空白・コロン区切り可）"""
    try:
        return bytes.fromhex(value.replace(":", " "))
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid hex string: {value!r}") from e


def log_debug_record(record: Dict[str, Any]):
    logger.info(f"{record['action']}: {record['data'].hex(' ')}")


async def main_polling(port: str, baud: int, request: bytes, interval: float,
                       count: int = 0, debug: bool = False) -> int:
    """メインのポーリング処理関数

    Returns the number of responses received. count == 0 polls forever.
    """
    sent = 0
    received = 0

    while True:  # 再接続ループ
        rtu_port = RTUBufferedPort(port, baud, debug=debug)
        if debug:
            rtu_port.add_debug_listener(log_debug_record)

        try:
            await rtu_port.open()
            client = RTUClient(rtu_port)

            while count == 0 or sent < count:
                sent += 1
                try:
                    response = await client.request(request)
                    received += 1
                    logger.info(f"Response: {response.hex(' ')}")
                except ResponseTimeoutError as e:
                    logger.warning(str(e))
                except ModbusExceptionResponse as e:
                    logger.warning(str(e))

                if count == 0 or sent < count:
                    await asyncio.sleep(interval)
            break

        except (serial.SerialException, PortNotOpenError) as e:
            logger.error(f"Serial connection error: {e}")

        except asyncio.CancelledError:
            logger.info("Polling task cancelled.")
            break

        finally:
            rtu_port.close()

        logger.info(f"Waiting {config.RECONNECT_DELAY} seconds before retrying connection...")
        try:
            await asyncio.sleep(config.RECONNECT_DELAY)
        except asyncio.CancelledError:
            logger.info("Retry delay cancelled.")
            break

    logger.info(f"Polling finished: {received}/{sent} responses received.")
    return received


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Modbus RTU polling tool")
    parser.add_argument(
        "-p", "--port", default=config.SERIAL_PORT,
        help=f"Serial port (default: {config.SERIAL_PORT})"
    )
    parser.add_argument(
        "-b", "--baud", type=int, default=config.BAUD_RATE,
        help=f"Baud rate (default: {config.BAUD_RATE})"
    )
    parser.add_argument(
        "-r", "--request", type=parse_hex, required=True,
        help="Request frame as hex, e.g. '01 03 00 00 00 02'"
    )
    parser.add_argument(
        "--append-crc", action="store_true",
        help="Append the CRC-16 to the request frame"
    )
    parser.add_argument(
        "-i", "--interval", type=float, default=config.POLL_INTERVAL,
        help=f"Seconds between requests (default: {config.POLL_INTERVAL})"
    )
    parser.add_argument(
        "-n", "--count", type=int, default=0,
        help="Number of requests to send, 0 for unlimited (default: 0)"
    )
    parser.add_argument(
        "--debug", action="store_true", default=config.DEBUG_FRAMES,
        help="Log every sent and received frame"
    )
    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    request = append_crc(args.request) if args.append_crc else args.request
    try:
        expectation = FrameParser.parse_request(request)
    except InvalidRequestError as e:
        parser.error(str(e))
    if expectation.expected_length == 0:
        parser.error(f"Unsupported function code: {expectation.function_code}")

    try:
        asyncio.run(main_polling(args.port, args.baud, request, args.interval, args.count, args.debug))
    except KeyboardInterrupt:
        logger.info("Exiting due to KeyboardInterrupt.")


if __name__ == "__main__":
    main()
