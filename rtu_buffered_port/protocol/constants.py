"""Protocol constants for Modbus RTU frame reassembly."""

# Frame sizes
MIN_REQUEST_LENGTH = 6  # unit id + function code + address(2) + quantity(2)
EXCEPTION_LENGTH = 5  # unit id + function code + exception code + CRC(2)
CRC_LENGTH = 2
MAX_BUFFER_LENGTH = 256

# Function code bits
EXCEPTION_BIT = 0x80
FUNCTION_CODE_MASK = 0x7F

# Function codes
READ_COILS = 1
READ_DISCRETE_INPUTS = 2
READ_HOLDING_REGISTERS = 3
READ_INPUT_REGISTERS = 4
WRITE_SINGLE_COIL = 5
WRITE_SINGLE_REGISTER = 6
WRITE_MULTIPLE_COILS = 15
WRITE_MULTIPLE_REGISTERS = 16

BIT_READ_FUNCTIONS = (READ_COILS, READ_DISCRETE_INPUTS)
WORD_READ_FUNCTIONS = (READ_HOLDING_REGISTERS, READ_INPUT_REGISTERS)
WRITE_FUNCTIONS = (
    WRITE_SINGLE_COIL, WRITE_SINGLE_REGISTER,
    WRITE_MULTIPLE_COILS, WRITE_MULTIPLE_REGISTERS,
)

# Calculated response lengths
READ_RESPONSE_OVERHEAD = 3 + CRC_LENGTH  # unit id + function code + byte count + CRC
WRITE_RESPONSE_LENGTH = 6 + CRC_LENGTH  # echo of unit id, function code, address, value/quantity

# Modbus exception codes
EXCEPTION_NAMES = {
    0x01: "ILLEGAL FUNCTION",
    0x02: "ILLEGAL DATA ADDRESS",
    0x03: "ILLEGAL DATA VALUE",
    0x04: "SLAVE DEVICE FAILURE",
    0x05: "ACKNOWLEDGE",
    0x06: "SLAVE DEVICE BUSY",
    0x08: "MEMORY PARITY ERROR",
    0x0A: "GATEWAY PATH UNAVAILABLE",
    0x0B: "GATEWAY TARGET DEVICE FAILED TO RESPOND",
}
