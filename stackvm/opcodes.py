from enum import IntEnum
import struct


BYTE_ORDER = "little"
INT32_MIN = -0x80000000
INT32_MAX = 0x7fffffff

_INT32 = struct.Struct("<i" if BYTE_ORDER == "little" else ">i")


class Op(IntEnum):
    """Instruction set. Byte values are part of the artifact format."""
    PUSH = 0x01
    POP = 0x02
    DUP = 0x03
    ADD = 0x04
    SUB = 0x05
    MUL = 0x06
    DIV = 0x07
    CMP = 0x08
    JMP = 0x09
    JZ = 0x0a
    JNZ = 0x0b
    STORE = 0x0c
    LOAD = 0x0d
    CALL = 0x0e
    RET = 0x0f
    HALT = 0x10


# Operand bytes following each opcode byte
OPERAND_WIDTH: dict[Op, int] = {
    Op.PUSH: 4,
    Op.JMP: 4,
    Op.JZ: 4,
    Op.JNZ: 4,
    Op.CALL: 4,
    Op.STORE: 1,
    Op.LOAD: 1,
}


def width(op: Op) -> int:
    """
    Operand width in bytes.
    >>> width(Op.PUSH), width(Op.LOAD), width(Op.ADD)
    (4, 1, 0)
    """
    return OPERAND_WIDTH.get(op, 0)


def s32(val: int) -> int:
    """
    Wrap an integer into the signed 32-bit range.
    >>> s32(0x7fffffff + 1)
    -2147483648
    >>> s32(-1)
    -1
    """
    val &= 0xffffffff
    return val - 0x100000000 if val & 0x80000000 else val


def pack32(val: int) -> bytes:
    """
    Encode a signed 32-bit operand.
    >>> pack32(10)
    b'\\n\\x00\\x00\\x00'
    >>> pack32(-2).hex()
    'feffffff'
    """
    return _INT32.pack(val)


def peek32(code: bytes | bytearray, addr: int) -> int:
    """
    Decode a signed 32-bit operand at addr.
    >>> peek32(bytearray(b'\\x00\\xfe\\xff\\xff\\xff'), 1)
    -2
    """
    return _INT32.unpack_from(code, addr)[0]
