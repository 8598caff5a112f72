from typing import Iterator
import logging
import re

from .opcodes import INT32_MAX, INT32_MIN, Op, pack32, peek32, width


logger = logging.getLogger(__name__)

MNEMONICS: dict[str, Op] = {op.name: op for op in Op}
_INT = re.compile(r"[+-]?[0-9]+\Z")


class AsmError(Exception):
    def __init__(self, line: int, msg: str) -> None:
        self.line = line
        super().__init__(f"Line {line}: {msg}")


def _clip(text: str) -> str:
    return text if len(text) <= 24 else text[:20] + "..."


def tokens(source: str) -> Iterator[tuple[int, str]]:
    """
    Yield (line number, token) pairs, dropping ';' comments.
    >>> list(tokens("PUSH 1 ; one\\nHALT"))
    [(1, 'PUSH'), (1, '1'), (2, 'HALT')]
    """
    for lineno, line in enumerate(source.splitlines(), 1):
        for tok in line.split(";", 1)[0].split():
            yield lineno, tok


def assemble(source: str, truncate_indices: bool = False) -> bytearray:
    """
    Single-pass assembler: one opcode byte per mnemonic plus its operand bytes.
    >>> assemble("PUSH 2 PUSH 3 ADD HALT").hex()
    '010200000001030000000410'
    >>> assemble("STORE 300")
    Traceback (most recent call last):
    ...
    stackvm.asm.AsmError: Line 1: STORE index 300 outside 0..255
    >>> assemble("STORE 300", truncate_indices=True).hex()
    '0c2c'
    """
    rom = bytearray()
    stream = tokens(source)
    for lineno, tok in stream:
        op = MNEMONICS.get(tok.upper())
        if op is None:
            raise AsmError(lineno, f"Unknown instruction: {tok!r}")
        rom.append(op)
        n = width(op)
        if not n:
            continue
        arg = next(stream, None)
        if arg is None:
            raise AsmError(lineno, f"{op.name} expects an integer operand, got end of input")
        lineno, text = arg
        if not _INT.match(text):
            raise AsmError(lineno, f"{op.name} expects an integer operand, got {text!r}")
        # no int32 or index needs more than 10 significant digits
        if len(text.lstrip("+-").lstrip("0")) > 10:
            raise AsmError(lineno, f"{op.name} operand {_clip(text)!r} is too large")
        val = int(text)
        if n == 4:
            if not INT32_MIN <= val <= INT32_MAX:
                raise AsmError(lineno, f"{op.name} operand {_clip(text)!r} does not fit in 32 bits")
            rom += pack32(val)
        else:
            if not 0 <= val <= 0xff:
                if not truncate_indices:
                    raise AsmError(lineno, f"{op.name} index {_clip(text)} outside 0..255")
                logger.warning(f"Line {lineno}: {op.name} index {val} truncated to {val & 0xff}")
                val &= 0xff
            rom.append(val)
    logger.debug(f"Assembled {len(rom)} bytes")
    return rom


def assemble_file(src_path: str, dst_path: str, truncate_indices: bool = False) -> bytearray:
    """Assemble src_path into dst_path. Nothing is written if assembly fails."""
    with open(src_path, "rb") as f:
        data = f.read()
    try:
        source = data.decode("utf-8")
    except UnicodeDecodeError as e:
        line = data.count(b"\n", 0, e.start) + 1
        raise AsmError(line, f"invalid UTF-8 byte 0x{data[e.start]:02x} at offset {e.start}") from None
    rom = assemble(source, truncate_indices=truncate_indices)
    with open(dst_path, "wb") as f:
        f.write(rom)
    logger.debug(f"Wrote {len(rom)} bytes to {dst_path}")
    return rom


def disassemble(code: bytes | bytearray) -> list[str]:
    """
    Address/hex/mnemonic listing. Addresses are decimal, like jump operands.
    >>> print("\\n".join(disassemble(assemble("PUSH -1 STORE 4 HALT"))))
    0000  01 ff ff ff ff  PUSH -1
    0005  0c 04           STORE 4
    0007  10              HALT
    >>> disassemble(bytes([0x00, 0x01, 0x02]))
    ['0000  00              .byte 0x00', '0001  01              .byte 0x01', '0002  02              POP']
    """
    lines = []
    addr = 0
    while addr < len(code):
        ins = code[addr]
        try:
            op = Op(ins)
        except ValueError:
            op = None
        n = width(op) if op is not None else 0
        if op is None or addr + 1 + n > len(code):
            lines.append(f"{addr:04d}  {ins:02x}{'':<12}  .byte 0x{ins:02x}")
            addr += 1
            continue
        raw = bytes(code[addr:addr + 1 + n])
        if n == 4:
            text = f"{op.name} {peek32(code, addr + 1)}"
        elif n == 1:
            text = f"{op.name} {code[addr + 1]}"
        else:
            text = op.name
        lines.append(f"{addr:04d}  {raw.hex(' '):<14}  {text}")
        addr += 1 + n
    return lines
