# stackvm/__init__.py
from .opcodes import Op, OPERAND_WIDTH, BYTE_ORDER, pack32, peek32, s32
from .config import Capacities, DEFAULT_CAPACITIES
from .asm import assemble, assemble_file, disassemble, AsmError
from .vm import VM, Stack, VMFault
from .devices.console import Console
from .emu import Emu
