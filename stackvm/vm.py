from typing import Optional
import logging

from .config import Capacities, DEFAULT_CAPACITIES
from .opcodes import Op, peek32, s32


logger = logging.getLogger(__name__)


class VMFault(Exception):
    """Fatal execution error. The machine stops in the halted-on-error state."""

    def __init__(self, reason: str, pc: Optional[int] = None, opcode: Optional[int] = None) -> None:
        self.reason: str = reason
        self.pc: Optional[int] = pc
        self.opcode: Optional[int] = opcode
        super().__init__(reason)

    def __str__(self) -> str:
        text = self.reason
        if self.pc is not None:
            text += f" at pc={self.pc}"
        if self.opcode is not None:
            text += f" (opcode 0x{self.opcode:02x})"
        return text


class Stack:
    """
    Bounded stack of signed 32-bit cells.
    >>> s = Stack("WST", 2)
    >>> s.push(7); s.push(8)
    >>> s.push(9)
    Traceback (most recent call last):
    ...
    stackvm.vm.VMFault: stack overflow
    >>> s.pop(), s.pop()
    (8, 7)
    """

    def __init__(self, name: str, size: int, label: str = "stack") -> None:
        self.cells: list[int] = [0] * size
        self.ptr: int = 0
        self.size: int = size
        self.name: str = name
        self.label: str = label

    def need(self, n: int) -> None:
        if self.ptr < n:
            raise VMFault(f"{self.label} underflow")

    def push(self, val: int) -> None:
        if self.ptr >= self.size:
            raise VMFault(f"{self.label} overflow")
        self.cells[self.ptr] = val
        self.ptr += 1

    def pop(self) -> int:
        self.need(1)
        self.ptr -= 1
        return self.cells[self.ptr]

    def peek(self, depth: int = 0) -> int:
        self.need(depth + 1)
        return self.cells[self.ptr - 1 - depth]

    def items(self) -> list[int]:
        return self.cells[:self.ptr]

    def __len__(self) -> int:
        return self.ptr

    def __repr__(self) -> str:
        shown = self.cells[max(0, self.ptr - 8):self.ptr]
        res = f"{self.name} "
        if self.ptr > 8:
            res += "... "
        res += " ".join(str(v) for v in shown)
        res += f" <{self.ptr}"
        return res


class VM:
    """
    Fetch-decode-execute engine. One instance per run.
    >>> vm = VM().run(bytes([0x01, 5, 0, 0, 0, 0x03, 0x04, 0x10]))
    >>> vm.state, vm.result
    ('halted', 10)
    """

    def __init__(self, capacities: Capacities = DEFAULT_CAPACITIES) -> None:
        self.capacities: Capacities = capacities
        self.wst: Stack = Stack("WST", capacities.stack_size)
        self.rst: Stack = Stack("RST", capacities.call_stack_size, label="call stack")
        self.mem: list[int] = [0] * capacities.memory_size
        self.code: bytearray = bytearray(capacities.code_size)
        self.length: int = 0
        self.pc: int = 0
        self.steps: int = 0
        self.running: bool = True
        self.error: bool = False
        self.fault: Optional[VMFault] = None
        self.result: Optional[int] = None

    @property
    def state(self) -> str:
        if self.running:
            return "running"
        return "halted-on-error" if self.error else "halted"

    def fetch(self, n: int) -> int:
        """Read an n-byte operand at pc and advance past it."""
        if self.pc + n > len(self.code):
            raise VMFault("PC out of bounds")
        val = peek32(self.code, self.pc) if n == 4 else self.code[self.pc]
        self.pc += n
        return val

    def index(self) -> int:
        idx = self.fetch(1)
        if idx >= len(self.mem):
            raise VMFault("memory index out of bounds")
        return idx

    def pop2(self) -> tuple[int, int]:
        """Pop b then a, checking both are present first."""
        self.wst.need(2)
        b = self.wst.pop()
        a = self.wst.pop()
        return a, b

    def execute(self, op: Op) -> None:
        if op is Op.PUSH:
            self.wst.push(self.fetch(4))
        elif op is Op.POP:
            self.wst.pop()
        elif op is Op.DUP:
            self.wst.push(self.wst.peek())
        elif op is Op.ADD:
            a, b = self.pop2()
            self.wst.push(s32(a + b))
        elif op is Op.SUB:
            a, b = self.pop2()
            self.wst.push(s32(a - b))
        elif op is Op.MUL:
            a, b = self.pop2()
            self.wst.push(s32(a * b))
        elif op is Op.DIV:
            self.wst.need(2)
            if self.wst.peek() == 0:
                raise VMFault("division by zero")
            a, b = self.pop2()
            q = abs(a) // abs(b)
            self.wst.push(s32(-q if (a < 0) != (b < 0) else q))
        elif op is Op.CMP:
            a, b = self.pop2()
            self.wst.push(1 if a < b else 0)
        elif op is Op.JMP:
            self.pc = self.fetch(4)
        elif op is Op.JZ:
            addr = self.fetch(4)
            if self.wst.pop() == 0:
                self.pc = addr
        elif op is Op.JNZ:
            addr = self.fetch(4)
            if self.wst.pop() != 0:
                self.pc = addr
        elif op is Op.STORE:
            idx = self.index()
            self.mem[idx] = self.wst.pop()
        elif op is Op.LOAD:
            idx = self.index()
            self.wst.push(self.mem[idx])
        elif op is Op.CALL:
            addr = self.fetch(4)
            self.rst.push(self.pc)
            self.pc = addr
        elif op is Op.RET:
            self.pc = self.rst.pop()
        elif op is Op.HALT:
            self.running = False
            self.result = self.wst.peek() if len(self.wst) else None
            logger.info(f"HALT at pc={self.pc - 1}, top of stack: {self.result}")

    def step(self) -> bool:
        """Execute one instruction. Returns False once the machine has stopped."""
        if not self.running:
            return False
        at = self.pc
        ins = None
        try:
            if not 0 <= self.pc < len(self.code):
                raise VMFault("PC out of bounds")
            ins = self.code[self.pc]
            self.pc += 1
            try:
                op = Op(ins)
            except ValueError:
                raise VMFault("invalid opcode") from None
            logger.debug(f"{at:04d}: {op.name} {self.wst!r}")
            self.execute(op)
        except VMFault as e:
            e.pc = at
            e.opcode = ins
            self.halt_on(e)
        self.steps += 1
        return self.running

    def halt_on(self, fault: VMFault) -> None:
        logger.warning(f"Fault: {fault}")
        self.running = False
        self.error = True
        self.fault = fault

    def load(self, program: bytes | bytearray) -> 'VM':
        if len(program) > len(self.code):
            raise ValueError(f"Program is {len(program)} bytes, code buffer holds {len(self.code)}")
        self.code[:len(program)] = program
        self.length = len(program)
        return self

    def run(self, program: bytes | bytearray, max_steps: Optional[int] = None) -> 'VM':
        return self.load(program).eval(max_steps)

    def eval(self, max_steps: Optional[int] = None) -> 'VM':
        logger.debug(f"Eval starting at pc={self.pc}, {self.length} bytes loaded")
        budget = max_steps
        while self.running:
            if budget is not None:
                if budget <= 0:
                    self.halt_on(VMFault("step limit exceeded", self.pc))
                    break
                budget -= 1
            self.step()
        return self

    def __repr__(self) -> str:
        return f"{self.wst}\n{self.rst}\nPC {self.pc} {self.state}"
