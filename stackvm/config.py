from dataclasses import dataclass


@dataclass(frozen=True)
class Capacities:
    """
    Capacity limits for one machine.
    >>> Capacities()
    Capacities(stack_size=1024, memory_size=256, code_size=4096, call_stack_size=256)
    >>> Capacities(memory_size=300)
    Traceback (most recent call last):
    ...
    ValueError: memory_size must be in 1..256, got 300
    """
    stack_size: int = 1024
    memory_size: int = 256
    code_size: int = 4096
    call_stack_size: int = 256

    def __post_init__(self) -> None:
        # STORE/LOAD carry a single-byte index
        if not 1 <= self.memory_size <= 0x100:
            raise ValueError(f"memory_size must be in 1..256, got {self.memory_size}")
        for name in ("stack_size", "code_size", "call_stack_size"):
            val = getattr(self, name)
            if val < 1:
                raise ValueError(f"{name} must be positive, got {val}")


DEFAULT_CAPACITIES = Capacities()
