"""
Command line entry points.

Usage:
    stackvm-asm <input.asm> <output.bc> [--truncate-indices] [--listing] [-v]
    stackvm-run <input.bc> [--stack-size N] [--memory-size N] [--code-size N]
                           [--call-stack-size N] [--max-steps N] [-v]
    stackvm-tui

Exit status: 0 on success or clean halt, 1 on assembly errors and unreadable
files, 2 when the machine halts on error.
"""
import argparse
import logging
import sys
from typing import Optional

from .asm import AsmError, assemble_file, disassemble
from .config import Capacities, DEFAULT_CAPACITIES
from .emu import Emu


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_FAULT = 2


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        stream=sys.stderr,
    )


def asm_main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="stackvm-asm",
        description="Assemble stack machine source into bytecode",
    )
    parser.add_argument("input", help="Input assembly source file")
    parser.add_argument("output", help="Output bytecode file")
    parser.add_argument("--truncate-indices", action="store_true",
                        help="Keep the low 8 bits of out-of-range STORE/LOAD indices instead of failing")
    parser.add_argument("--listing", action="store_true",
                        help="Print an address/hex/mnemonic listing to stdout")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log debug details to stderr")
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        rom = assemble_file(args.input, args.output, truncate_indices=args.truncate_indices)
    except AsmError as e:
        print(f"Assembly error in {args.input}: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.listing:
        for line in disassemble(rom):
            print(line)
    logger.info(f"Assembled {args.input} -> {args.output} ({len(rom)} bytes)")
    return EXIT_OK


def run_main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="stackvm-run",
        description="Execute stack machine bytecode",
    )
    parser.add_argument("input", help="Input bytecode file")
    parser.add_argument("--stack-size", type=int, default=DEFAULT_CAPACITIES.stack_size,
                        help=f"Operand stack capacity (default: {DEFAULT_CAPACITIES.stack_size})")
    parser.add_argument("--memory-size", type=int, default=DEFAULT_CAPACITIES.memory_size,
                        help=f"Memory bank cells, at most 256 (default: {DEFAULT_CAPACITIES.memory_size})")
    parser.add_argument("--code-size", type=int, default=DEFAULT_CAPACITIES.code_size,
                        help=f"Code buffer bytes (default: {DEFAULT_CAPACITIES.code_size})")
    parser.add_argument("--call-stack-size", type=int, default=DEFAULT_CAPACITIES.call_stack_size,
                        help=f"Call stack capacity (default: {DEFAULT_CAPACITIES.call_stack_size})")
    parser.add_argument("--max-steps", type=int, default=None,
                        help="Halt on error after this many instructions (default: unbounded)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Trace every instruction to stderr")
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        capacities = Capacities(
            stack_size=args.stack_size,
            memory_size=args.memory_size,
            code_size=args.code_size,
            call_stack_size=args.call_stack_size,
        )
    except ValueError as e:
        parser.error(str(e))

    emu = Emu(capacities=capacities, max_steps=args.max_steps)
    try:
        vm = emu.load_file(args.input)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except ValueError as e:
        print(f"Error loading {args.input}: {e}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_FAULT if vm.error else EXIT_OK


def tui_main() -> int:
    from .main import StackVMApp, setup_logging

    setup_logging()
    StackVMApp().run()
    return EXIT_OK
