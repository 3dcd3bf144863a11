"""Emulator instance assembly: memory, ports and CPU wired together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pyi8080.bus import ADDRESS_SPACE, IOPortBank, Memory, PortReadHandler, PortWriteHandler
from pyi8080.cpu import DEFAULT_VECTOR, Intel8080, InterruptController, RegisterFile
from pyi8080.errors import EmulatorError, InvalidStateError
from pyi8080.utils import TraceRecorder, debug_enabled, debug_log

DEFAULT_TRACE_CAPACITY = 256


@dataclass
class EmulatorConfig:
    """Construction-time settings for an :class:`Emulator`."""

    memory_size: int = ADDRESS_SPACE
    interrupt_vector: int = DEFAULT_VECTOR
    program_image: Optional[bytes] = None
    load_address: int = 0x0000
    start_address: Optional[int] = None
    trace_capacity: int = 0


class Emulator:
    """A self-contained 8080 system.

    Each instance owns its memory and port bank outright and lends them to
    the CPU only while :meth:`step` or :meth:`run` executes. Nothing is shared
    between instances.
    """

    def __init__(
        self,
        memory_size: int = ADDRESS_SPACE,
        *,
        interrupt_vector: int = DEFAULT_VECTOR,
        trace_capacity: int = 0,
    ) -> None:
        self._memory = Memory(memory_size)
        self._ports = IOPortBank()
        self._cpu = Intel8080(interrupts=InterruptController(vector=interrupt_vector))
        if trace_capacity <= 0 and debug_enabled("trace"):
            trace_capacity = DEFAULT_TRACE_CAPACITY
        self._trace = TraceRecorder(trace_capacity) if trace_capacity > 0 else None
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle

    def reset(self) -> None:
        """Restore power-on register state; memory, handlers and vector are kept."""

        self._ensure_open()
        self._cpu.reset()
        if self._trace is not None:
            self._trace.clear()

    def close(self) -> None:
        if self._closed:
            return
        self._memory.release()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "Emulator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Program loading

    def load_program(self, data: bytes, at_address: int = 0x0000) -> None:
        """Copy ``data`` into memory starting at ``at_address``.

        Raises :class:`~pyi8080.errors.AddressRangeError` without touching
        memory if the image would not fit.
        """

        self._ensure_open()
        payload = bytes(data)
        self._memory.load(payload, at_address)
        if debug_enabled("memory"):
            debug_log("memory", "loaded %d bytes at %04x", len(payload), at_address)

    # ------------------------------------------------------------------
    # Execution

    def step(self) -> int:
        self._ensure_open()
        with self._cpu.bind(self._memory, self._ports):
            return self._step_bound()

    def run(self, max_cycles: int) -> int:
        """Step until halted or ``max_cycles`` have elapsed; return the cycles used.

        The budget is checked between instructions, so the last instruction may
        take the total slightly past ``max_cycles``.
        """

        self._ensure_open()
        cpu = self._cpu
        elapsed = 0
        with cpu.bind(self._memory, self._ports):
            while elapsed < max_cycles:
                if cpu.halted and not cpu.interrupt_ready:
                    break
                elapsed += self._step_bound()
        return elapsed

    def _step_bound(self) -> int:
        cpu = self._cpu
        try:
            cycles = cpu.step()
        except EmulatorError:
            if self._trace is not None:
                self._trace.dump("trace")
            raise
        if self._trace is not None:
            instruction = cpu.last_instruction
            if instruction is None and cycles:
                self._trace.record_step(cpu.registers, None, cycles, pc=cpu.last_pc, note="irq")
            elif instruction is not None and cycles:
                self._trace.record_step(
                    cpu.registers,
                    instruction.opcode,
                    cycles,
                    pc=cpu.last_pc,
                    mnemonic=instruction.mnemonic,
                    text=instruction.format(cpu.last_operand),
                )
        return cycles

    # ------------------------------------------------------------------
    # Inspection

    @property
    def cpu(self) -> Intel8080:
        return self._cpu

    @property
    def memory(self) -> Memory:
        return self._memory

    @property
    def ports(self) -> IOPortBank:
        return self._ports

    @property
    def trace(self) -> TraceRecorder | None:
        return self._trace

    @property
    def registers(self) -> RegisterFile:
        """The live register file; use :meth:`snapshot` for a detached copy."""

        return self._cpu.registers

    def snapshot(self) -> RegisterFile:
        return self._cpu.registers.clone()

    @property
    def pc(self) -> int:
        return self._cpu.registers.pc

    @property
    def sp(self) -> int:
        return self._cpu.registers.sp

    @property
    def halted(self) -> bool:
        return self._cpu.halted

    @property
    def interrupt_enabled(self) -> bool:
        return self._cpu.registers.flags.interrupt_enable

    @property
    def interrupt_pending(self) -> bool:
        return self._cpu.interrupts.is_pending()

    @property
    def cycle_count(self) -> int:
        return self._cpu.cycle_count

    def read_memory(self, address: int) -> int:
        self._ensure_open()
        return self._memory.read8(address)

    def read_memory_block(self, start: int, length: int) -> bytes:
        self._ensure_open()
        return self._memory.dump(start, length)

    def write_memory(self, address: int, value: int) -> None:
        self._ensure_open()
        self._memory.write8(address, value)

    def read_port(self, port: int) -> int:
        """Return the last value the CPU wrote to ``port``."""

        self._ensure_open()
        return self._ports.last_output(port)

    # ------------------------------------------------------------------
    # I/O hookup

    def set_port_read_handler(self, port: int, callback: Optional[PortReadHandler]) -> None:
        self._ensure_open()
        self._ports.set_read_handler(port, callback)

    def set_port_write_handler(self, port: int, callback: Optional[PortWriteHandler]) -> None:
        self._ensure_open()
        self._ports.set_write_handler(port, callback)

    def set_port_input(self, port: int, value: int) -> None:
        self._ensure_open()
        self._ports.set_input(port, value)

    # ------------------------------------------------------------------
    # Interrupts

    def raise_interrupt(self) -> None:
        self._ensure_open()
        self._cpu.request_interrupt()

    def set_interrupt_vector(self, address: int) -> None:
        self._ensure_open()
        self._cpu.interrupts.set_vector(address)

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidStateError("emulator instance has been closed")


def create_emulator(config: EmulatorConfig) -> Emulator:
    """Instantiate an emulator with the requested configuration."""

    emulator = Emulator(
        config.memory_size,
        interrupt_vector=config.interrupt_vector,
        trace_capacity=config.trace_capacity,
    )
    if config.program_image:
        emulator.load_program(config.program_image, config.load_address)
    start = config.load_address if config.start_address is None else config.start_address
    emulator.registers.pc = start
    return emulator
