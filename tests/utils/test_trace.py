from pyi8080.cpu import RegisterFile
from pyi8080.utils.trace import TraceRecorder


def _registers(**kwargs) -> RegisterFile:
    regs = RegisterFile()
    for name, value in kwargs.items():
        regs.set(name, value)
    return regs


def test_trace_recorder_overwrites_old_entries():
    recorder = TraceRecorder(capacity=2)

    recorder.record_step(_registers(pc=0x1000, a=0x11), 0x3E, 7, mnemonic="MVI")
    recorder.record_step(_registers(pc=0x1002, bc=0x3344), 0x01, 10, mnemonic="LXI")
    state3 = _registers(pc=0x1005, hl=0x7788, sp=0x2000)
    state3.flags.interrupt_enable = True
    recorder.record_step(state3, 0xFB, 4, mnemonic="EI", note="ei")

    lines = list(recorder.format_entries())
    assert len(recorder) == 2
    assert len(lines) == 2
    assert "pc=1002" in lines[0]
    assert "BC=3344" in lines[0]
    assert "pc=1005" in lines[1]
    assert "HL=7788" in lines[1]
    assert "flags=IE,ei" in lines[1]


def test_trace_recorder_handles_interrupt_entry():
    recorder = TraceRecorder(1)
    regs = _registers(pc=0x0038)
    regs.flags.halted = True

    recorder.record_step(regs, None, 11, pc=0x0101, note="irq")

    lines = list(recorder.format_entries())
    assert len(lines) == 1
    assert "pc=0101" in lines[0]
    assert "opcode=--" in lines[0]
    assert "PSW=02" in lines[0]
    assert "flags=HALT,irq" in lines[0]
    assert recorder.last_entry().cycles == 11


def test_trace_recorder_limit_and_clear():
    recorder = TraceRecorder(4)
    for pc in range(3):
        recorder.record_step(_registers(pc=pc), 0x00, 4, mnemonic="NOP")

    assert [entry.pc for entry in recorder.entries(limit=2)] == [1, 2]

    recorder.clear()

    assert recorder.last_entry() is None
    assert list(recorder.format_entries()) == []


def test_trace_recorder_rejects_zero_capacity():
    import pytest

    with pytest.raises(ValueError):
        TraceRecorder(0)


def test_trace_recorder_prefers_disassembly_text():
    recorder = TraceRecorder(2)
    recorder.record_step(_registers(pc=0x0100), 0x21, 10, mnemonic="LXI", text="LXI H,1234H")
    recorder.record_step(_registers(pc=0x0103), 0x00, 4, mnemonic="NOP")

    lines = list(recorder.format_entries())
    assert "opcode=21 LXI H,1234H" in lines[0]
    assert "opcode=00 NOP " in lines[1]
    assert recorder.last_entry().text == ""
