import pytest

from dasm.core.errors import BoundsError, DecodeError, TruncatedInstructionError
from dasm.core.instruction import FlowKind, Instruction
from dasm.core.session import DisassemblySession
from dasm.segment import SegmentDisassembler
from toy_isa import HLT, JMPIND, NOP, RET, call32, jmp32, jz8


def test_segment_is_a_disassembly_session(make_session):
    """The concrete segment satisfies the session protocol."""
    assert isinstance(make_session(bytes([NOP])), DisassemblySession)


def test_cursor_get_and_set(make_session):
    session = make_session(bytes([NOP] * 4), base=0x400)

    assert session.current_address() == 0x400
    assert session.set_cursor(0x402) == 0x400
    assert session.current_address() == 0x402
    # Reading the cursor has no side effects
    assert session.current_address() == 0x402
    assert session.set_cursor(0x401) == 0x402


def test_decode_does_not_move_cursor(make_session):
    session = make_session(bytes([NOP, RET]), base=0x10)
    instruction, length = session.decode_at_cursor()

    assert (instruction.mnemonic, length) == ("nop", 1)
    assert session.current_address() == 0x10


def test_out_of_range_address_never_reaches_decoder(make_session, decoder):
    session = make_session(bytes([NOP] * 4), base=0x1000)

    for address in (0xFFF, 0x1004, 0x0, 0x9999):
        session.set_cursor(address)
        with pytest.raises(BoundsError) as excinfo:
            session.decode_at_cursor()
        assert excinfo.value.address == address
        assert excinfo.value.kind == "bounds"

    assert decoder.calls == []


def test_last_byte_is_in_range(make_session):
    session = make_session(bytes([NOP, NOP, RET]), base=0x20)
    session.set_cursor(0x22)
    instruction, _ = session.decode_at_cursor()
    assert instruction.flow is FlowKind.RETURN


def test_instruction_cut_by_buffer_end_is_truncated(make_session):
    code = jmp32(0, 0x40)[:3]
    session = make_session(code)

    with pytest.raises(TruncatedInstructionError) as excinfo:
        session.decode_at_cursor()
    assert excinfo.value.kind == "truncated"


def test_size_limits_the_window(make_session):
    """Bytes beyond ``size`` are not visible even if the buffer holds them."""
    code = jmp32(0, 0x40)
    session = make_session(code, size=3)

    assert session.end == 3
    with pytest.raises(TruncatedInstructionError):
        session.decode_at_cursor()


def test_invalid_bytes_raise_decode_error(make_session):
    session = make_session(bytes([0x06, NOP]))
    with pytest.raises(DecodeError):
        session.decode_at_cursor()


class LyingDecoder:
    def __init__(self, length):
        self.length = length

    def decode(self, window, address):
        return Instruction(address=address, size=self.length, mnemonic="bogus"), self.length


def test_zero_length_from_decoder_is_rejected():
    session = SegmentDisassembler(bytes([NOP] * 4), 0, LyingDecoder(0))
    with pytest.raises(DecodeError):
        session.decode_at_cursor()


def test_length_past_window_from_decoder_is_rejected():
    session = SegmentDisassembler(bytes([NOP] * 4), 0, LyingDecoder(9))
    with pytest.raises(TruncatedInstructionError):
        session.decode_at_cursor()


def test_conditional_successors_are_fallthrough_then_taken(make_session):
    address = 0x100
    session = make_session(jz8(address, 0x120) + bytes([NOP] * 0x20), base=address)
    instruction, length = session.decode_at_cursor()

    assert session.successors_of(instruction, address) == [address + length, 0x120]


def test_successor_conventions(make_session):
    session = make_session(bytes([NOP]))

    nop = Instruction(address=0x10, size=1, mnemonic="nop")
    jump = Instruction(address=0x10, size=5, mnemonic="jmp", flow=FlowKind.JUMP, target=0x80)
    indirect = Instruction(address=0x10, size=2, mnemonic="jmp", flow=FlowKind.JUMP)
    cond_unresolved = Instruction(address=0x10, size=2, mnemonic="jz", flow=FlowKind.CONDITIONAL)
    ret = Instruction(address=0x10, size=1, mnemonic="ret", flow=FlowKind.RETURN)
    halt = Instruction(address=0x10, size=1, mnemonic="hlt", flow=FlowKind.HALT)

    assert session.successors_of(nop, 0x10) == [0x11]
    assert session.successors_of(jump, 0x10) == [0x80]
    assert session.successors_of(indirect, 0x10) == []
    assert session.successors_of(cond_unresolved, 0x10) == [0x12]
    assert session.successors_of(ret, 0x10) == []
    assert session.successors_of(halt, 0x10) == []


def test_call_successors_follow_option(make_session):
    code = call32(0, 0x30)
    following = make_session(code)
    instruction, _ = following.decode_at_cursor()
    assert following.successors_of(instruction, 0) == [5, 0x30]

    not_following = make_session(code, follow_calls=False)
    assert not_following.successors_of(instruction, 0) == [5]


def test_indirect_jump_has_no_successors(make_session):
    session = make_session(bytes([JMPIND, 0x00]))
    instruction, _ = session.decode_at_cursor()
    assert session.successors_of(instruction, 0) == []


def test_fork_shares_buffer_but_not_cursor(make_session):
    session = make_session(bytes([NOP, NOP, HLT]), base=0x50)
    session.set_cursor(0x52)
    forked = session.fork()

    assert forked.current_address() == 0x50
    assert (forked.base, forked.end) == (session.base, session.end)
    forked.set_cursor(0x51)
    assert session.current_address() == 0x52


def test_constructor_rejects_bad_geometry(decoder):
    with pytest.raises(ValueError):
        SegmentDisassembler(bytes(4), 0, decoder, size=5)
    with pytest.raises(ValueError):
        SegmentDisassembler(bytes(4), -1, decoder)


def test_read_is_bounds_checked(make_session):
    session = make_session(bytes([NOP, RET]), base=0x10)
    assert session.read(0x11, 4) == bytes([RET])
    with pytest.raises(BoundsError):
        session.read(0x12, 1)
