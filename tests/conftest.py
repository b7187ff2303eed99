import pytest

from dasm.segment import SegmentDisassembler
from toy_isa import ToyDecoder


@pytest.fixture
def decoder():
    return ToyDecoder()


@pytest.fixture
def make_session(decoder):
    """Factory building toy sessions that share the recording decoder."""

    def _make(buffer, base=0, **kwargs):
        return SegmentDisassembler(buffer, base, decoder, **kwargs)

    return _make
