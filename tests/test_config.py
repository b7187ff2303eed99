import pytest

from dasm.config import ExplorerConfig, parse_fence, parse_int


def test_parse_int_accepts_hex_and_decimal():
    assert parse_int("0x1000") == 0x1000
    assert parse_int("4096") == 4096


def test_parse_fence():
    assert parse_fence("0x1000:0x2000") == (0x1000, 0x2000)

    with pytest.raises(ValueError):
        parse_fence("0x1000")
    with pytest.raises(ValueError):
        parse_fence("0x2000:0x1000")


def test_defaults():
    config = ExplorerConfig()

    assert not config.strict
    assert config.max_blocks is None
    assert config.fence is None
    assert config.workers == 1
    assert config.in_fence(0xFFFFFFFF)


def test_in_fence_is_half_open():
    config = ExplorerConfig(fence=(0x10, 0x20))

    assert config.in_fence(0x10)
    assert config.in_fence(0x1F)
    assert not config.in_fence(0x20)
    assert not config.in_fence(0x0F)


@pytest.mark.parametrize("kwargs", [{"max_blocks": -1}, {"workers": 0}])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        ExplorerConfig(**kwargs)


def test_from_env():
    config = ExplorerConfig.from_env(
        {
            "DASM_STRICT": "yes",
            "DASM_MAX_BLOCKS": "0x20",
            "DASM_FENCE": "0:0x100",
            "DASM_WORKERS": "3",
        }
    )

    assert config == ExplorerConfig(strict=True, max_blocks=32, fence=(0, 0x100), workers=3)


def test_from_env_empty():
    assert ExplorerConfig.from_env({}) == ExplorerConfig()


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("DASM_STRICT", "1")
    monkeypatch.delenv("DASM_MAX_BLOCKS", raising=False)
    monkeypatch.delenv("DASM_FENCE", raising=False)
    monkeypatch.delenv("DASM_WORKERS", raising=False)

    assert ExplorerConfig.from_env().strict
