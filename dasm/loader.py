"""
Helpers that turn user input into an addressable code image.

Only flat images are handled: a hex string or a file holding hex text or
raw bytes. No executable container formats are parsed.
"""

import os
from dataclasses import dataclass
from typing import Optional

import structlog
from eth_utils import decode_hex, is_hex, remove_0x_prefix

logger = structlog.get_logger()


@dataclass(frozen=True)
class LoadedImage:
    """A contiguous code buffer mapped at ``base``."""

    buffer: bytes
    base: int = 0

    @property
    def size(self) -> int:
        return len(self.buffer)

    @property
    def end(self) -> int:
        return self.base + self.size


def parse_hex_bytecode(text: str) -> bytes:
    """
    Decode a hex string, with or without ``0x`` prefix, into bytes.

    Whitespace and line breaks inside the string are ignored.

    Raises:
        ValueError: If the string is not valid hex.
    """
    cleaned = "".join(text.split())
    if not cleaned or not is_hex(cleaned):
        raise ValueError("Bytecode is not a hex string")
    if len(remove_0x_prefix(cleaned)) % 2:
        raise ValueError("Hex bytecode has an odd number of digits")
    return decode_hex(cleaned)


def load_bytecode(bytecode: str, base: int = 0) -> LoadedImage:
    image = LoadedImage(buffer=parse_hex_bytecode(bytecode), base=base)
    logger.info("Loaded bytecode", size=image.size, base=hex(base))
    return image


def load_file(file_path: str, base: int = 0, raw: Optional[bool] = None) -> LoadedImage:
    """
    Load a code image from ``file_path``.

    Args:
        file_path: File holding hex text or raw bytes.
        base: Address the first byte is mapped at.
        raw: Force raw (True) or hex (False) interpretation. By default the
            file is read as hex when its whole content is hex text.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If ``raw=False`` and the content is not hex.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Code file not found: {file_path}")

    with open(file_path, "rb") as f:
        content = f.read()

    if raw is None:
        raw = not _looks_like_hex(content)

    if raw:
        buffer = content
    else:
        buffer = parse_hex_bytecode(content.decode("ascii", errors="strict"))

    image = LoadedImage(buffer=buffer, base=base)
    logger.info(
        "Loaded code file",
        path=file_path,
        size=image.size,
        base=hex(base),
        encoding="raw" if raw else "hex",
    )
    return image


def _looks_like_hex(content: bytes) -> bool:
    try:
        text = "".join(content.decode("ascii").split())
    except UnicodeDecodeError:
        return False
    return bool(text) and is_hex(text) and len(remove_0x_prefix(text)) % 2 == 0
