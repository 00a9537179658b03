"""Market id and address normalisation."""

import re
from typing import Union

from morpho_sim.core.constants import ADDRESS_BYTES, MARKET_ID_BYTES

MarketId = str
Address = str

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]*")


def _normalise_hex(value: Union[str, bytes], size: int, kind: str) -> str:
    if isinstance(value, (bytes, bytearray)):
        if len(value) > size:
            raise ValueError(f"{kind} is {len(value)} bytes, expected at most {size}")
        return "0x" + bytes(value).rjust(size, b"\x00").hex()

    if not isinstance(value, str):
        raise TypeError(f"{kind} must be str or bytes, got {type(value).__name__}")

    digits = value[2:] if value.lower().startswith("0x") else value
    if len(digits) > size * 2:
        raise ValueError(f"Invalid {kind}: {value!r} is longer than {size} bytes")
    if not _HEX_DIGITS.fullmatch(digits):
        raise ValueError(f"Invalid {kind}: {value!r} is not hex")
    return "0x" + digits.lower().rjust(size * 2, "0")


def to_market_id(value: Union[str, bytes]) -> MarketId:
    """
    Normalise a 32-byte market id.

    Accepts raw bytes or a hex string with or without ``0x`` prefix. The
    result is lowercase and zero-padded, so string order equals byte order.
    """
    return _normalise_hex(value, MARKET_ID_BYTES, "market id")


def to_address(value: Union[str, bytes]) -> Address:
    """Normalise a 20-byte address to lowercase ``0x`` hex."""
    return _normalise_hex(value, ADDRESS_BYTES, "address")
