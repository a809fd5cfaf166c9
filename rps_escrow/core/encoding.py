from __future__ import annotations

from hexbytes import HexBytes
from web3 import Web3

from rps_escrow.errors import InvalidArgument


ZERO_ADDRESS = "0x" + "00" * 20


def normalize_address(value: str | None, *, what: str = "address") -> str:
    """Checksum an EVM address; empty, malformed and zero addresses are rejected."""

    if not value:
        raise InvalidArgument(f"{what} is required")
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidArgument(f"{what} is not a valid address: {value!r}")
    addr = Web3.to_checksum_address(value)
    if addr == ZERO_ADDRESS:
        raise InvalidArgument(f"{what} must not be the zero address")
    return addr


def to_bytes32(value: str | bytes | None) -> bytes:
    """Decode a hash-like value.

    Zero forms ("0x0", "0x", b"", 32 zero bytes) decode to a falsy-content value
    that `is_zero` recognizes; anything else must be exactly 32 bytes.
    """

    if value is None:
        return b""
    try:
        raw = bytes(HexBytes(value))
    except (TypeError, ValueError) as e:
        raise InvalidArgument(f"not a hex value: {value!r}") from e
    if any(raw) and len(raw) != 32:
        raise InvalidArgument(f"expected 32 bytes, got {len(raw)}")
    return raw


def is_zero(raw: bytes) -> bool:
    return not any(raw)


def to_hex32(raw: bytes) -> str:
    return Web3.to_hex(raw)
