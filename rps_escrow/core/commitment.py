from __future__ import annotations

import hashlib
from typing import Protocol

from web3 import Web3

from rps_escrow.core.encoding import normalize_address
from rps_escrow.models import Move


Secret = str | bytes


class CommitmentScheme(Protocol):
    """Hides player 1's move until reveal.

    Implementations must be deterministic and change output whenever the
    address, the move or the secret changes.
    """

    def move_commitment(self, address: str, move: Move, secret: Secret) -> str: ...

    def pairing_commitment(self, sender: str, counterparty: str) -> str: ...


class KeccakCommitmentScheme:
    """keccak256 over Solidity packed encoding, so commitments match on-chain `abi.encodePacked`."""

    def move_commitment(self, address: str, move: Move, secret: Secret) -> str:
        addr = normalize_address(address)
        secret_type = "bytes" if isinstance(secret, (bytes, bytearray)) else "string"
        value = bytes(secret) if isinstance(secret, (bytes, bytearray)) else secret
        digest = Web3.solidity_keccak(["address", "uint8", secret_type], [addr, int(move), value])
        return Web3.to_hex(digest)

    def pairing_commitment(self, sender: str, counterparty: str) -> str:
        a = normalize_address(sender, what="sender")
        b = normalize_address(counterparty, what="counterparty")
        return Web3.to_hex(Web3.solidity_keccak(["address", "address"], [a, b]))


class Sha256CommitmentScheme:
    """sha256(address | move | secret), for ledgers that expose sha256 rather than keccak."""

    def move_commitment(self, address: str, move: Move, secret: Secret) -> str:
        addr = normalize_address(address).lower().encode("utf-8")
        secret_b = bytes(secret) if isinstance(secret, (bytes, bytearray)) else secret.encode("utf-8")
        digest = hashlib.sha256(addr + b"|" + str(int(move)).encode("ascii") + b"|" + secret_b).digest()
        return "0x" + digest.hex()

    def pairing_commitment(self, sender: str, counterparty: str) -> str:
        a = normalize_address(sender, what="sender").lower().encode("utf-8")
        b = normalize_address(counterparty, what="counterparty").lower().encode("utf-8")
        return "0x" + hashlib.sha256(a + b"|" + b).hexdigest()


DEFAULT_SCHEME: CommitmentScheme = KeccakCommitmentScheme()


def derive_move_commitment(address: str, move: Move, secret: Secret, *, scheme: CommitmentScheme = DEFAULT_SCHEME) -> str:
    return scheme.move_commitment(address, move, secret)


def derive_pairing_commitment(counterparty: str, *, sender: str, scheme: CommitmentScheme = DEFAULT_SCHEME) -> str:
    return scheme.pairing_commitment(sender, counterparty)


def verify_move_commitment(
    commitment: str,
    address: str,
    move: Move,
    secret: Secret,
    *,
    scheme: CommitmentScheme = DEFAULT_SCHEME,
) -> bool:
    return scheme.move_commitment(address, move, secret).lower() == commitment.lower()
