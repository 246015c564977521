"""Canonical asset ordering and pool identifier derivation."""

from __future__ import annotations

import hashlib

from eth_abi import encode  # type: ignore[attr-defined]

from amm_engine.models.types import normalize_address


def sort_assets(asset_a: str, asset_b: str) -> tuple[str, str]:
    """Return the pair with the numerically smaller address first.

    Both addresses are normalized to lowercase. Ordering compares the raw
    address bytes, matching how the pair is encoded for hashing.
    """
    a = normalize_address(asset_a)
    b = normalize_address(asset_b)
    if bytes.fromhex(a[2:]) > bytes.fromhex(b[2:]):
        return b, a
    return a, b


def pair_identifier(asset_a: str, asset_b: str) -> str:
    """Derive the pool identifier for an asset pair.

    The pair is canonicalized first, so pair_identifier(a, b) equals
    pair_identifier(b, a). The identifier is the SHA-256 digest of the ABI
    encoding of the two addresses, as 0x-prefixed hex (32 bytes).

    Args:
        asset_a: First asset address (any case, any order)
        asset_b: Second asset address (any case, any order)

    Returns:
        0x-prefixed 64-character hex pool identifier

    Raises:
        ValueError: If either address is malformed
    """
    token0, token1 = sort_assets(asset_a, asset_b)
    encoded = encode(
        ["address", "address"],
        [bytes.fromhex(token0[2:]), bytes.fromhex(token1[2:])],
    )
    return "0x" + hashlib.sha256(encoded).hexdigest()
