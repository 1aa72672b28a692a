"""
Chain Validation

Pairwise link checks and whole-chain checks. All functions are pure and
return booleans; callers decide whether a failure becomes an exception.
"""

from typing import Optional, Sequence

from .ledger import Block


def explain_link(candidate: Block, predecessor: Block) -> Optional[str]:
    """
    Check a candidate block against its predecessor.

    Returns:
        None if the link is valid, otherwise the first failing reason
    """
    if candidate.index != predecessor.index + 1:
        return (
            f"invalid index: expected {predecessor.index + 1}, "
            f"got {candidate.index}"
        )

    if candidate.prev_hash != predecessor.hash:
        return "previous hash mismatch"

    # Detects tampering with any hashed field
    if candidate.compute_hash() != candidate.hash:
        return "block hash mismatch"

    return None


def is_link_valid(candidate: Block, predecessor: Block) -> bool:
    """True iff candidate directly and untampered extends predecessor."""
    return explain_link(candidate, predecessor) is None


def explain_chain(chain: Sequence[Block], genesis: Block) -> Optional[str]:
    """Return the first reason a chain is invalid, or None."""
    if not chain:
        return "chain is empty"

    if chain[0] != genesis:
        return "genesis block mismatch"

    for i in range(1, len(chain)):
        reason = explain_link(chain[i], chain[i - 1])
        if reason is not None:
            return f"block {i}: {reason}"

    return None


def is_chain_valid(chain: Sequence[Block], genesis: Block) -> bool:
    """
    Validate an entire chain.

    The first block must equal the known genesis exactly, and every
    adjacent pair must pass `is_link_valid`.
    """
    return explain_chain(chain, genesis) is None
