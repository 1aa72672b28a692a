"""
Chain Store

Owns the canonical chain for the life of the process. The chain only ever
changes through whole-chain replacement under the longest-chain rule.

Known limitation: fork choice compares lengths only. There is no
cumulative-difficulty weighting, and a candidate of equal length never
displaces the incumbent even when both are valid.
"""

from threading import RLock
from typing import Optional, Sequence, Tuple

from ..logs import get_logger
from .ledger import Block, create_genesis_block


logger = get_logger(__name__)


class ChainStore:
    """
    Holds the current chain and applies the fork-choice rule.

    The chain is kept as a tuple, so snapshots handed to readers can
    never be used to mutate the store.
    """

    def __init__(self, genesis: Optional[Block] = None):
        """
        Initialize the store with exactly one block.

        Args:
            genesis: Genesis block to start from; created fresh if omitted
        """
        self._genesis = genesis if genesis is not None else create_genesis_block()
        self._chain: Tuple[Block, ...] = (self._genesis,)
        # Re-entrant so the arbitrator can hold it across tip() and try_replace()
        self.lock = RLock()

    @property
    def genesis(self) -> Block:
        """The known genesis block."""
        return self._genesis

    @property
    def length(self) -> int:
        """Current chain length."""
        return len(self._chain)

    def tip(self) -> Block:
        """Return the most recently accepted block."""
        return self._chain[-1]

    def snapshot(self) -> Tuple[Block, ...]:
        """Read-only view of the full chain."""
        return self._chain

    def try_replace(self, candidate: Sequence[Block]) -> bool:
        """
        Replace the current chain iff the candidate is strictly longer.

        Args:
            candidate: Proposed full chain

        Returns:
            True if the candidate became the current chain
        """
        candidate = tuple(candidate)
        with self.lock:
            if len(candidate) <= len(self._chain):
                logger.debug(
                    "Kept incumbent chain (length %d) over candidate (length %d)",
                    len(self._chain), len(candidate)
                )
                return False
            self._chain = candidate
        logger.debug("Adopted chain of length %d", len(candidate))
        return True
