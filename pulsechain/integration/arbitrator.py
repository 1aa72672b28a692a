"""
Submission Arbitrator

Serializes append attempts from independent producers (one thread per
socket connection, one per HTTP request) against a shared ChainStore.

Each attempt moves through:

    READ_TIP -> BUILT -> {ACCEPTED | REJECTED}

The validate-and-replace step always runs under the store lock. `submit`
additionally holds that lock from reading the tip onwards, so the whole
sequence is one atomic unit and concurrent submissions behave as if they
had been applied one after another. `begin`/`commit` expose the steps
separately for callers that build from an earlier snapshot; such a
candidate is rejected if the chain moved on in the meantime.

Author: PulseChain Project
"""

import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ..blockchain.errors import ChainNotExtended, ValidationFailed
from ..blockchain.ledger import Block
from ..blockchain.producer import Clock, parse_payload, propose
from ..blockchain.store import ChainStore
from ..blockchain.validation import explain_chain, explain_link
from ..logs import get_logger


logger = get_logger(__name__)

Snapshot = Tuple[Block, ...]
Subscriber = Callable[[Snapshot], None]


# ============================================================================
# Submission
# ============================================================================

class SubmissionState(Enum):
    """Where a single append attempt currently stands."""
    READ_TIP = "read_tip"
    BUILT = "built"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Submission:
    """
    One append attempt, holding the chain snapshot it was started from.
    """

    def __init__(self, snapshot: Snapshot, clock: Optional[Clock] = None):
        self.snapshot = snapshot
        self.block: Optional[Block] = None
        self.state = SubmissionState.READ_TIP
        self.reason: Optional[str] = None
        self._clock = clock

    @property
    def tip(self) -> Block:
        """Tip as seen when the submission started."""
        return self.snapshot[-1]

    def build(self, payload: Any) -> Block:
        """Build the candidate block on top of the snapshot's tip."""
        if self.state is not SubmissionState.READ_TIP:
            raise RuntimeError(f"Submission already {self.state.value}")
        self.block = propose(self.tip, payload, self._clock)
        self.state = SubmissionState.BUILT
        return self.block

    def __repr__(self) -> str:
        return f"Submission(tip={self.tip.index}, state={self.state.value})"


# ============================================================================
# Arbitrator
# ============================================================================

class SubmissionArbitrator:
    """
    Front door to the ChainStore for every producer.

    Successful appends are announced to subscribers with the new chain
    snapshot. Subscribers run after the store lock is released; one that
    raises is logged and skipped.
    """

    def __init__(self, store: ChainStore, clock: Optional[Clock] = None):
        """
        Args:
            store: The shared chain store
            clock: Timestamp source for new blocks (defaults to local time)
        """
        self.store = store
        self._clock = clock
        self._subscribers: List[Subscriber] = []
        self.accepted = 0
        self.rejected = 0

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback for successful appends."""
        with self.store.lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Remove a callback."""
        with self.store.lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _notify(self, snapshot: Snapshot) -> None:
        with self.store.lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Chain subscriber %r failed", callback)

    # ------------------------------------------------------------------
    # Step-wise submission
    # ------------------------------------------------------------------

    def begin(self) -> Submission:
        """Start a submission from the current chain (READ_TIP)."""
        return Submission(self.store.snapshot(), self._clock)

    def commit(self, submission: Submission) -> Block:
        """
        Validate a built submission and propose it to the store.

        Returns:
            The accepted block

        Raises:
            ValidationFailed: If the block does not link to its snapshot tip
            ChainNotExtended: If fork choice keeps the current chain
        """
        with self.store.lock:
            snapshot = self._commit_locked(submission)
        self._notify(snapshot)
        return submission.block

    def _commit_locked(self, submission: Submission) -> Snapshot:
        if submission.state is not SubmissionState.BUILT:
            raise RuntimeError(f"Cannot commit a submission in state {submission.state.value}")

        block = submission.block
        reason = explain_link(block, submission.tip)
        if reason is not None:
            self._reject(submission, reason)
            raise ValidationFailed(reason)

        candidate = submission.snapshot + (block,)
        if not self.store.try_replace(candidate):
            error = ChainNotExtended(len(candidate), self.store.length)
            self._reject(submission, str(error))
            raise error

        submission.state = SubmissionState.ACCEPTED
        self.accepted += 1
        logger.info("Accepted block #%d (%s...)", block.index, block.hash[:12])
        return self.store.snapshot()

    def _reject(self, submission: Submission, reason: str) -> None:
        submission.state = SubmissionState.REJECTED
        submission.reason = reason
        self.rejected += 1
        logger.info("Rejected candidate built on block #%d: %s", submission.tip.index, reason)

    # ------------------------------------------------------------------
    # Atomic submission
    # ------------------------------------------------------------------

    def submit(self, payload: Any) -> Block:
        """
        Append a block carrying payload, atomically.

        Reading the tip, building, validating and replacing all happen
        under the store lock.
        """
        with self.store.lock:
            submission = self.begin()
            submission.build(payload)
            snapshot = self._commit_locked(submission)
        self._notify(snapshot)
        return submission.block

    def submit_text(self, raw: Any) -> Block:
        """
        Parse raw submitter input and append it.

        Raises:
            PayloadParseError: Before anything is built if raw is malformed
        """
        return self.submit(parse_payload(raw))

    def submit_chain(self, candidate: Sequence[Block]) -> Block:
        """
        Offer a complete alternative chain.

        The candidate must start at our genesis and be valid end to end;
        it is then subject to the same longest-chain rule.

        Returns:
            The tip of the adopted chain
        """
        candidate = tuple(candidate)
        with self.store.lock:
            reason = explain_chain(candidate, self.store.genesis)
            if reason is not None:
                self.rejected += 1
                logger.info("Rejected alternative chain: %s", reason)
                raise ValidationFailed(reason)
            if not self.store.try_replace(candidate):
                self.rejected += 1
                error = ChainNotExtended(len(candidate), self.store.length)
                logger.info("Rejected alternative chain: %s", error)
                raise error
            self.accepted += 1
            snapshot = self.store.snapshot()
        logger.info("Adopted alternative chain ending at block #%d", snapshot[-1].index)
        self._notify(snapshot)
        return snapshot[-1]


# ============================================================================
# Convenience Functions
# ============================================================================

def log_chain(snapshot: Snapshot) -> None:
    """Subscriber that dumps the chain at DEBUG level."""
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Chain is now %d blocks:\n%s", len(snapshot),
                     "\n".join(str(block) for block in snapshot))


def create_arbitrator(
    genesis: Optional[Block] = None,
    clock: Optional[Clock] = None
) -> SubmissionArbitrator:
    """Create a store and an arbitrator in front of it."""
    return SubmissionArbitrator(ChainStore(genesis), clock=clock)
