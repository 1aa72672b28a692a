"""
Blockchain Ledger Module

Defines the block record shared by every node component:
- Immutable blocks (frozen dataclass)
- Deterministic SHA-256 block hash over a fixed textual encoding
- Genesis block construction
- Wire serialization for single blocks and whole chains

Hash encoding (fixed, changing it changes every digest):

    record = str(index) + timestamp + encode_payload(payload) + prev_hash

`encode_payload` renders an int as its decimal string and any other
payload as compact canonical JSON. The record is UTF-8 encoded before
hashing.

Author: PulseChain Project
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core_crypto.sha256 import sha256_hex
from .errors import MalformedRecordError


# ============================================================================
# Constants
# ============================================================================

GENESIS_INDEX = 0
GENESIS_PAYLOAD = 0
GENESIS_PREV_HASH = ""  # Genesis has no predecessor

# Legacy record names accepted when parsing, mapped to ours
_LEGACY_KEYS = {
    'Index': 'index',
    'Timestamp': 'timestamp',
    'BPM': 'payload',
    'Hash': 'hash',
    'PrevHash': 'prevHash',
}


# ============================================================================
# Hashing
# ============================================================================

def now_timestamp() -> str:
    """Current local time as a human-readable ISO-8601 string."""
    return datetime.now().astimezone().isoformat()


def encode_payload(payload: Any) -> str:
    """
    Render a payload into its canonical text form for hashing.

    Integers use their decimal representation; anything else is
    serialized as compact JSON with sorted keys.
    """
    if isinstance(payload, int) and not isinstance(payload, bool):
        return str(payload)
    return json.dumps(payload, sort_keys=True, separators=(',', ':'))


def compute_block_hash(
    index: int,
    timestamp: str,
    payload: Any,
    prev_hash: str
) -> str:
    """Compute the hex digest for the given block fields."""
    record = str(index) + timestamp + encode_payload(payload) + prev_hash
    return sha256_hex(record.encode('utf-8'))


# ============================================================================
# Block Structure (Immutable)
# ============================================================================

@dataclass(frozen=True)
class Block:
    """
    Immutable block structure for the chain.

    frozen=True lets any number of threads read a block without
    coordination once it has been created.
    """
    index: int
    timestamp: str
    payload: Any
    hash: str
    prev_hash: str

    def compute_hash(self) -> str:
        """Recompute the digest from this block's fields."""
        return compute_block_hash(
            self.index, self.timestamp, self.payload, self.prev_hash
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to its wire record."""
        return {
            'index': self.index,
            'timestamp': self.timestamp,
            'payload': self.payload,
            'hash': self.hash,
            'prevHash': self.prev_hash,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        """
        Create block from a wire record.

        Accepts both the current field names and the legacy
        Index/Timestamp/BPM/Hash/PrevHash names.

        Raises:
            MalformedRecordError: If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"block record must be an object, got {type(data).__name__}")

        record = {_LEGACY_KEYS.get(key, key): value for key, value in data.items()}

        missing = [
            key for key in ('index', 'timestamp', 'payload', 'hash', 'prevHash')
            if key not in record
        ]
        if missing:
            raise MalformedRecordError(f"block record missing fields: {', '.join(missing)}")

        index = record['index']
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise MalformedRecordError(f"invalid index: {index!r}")
        for key in ('timestamp', 'hash', 'prevHash'):
            if not isinstance(record[key], str):
                raise MalformedRecordError(f"{key} must be a string")

        return cls(
            index=index,
            timestamp=record['timestamp'],
            payload=record['payload'],
            hash=record['hash'],
            prev_hash=record['prevHash'],
        )

    def __str__(self) -> str:
        return (
            f"Block #{self.index}\n"
            f"  Time: {self.timestamp}\n"
            f"  Payload: {encode_payload(self.payload)}\n"
            f"  Hash: {self.hash[:16]}...\n"
            f"  Prev: {self.prev_hash[:16] or '-'}"
        )


def create_block(index: int, timestamp: str, payload: Any, prev_hash: str) -> Block:
    """Build a block and fill in its hash."""
    return Block(
        index=index,
        timestamp=timestamp,
        payload=payload,
        hash=compute_block_hash(index, timestamp, payload, prev_hash),
        prev_hash=prev_hash,
    )


def create_genesis_block(timestamp: Optional[str] = None) -> Block:
    """
    Create the genesis (first) block.

    Args:
        timestamp: Fixed timestamp; defaults to the current time

    Returns:
        Block with index 0, payload 0 and an empty prev_hash
    """
    return create_block(
        GENESIS_INDEX,
        timestamp if timestamp is not None else now_timestamp(),
        GENESIS_PAYLOAD,
        GENESIS_PREV_HASH,
    )


# ============================================================================
# Chain Serialization
# ============================================================================

def chain_to_records(chain: Iterable[Block]) -> List[Dict[str, Any]]:
    """Serialize a chain as a list of records, newest last."""
    return [block.to_dict() for block in chain]


def chain_from_records(records: Sequence[Dict[str, Any]]) -> Tuple[Block, ...]:
    """Parse a list of records back into blocks."""
    if not isinstance(records, (list, tuple)):
        raise MalformedRecordError("chain must be a list of block records")
    return tuple(Block.from_dict(record) for record in records)


def chain_to_json(chain: Iterable[Block], indent: Optional[int] = 2) -> str:
    """Serialize a chain to JSON."""
    return json.dumps(chain_to_records(chain), indent=indent)


def chain_from_json(json_str: str) -> Tuple[Block, ...]:
    """
    Deserialize a chain from JSON.

    The result is not validated; pass it to `is_chain_valid` before
    trusting it.
    """
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"chain is not valid JSON: {e}") from e
    return chain_from_records(data)
