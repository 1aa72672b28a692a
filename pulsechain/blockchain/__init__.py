# Blockchain Module
"""
Chain-integrity core including:
- Immutable blocks with deterministic SHA-256 hashes
- Link and whole-chain validation
- Longest-chain fork choice
- Block production from submitted readings
"""

_MODULES = {
    'Block': 'ledger',
    'compute_block_hash': 'ledger',
    'create_block': 'ledger',
    'create_genesis_block': 'ledger',
    'chain_to_json': 'ledger',
    'chain_from_json': 'ledger',
    'GENESIS_PREV_HASH': 'ledger',
    'is_link_valid': 'validation',
    'is_chain_valid': 'validation',
    'ChainStore': 'store',
    'parse_payload': 'producer',
    'propose': 'producer',
    'ChainError': 'errors',
    'PayloadParseError': 'errors',
    'ValidationFailed': 'errors',
    'ChainNotExtended': 'errors',
    'MalformedRecordError': 'errors',
}


# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    if name not in _MODULES:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module
    module = import_module(f".{_MODULES[name]}", __name__)
    return getattr(module, name)

__all__ = list(_MODULES)
