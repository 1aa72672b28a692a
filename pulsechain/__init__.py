# PulseChain
"""
Hash-linked chain of heart-rate readings shared by concurrent producers.

Subpackages:
- core_crypto: SHA-256 digests
- blockchain: blocks, validation, the chain store and block production
- integration: submission arbitration, update feeds, logging
- transport: socket and HTTP front ends
"""

__version__ = "0.1.0"
