# Core Cryptography Module
"""
SHA-256 digests used for block hashing.
"""
