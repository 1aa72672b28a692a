# PulseChain Test Suite
"""
Test suite including:
- Unit tests for the chain core
- Concurrency tests for submission arbitration
- Integration tests for the HTTP and socket front ends

Run with: pytest
"""
