# Transport Module
"""
Front ends that feed readings into the arbitrator:
- Line-oriented TCP server
- HTTP API (Flask)
"""
