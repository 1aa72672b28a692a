# Integration Module
"""
Glue between producers and the chain store:
- Submission arbitration (one atomic read-validate-replace per append)
- Bounded update feeds for slow subscribers
"""
