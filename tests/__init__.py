"""
Test suite for btc1_client

Contains:
- tests/unit/   : Unit tests for individual modules
- tests/fakes.py: In-memory chain read/write clients and wallet session
"""
