"""Test helpers shared across the suite.

`fake_driver` provides a PyMySQL-compatible fake connection; fixtures live in tests/conftest.py.
"""
