"""
capnpgen Test Suite.

This package contains:
- unit/: Unit tests (no external dependencies; the capnp binary is stubbed)
"""
