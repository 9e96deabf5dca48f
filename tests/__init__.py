"""Test suite for hairswap.

Test Structure:
- unit/: Unit tests for individual components, one directory per package
- integration/: Tests that drive real external binaries (ffmpeg)
- fixtures/: Test doubles and image factories
- conftest.py: Shared fixtures
"""
