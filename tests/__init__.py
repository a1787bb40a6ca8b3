# a51lab Test Suite
"""
Test suite including:
- Unit tests (registers, clocking, sequencer, keystream, codec)
- Session and integration tests
- Invalid input / wrong phase tests

Run with: pytest
Coverage: coverage run -m pytest && coverage report
"""
