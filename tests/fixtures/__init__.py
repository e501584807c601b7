"""Shared test fixtures and builders for clicksynth tests."""

from .builders import (
    create_test_action,
    create_test_clickpack,
    create_test_sample,
    create_test_timeline,
    write_test_clickpack,
    write_test_wav,
)

__all__ = [
    "create_test_action",
    "create_test_clickpack",
    "create_test_sample",
    "create_test_timeline",
    "write_test_clickpack",
    "write_test_wav",
]
