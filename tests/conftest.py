"""Test configuration for pytest."""

import logging
import os
import pytest

from hashcluster.hashing.bits import Hash
from hashcluster.logging import configure_logging


@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests to be minimal."""
    # Set environment variable to ensure minimal logging during tests
    os.environ['HASHCLUSTER_LOG_LEVEL'] = 'WARNING'
    configure_logging()

    # Also configure root logger to be quiet
    logging.getLogger().setLevel(logging.WARNING)

    # The composite logs rejected operations before raising
    logging.getLogger('hashcluster.fuzzy.composite').setLevel(logging.CRITICAL)


@pytest.fixture
def three_hashes():
    """The 1001 / 1011 / 1111 example, all from algorithm 7."""
    return [
        Hash.from_string("1001", 7),
        Hash.from_string("1011", 7),
        Hash.from_string("1111", 7),
    ]
