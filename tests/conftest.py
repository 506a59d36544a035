"""Shared fixtures: cheap Argon2id parameters and a seeded random source."""

import random

import pytest

from keyweave.security.kdf import KdfParams


@pytest.fixture
def fast_params():
    """Argon2id parameters cheap enough for unit tests."""
    return KdfParams(version="test", time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def seeded_random():
    """Deterministic stand-in for os.urandom."""
    return random.Random(1234).randbytes
