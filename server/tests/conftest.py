# Ensure the project root (server directory) is on sys.path so tests can import main, schemas and expression_core
import os
import sys

import pytest

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
SERVER_ROOT = os.path.dirname(PROJECT_ROOT)
if SERVER_ROOT not in sys.path:
    sys.path.insert(0, SERVER_ROOT)

from expression_core.nodes import IdGenerator  # noqa: E402


@pytest.fixture
def ids():
    """A fresh identity generator, so identities are reproducible per test."""
    return IdGenerator()
