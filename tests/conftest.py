"""
Pytest configuration and fixtures for lorevault tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing lorevault
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from lorevault.context import EngineContext  # noqa: E402


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def context():
    """An open in-memory engine context."""
    async with EngineContext.in_memory() as ctx:
        yield ctx
