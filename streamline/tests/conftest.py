from __future__ import annotations

from pathlib import Path

import pytest

from streamline.abi import ContractInterface, load_interface
from streamline.config import load_config

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch: pytest.MonkeyPatch):
    """Every test sees defaults unless it sets STREAMLINE_* itself."""
    for var in (
        "STREAMLINE_RPC_URL",
        "STREAMLINE_RPC_TIMEOUT",
        "STREAMLINE_CALL_BLOCK_TAG",
        "STREAMLINE_LOG_CONVERSIONS",
        "STREAMLINE_LOG_LEVEL",
        "STREAMLINE_MAX_STORE_KEY_BYTES",
        "STREAMLINE_MAX_STORE_VALUE_BYTES",
        "STREAMLINE_ABI_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def erc20() -> ContractInterface:
    return load_interface(FIXTURES / "erc20.json")


@pytest.fixture
def pair() -> ContractInterface:
    return load_interface(FIXTURES / "pair.json")
