"""
Tests for wallet configuration.
"""

import pytest
from pydantic import ValidationError

from jorwallet.config import WalletConfig, get_config


def test_defaults():
    config = WalletConfig()
    assert config.gap_limit == 20
    assert config.max_inputs_per_transaction == 255
    assert config.log_level == "INFO"


def test_environment(monkeypatch):
    monkeypatch.setenv("JOR_WALLET_GAP_LIMIT", "50")
    monkeypatch.setenv("JOR_WALLET_MAX_INPUTS_PER_TRANSACTION", "10")
    config = WalletConfig()
    assert config.gap_limit == 50
    assert config.max_inputs_per_transaction == 10


def test_overrides_win(monkeypatch):
    monkeypatch.setenv("JOR_WALLET_GAP_LIMIT", "50")
    assert get_config(gap_limit=5).gap_limit == 5
    assert get_config(gap_limit=None).gap_limit == 50


@pytest.mark.parametrize(
    "field,value",
    [("gap_limit", 0), ("max_inputs_per_transaction", 0), ("max_inputs_per_transaction", 256)],
)
def test_bounds(field, value):
    with pytest.raises(ValidationError):
        WalletConfig(**{field: value})


def test_frozen():
    config = WalletConfig()
    with pytest.raises(ValidationError):
        config.gap_limit = 3
