from decimal import Decimal

import pytest

from wager import ServiceConfig, load_config


def test_defaults():
    cfg = ServiceConfig()
    assert cfg.max_stake == Decimal("10000")
    assert cfg.reward_multiplier == Decimal("2")
    assert cfg.draw_count == 3
    assert cfg.deal_seed is None


def test_load_config_reads_environment(monkeypatch):
    monkeypatch.setenv("KLONDIKE_MAX_STAKE", "500")
    monkeypatch.setenv("KLONDIKE_DRAW_COUNT", "1")
    monkeypatch.setenv("KLONDIKE_DEAL_SEED", "99")
    monkeypatch.setenv("KLONDIKE_ALLOWED_ORIGINS", "https://a.example,https://b.example")
    load_config.cache_clear()
    try:
        cfg = load_config()
        assert cfg.max_stake == Decimal("500")
        assert cfg.draw_count == 1
        assert cfg.deal_seed == 99
        assert cfg.allowed_origins == ["https://a.example", "https://b.example"]
    finally:
        load_config.cache_clear()


def test_rejects_non_positive_reward_multiplier(monkeypatch):
    with pytest.raises(ValueError):
        ServiceConfig(reward_multiplier=Decimal("0"))
    with pytest.raises(ValueError):
        ServiceConfig(reward_multiplier=Decimal("-1"))
    monkeypatch.setenv("KLONDIKE_REWARD_MULTIPLIER", "0")
    load_config.cache_clear()
    try:
        with pytest.raises(ValueError):
            load_config()
    finally:
        load_config.cache_clear()


def test_rejects_bad_stake_cap_and_draw_count():
    with pytest.raises(ValueError):
        ServiceConfig(max_stake=Decimal("0"))
    with pytest.raises(ValueError):
        ServiceConfig(draw_count=0)
