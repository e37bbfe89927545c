from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import List, Optional
import os


@dataclass
class ServiceConfig:
    max_stake: Decimal = Decimal("10000")
    reward_multiplier: Decimal = Decimal("2")
    draw_count: int = 3
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])
    # Fixed seed for reproducible deals (tests, local play); None = system entropy
    deal_seed: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.max_stake.is_finite() or self.max_stake <= 0:
            raise ValueError(f"max_stake must be positive, got {self.max_stake}")
        if not self.reward_multiplier.is_finite() or self.reward_multiplier <= 0:
            raise ValueError(f"reward_multiplier must be positive, got {self.reward_multiplier}")
        if self.draw_count < 1:
            raise ValueError(f"draw_count must be at least 1, got {self.draw_count}")


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else None


@lru_cache
def load_config() -> ServiceConfig:
    seed = _env_int("KLONDIKE_DEAL_SEED")
    return ServiceConfig(
        max_stake=Decimal(os.environ.get("KLONDIKE_MAX_STAKE", "10000")),
        reward_multiplier=Decimal(os.environ.get("KLONDIKE_REWARD_MULTIPLIER", "2")),
        draw_count=_env_int("KLONDIKE_DRAW_COUNT") or 3,
        allowed_origins=os.environ.get("KLONDIKE_ALLOWED_ORIGINS", "*").split(","),
        deal_seed=seed,
    )
