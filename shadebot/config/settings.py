import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, PositiveFloat, PositiveInt

DEFAULT_SHADE_API_URL = "https://prodv1.securesecrets.org/graphql"
DEFAULT_EXCLUDED_NAME_MARKERS = ["SHADESWAP Liquidity Provider (LP)"]
DEFAULT_RATIO_PAIRS = "SHD:SCRT,SHD:stkd-SCRT"


def _parse_ratio_pairs(raw: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        base, sep, quote = item.partition(":")
        if not sep or not base.strip() or not quote.strip():
            raise ValueError(f"invalid ratio pair: {item!r}")
        pairs.append((base.strip(), quote.strip()))
    return pairs


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() not in {"0", "false", "no", "off", ""}


class Settings(BaseModel):
    TELEGRAM_BOT_TOKEN: str | None = None
    BOT_USERNAME: str = "two_amber_bot"
    SHADE_API_URL: str = DEFAULT_SHADE_API_URL
    SHADE_HTTP_TIMEOUT_SEC: PositiveFloat = 10.0
    TOKENS_MAX_AGE_SEC: PositiveInt = 24 * 60 * 60
    PRICES_MAX_AGE_SEC: PositiveInt = 5 * 60
    EXCLUDED_NAME_MARKERS: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_NAME_MARKERS))
    RATIO_PAIRS: list[tuple[str, str]] = Field(default_factory=lambda: _parse_ratio_pairs(DEFAULT_RATIO_PAIRS))
    MEMBERS_FILE: Path = Path("members.json")
    MEMBERS_GATE_ENABLED: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        raw_markers = os.getenv("EXCLUDED_NAME_MARKERS")
        if raw_markers is None:
            markers = list(DEFAULT_EXCLUDED_NAME_MARKERS)
        else:
            markers = [m.strip() for m in raw_markers.split("|") if m.strip()]

        values = {
            "TELEGRAM_BOT_TOKEN": os.getenv("TELEGRAM_BOT_TOKEN") or None,
            "BOT_USERNAME": os.getenv("BOT_USERNAME", "two_amber_bot"),
            "SHADE_API_URL": os.getenv("SHADE_API_URL", DEFAULT_SHADE_API_URL),
            "SHADE_HTTP_TIMEOUT_SEC": os.getenv("SHADE_HTTP_TIMEOUT_SEC", "10"),
            "TOKENS_MAX_AGE_SEC": os.getenv("TOKENS_MAX_AGE_SEC", str(24 * 60 * 60)),
            "PRICES_MAX_AGE_SEC": os.getenv("PRICES_MAX_AGE_SEC", str(5 * 60)),
            "EXCLUDED_NAME_MARKERS": markers,
            "RATIO_PAIRS": _parse_ratio_pairs(os.getenv("RATIO_PAIRS", DEFAULT_RATIO_PAIRS)),
            "MEMBERS_FILE": os.getenv("MEMBERS_FILE", "members.json"),
            "MEMBERS_GATE_ENABLED": _parse_bool(os.getenv("MEMBERS_GATE_ENABLED", "true")),
        }
        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
