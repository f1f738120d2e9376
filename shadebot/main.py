from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shadebot.api.routes import router
from shadebot.bot.handlers import PriceBot
from shadebot.config.settings import Settings, get_settings
from shadebot.integrations.shade_graphql import ShadeGraphqlClient
from shadebot.services.member_store import MemberStore
from shadebot.services.token_cache import TokenCache


def build_token_cache(settings: Settings) -> TokenCache:
    client = ShadeGraphqlClient(settings.SHADE_API_URL, timeout=settings.SHADE_HTTP_TIMEOUT_SEC)
    return TokenCache(
        client,
        tokens_max_age_sec=settings.TOKENS_MAX_AGE_SEC,
        prices_max_age_sec=settings.PRICES_MAX_AGE_SEC,
        exclude_markers=settings.EXCLUDED_NAME_MARKERS,
    )


def build_price_bot(settings: Settings, cache: TokenCache, members: MemberStore) -> PriceBot:
    return PriceBot(
        settings.TELEGRAM_BOT_TOKEN,
        cache=cache,
        members=members,
        ratio_pairs=settings.RATIO_PAIRS,
        gate_enabled=settings.MEMBERS_GATE_ENABLED,
        bot_username=settings.BOT_USERNAME,
    )


def _apply_settings(app: FastAPI, settings: Settings) -> None:
    cache = app.state.token_cache
    client = cache.client
    # injected stub clients (tests) keep their own endpoint config
    if isinstance(client, ShadeGraphqlClient):
        client.url = settings.SHADE_API_URL
        client.timeout = settings.SHADE_HTTP_TIMEOUT_SEC
    cache.configure(
        tokens_max_age_sec=settings.TOKENS_MAX_AGE_SEC,
        prices_max_age_sec=settings.PRICES_MAX_AGE_SEC,
        exclude_markers=settings.EXCLUDED_NAME_MARKERS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    bot = None
    settings = app.state.get_settings()
    _apply_settings(app, settings)

    members = MemberStore(settings.MEMBERS_FILE)
    members.load()
    app.state.member_store = members

    if settings.TELEGRAM_BOT_TOKEN:
        bot = app.state.bot_factory(settings, app.state.token_cache, members)
        try:
            await bot.start()
        except Exception as exc:
            # keep the HTTP surface up when Telegram is unreachable
            print(f"[BOT][polling_start_error] error={exc}", flush=True)
            bot = None
    else:
        print("[BOT][disabled] reason=TELEGRAM_BOT_TOKEN not set", flush=True)
    app.state.price_bot = bot

    try:
        yield
    finally:
        if bot is not None:
            await bot.stop()
        app.state.price_bot = None


app = FastAPI(title="Shade Price Bot", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

# NOTE: env is read lazily in lifespan so importing the app needs no configuration.
app.state.get_settings = get_settings
app.state.bot_factory = build_price_bot
app.state.token_cache = build_token_cache(Settings())
app.state.member_store = None
app.state.price_bot = None
