from __future__ import annotations

import math
import uuid

from telegram import InlineQueryResultArticle, InputTextMessageContent

from shadebot.schemas.token import MergedToken

SHD_THUMBNAIL_URL = "https://raw.githubusercontent.com/cosmos/chain-registry/master/secretnetwork/images/shd.png"
AMBER_LOGO_URL = "https://raw.githubusercontent.com/kent-3/amber-app/main/static/amber-logo.png"


def format_price(token: MergedToken) -> str:
    return f"{token.symbol} = {token.price:.3f} USD"


def format_ratio(base: str, quote: str, ratio: float) -> str:
    # inf/nan come from zero prices upstream and are shown, not raised
    value = f"{ratio:.2f}" if math.isfinite(ratio) else "n/a"
    return f"1 {base} = {value} {quote}"


def _thumbnail(logo_path: str | None) -> str | None:
    if logo_path and logo_path.startswith(("http://", "https://")):
        return logo_path
    return None


def token_article(token: MergedToken) -> InlineQueryResultArticle:
    text = format_price(token)
    return InlineQueryResultArticle(
        id=token.id,
        title=text,
        input_message_content=InputTextMessageContent(text),
        description=token.description or None,
        thumbnail_url=_thumbnail(token.logo_path),
    )


def ratio_article(base: str, quote: str, ratio: float) -> InlineQueryResultArticle:
    text = format_ratio(base, quote, ratio)
    return InlineQueryResultArticle(
        id=str(uuid.uuid4()),
        title=text,
        input_message_content=InputTextMessageContent(text),
        thumbnail_url=SHD_THUMBNAIL_URL,
    )


def not_found_article(text: str) -> InlineQueryResultArticle:
    return InlineQueryResultArticle(
        id=str(uuid.uuid4()),
        title=text,
        input_message_content=InputTextMessageContent(text),
    )


def join_article(bot_username: str) -> InlineQueryResultArticle:
    return InlineQueryResultArticle(
        id="001",
        title="👆👆👆",
        input_message_content=InputTextMessageContent(f"@{bot_username}"),
        description="Follow the link above to use this bot",
        thumbnail_url=AMBER_LOGO_URL,
    )
