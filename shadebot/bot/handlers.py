from __future__ import annotations

import asyncio

from telegram import BotCommand, InlineQueryResultsButton, Update
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, InlineQueryHandler

from shadebot.bot.formatting import format_ratio, join_article, not_found_article, ratio_article, token_article
from shadebot.errors import FetchError, TokenNotFoundError
from shadebot.services import token_query
from shadebot.services.member_store import MemberStore
from shadebot.services.token_cache import TokenCache

COMMUNITY_LINK = "https://t.me/AmberDAOscrt"
# Telegram rejects inline answers with more than 50 results
MAX_INLINE_RESULTS = 50
RATIO_KEYWORD = "ratio"

COMMANDS = [
    ("start", "Be greeted by the bot"),
    ("help", "Get a list of commands"),
    ("ratio", "Get SHD price ratios"),
]


class PriceBot:
    """Telegram surface over a shared TokenCache: commands plus inline price lookup."""

    def __init__(
        self,
        token: str,
        *,
        cache: TokenCache,
        members: MemberStore,
        ratio_pairs: list[tuple[str, str]] | None = None,
        gate_enabled: bool = True,
        bot_username: str = "two_amber_bot",
        application: Application | None = None,
    ) -> None:
        self.cache = cache
        self.members = members
        self.ratio_pairs = list(ratio_pairs or [("SHD", "SCRT"), ("SHD", "stkd-SCRT")])
        self.gate_enabled = gate_enabled
        self.bot_username = bot_username

        self.application = application or Application.builder().token(token).build()
        self.application.add_handler(CommandHandler("start", self.cmd_start))
        self.application.add_handler(CommandHandler("help", self.cmd_help))
        self.application.add_handler(CommandHandler("ratio", self.cmd_ratio))
        self.application.add_handler(InlineQueryHandler(self.on_inline_query))
        self.application.add_error_handler(self.on_error)

    async def _refresh(self) -> bool:
        # network fetch runs in a worker thread; other handlers keep reading the snapshot
        try:
            await asyncio.to_thread(self.cache.ensure_fresh)
        except FetchError as exc:
            print(f"[BOT][refresh_failed] serving_version={self.cache.current_snapshot().version} error={exc}", flush=True)
            return False
        return True

    def _ratio_articles(self) -> list:
        snapshot = self.cache.current_snapshot()
        articles = []
        for base, quote in self.ratio_pairs:
            try:
                ratio = token_query.compute_ratio(snapshot, base, quote)
            except TokenNotFoundError as exc:
                articles.append(not_found_article(f"{exc.symbol} not found"))
                continue
            articles.append(ratio_article(base, quote, ratio))
        print(f"[BOT][ratio] pairs={len(self.ratio_pairs)} snapshot_version={snapshot.version}", flush=True)
        return articles

    async def cmd_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is not None:
            self.members.add(user.id)
        await update.message.reply_text(COMMUNITY_LINK)

    async def cmd_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        lines = ["Check out these commands!"]
        lines.extend(f"/{name} - {description}" for name, description in COMMANDS)
        await update.message.reply_text("\n".join(lines))

    async def cmd_ratio(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._refresh()
        snapshot = self.cache.current_snapshot()
        lines = []
        for base, quote in self.ratio_pairs:
            try:
                lines.append(format_ratio(base, quote, token_query.compute_ratio(snapshot, base, quote)))
            except TokenNotFoundError as exc:
                lines.append(f"{exc.symbol} not found")
        await update.message.reply_text("\n".join(lines))

    async def on_inline_query(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        inline_query = update.inline_query
        query = (inline_query.query or "").strip()

        if not query:
            await inline_query.answer([])
            return

        if self.gate_enabled and inline_query.from_user.id not in self.members:
            await inline_query.answer(
                [join_article(self.bot_username)],
                button=InlineQueryResultsButton(text="Support Amber on Telegram", start_parameter="amber_rocks"),
                cache_time=10,
            )
            return

        await self._refresh()

        if query == RATIO_KEYWORD:
            results = self._ratio_articles()
        else:
            results = [token_article(row) for row in self.cache.search(query)[:MAX_INLINE_RESULTS]]

        try:
            await inline_query.answer(
                results,
                button=InlineQueryResultsButton(text="Powered by Amber", start_parameter="parameter"),
            )
        except TelegramError as exc:
            print(f"[BOT][inline_answer_error] query={query!r} error={exc}", flush=True)

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        print(f"[BOT][handler_error] error={context.error!r}", flush=True)

    async def start(self) -> None:
        await self.application.initialize()
        await self.application.bot.set_my_commands([BotCommand(name, desc) for name, desc in COMMANDS])
        await self.application.start()
        await self.application.updater.start_polling()
        print("[BOT][polling_start]", flush=True)

    async def stop(self) -> None:
        updater = self.application.updater
        if updater is not None and updater.running:
            await updater.stop()
        if self.application.running:
            await self.application.stop()
        await self.application.shutdown()
        print("[BOT][polling_stop]", flush=True)
