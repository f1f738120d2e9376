import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from telegram.error import BadRequest

from shadebot.bot.handlers import COMMUNITY_LINK, MAX_INLINE_RESULTS, PriceBot
from shadebot.errors import NetworkError
from shadebot.schemas.token import PriceQuote, TokenRecord
from shadebot.services.member_store import MemberStore
from shadebot.services.token_cache import TokenCache


def make_token(token_id: str, name: str, symbol: str, price_id: str) -> TokenRecord:
    return TokenRecord(
        id=token_id,
        name=name,
        code_hash=None,
        contract_address=None,
        denom=None,
        flags=[],
        symbol=symbol,
        description=f"{name} token",
        chain={"id": "secret-4"},
        asset={"id": f"asset-{token_id}", "decimals": 6},
        logo_path=None,
        price_token=[{"price_id": price_id}],
    )


class StubShadeClient:
    def __init__(self, tokens, prices) -> None:
        self.tokens = tokens
        self.prices = prices
        self.error: Exception | None = None
        self.calls = 0

    def fetch_tokens(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.tokens)

    def fetch_prices(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.prices)


def _inline_update(query: str, user_id: int = 42) -> MagicMock:
    update = MagicMock()
    update.inline_query.query = query
    update.inline_query.from_user.id = user_id
    update.inline_query.answer = AsyncMock()
    return update


def _message_update(user_id: int = 42) -> MagicMock:
    update = MagicMock()
    update.effective_user.id = user_id
    update.message.reply_text = AsyncMock()
    return update


class PriceBotTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.members = MemberStore(Path(self._tmp.name) / "members.json")
        self.client = StubShadeClient(
            tokens=[
                make_token("t1", "Shade", "SHD", "p1"),
                make_token("t2", "Secret", "SCRT", "p2"),
            ],
            prices=[PriceQuote(id="p1", value=2.5), PriceQuote(id="p2", value=0.5)],
        )
        self.now = [1000.0]
        self.cache = TokenCache(self.client, clock=lambda: self.now[0])
        self.bot = PriceBot(
            "123:test",
            cache=self.cache,
            members=self.members,
            ratio_pairs=[("SHD", "SCRT"), ("SHD", "stkd-SCRT")],
            application=MagicMock(),
        )

    def tearDown(self):
        self._tmp.cleanup()

    def test_handlers_are_registered(self):
        self.assertEqual(self.bot.application.add_handler.call_count, 4)
        self.bot.application.add_error_handler.assert_called_once()

    async def test_empty_inline_query_answers_nothing(self):
        update = _inline_update("   ")
        await self.bot.on_inline_query(update, MagicMock())

        update.inline_query.answer.assert_awaited_once_with([])
        self.assertEqual(self.client.calls, 0)

    async def test_non_member_gets_join_prompt(self):
        update = _inline_update("shade", user_id=99)
        await self.bot.on_inline_query(update, MagicMock())

        args, kwargs = update.inline_query.answer.call_args
        self.assertEqual(len(args[0]), 1)
        self.assertEqual(args[0][0].id, "001")
        self.assertEqual(kwargs["cache_time"], 10)
        self.assertEqual(kwargs["button"].start_parameter, "amber_rocks")
        self.assertEqual(self.client.calls, 0)

    async def test_member_search_refreshes_and_answers(self):
        self.members.add(42)
        update = _inline_update(" shade ")
        await self.bot.on_inline_query(update, MagicMock())

        results = update.inline_query.answer.call_args.args[0]
        self.assertEqual([r.title for r in results], ["SHD = 2.500 USD"])
        self.assertEqual(self.client.calls, 2)

    async def test_gate_disabled_serves_everyone(self):
        self.bot.gate_enabled = False
        update = _inline_update("secret", user_id=5)
        await self.bot.on_inline_query(update, MagicMock())

        results = update.inline_query.answer.call_args.args[0]
        self.assertEqual([r.title for r in results], ["SCRT = 0.500 USD"])

    async def test_ratio_keyword_returns_ratio_articles(self):
        self.members.add(42)
        update = _inline_update("ratio")
        await self.bot.on_inline_query(update, MagicMock())

        results = update.inline_query.answer.call_args.args[0]
        self.assertEqual([r.title for r in results], ["1 SHD = 5.00 SCRT", "stkd-SCRT not found"])

    async def test_search_results_are_capped(self):
        self.members.add(42)
        self.client.tokens = [make_token(f"t{i}", f"Token {i:03d}", f"T{i}", "p1") for i in range(80)]
        update = _inline_update("token")
        await self.bot.on_inline_query(update, MagicMock())

        results = update.inline_query.answer.call_args.args[0]
        self.assertEqual(len(results), MAX_INLINE_RESULTS)

    async def test_fetch_failure_serves_cached_snapshot(self):
        self.members.add(42)
        self.cache.ensure_fresh()
        self.now[0] += 301
        self.client.error = NetworkError(operation="getPrices")
        update = _inline_update("shade")

        await self.bot.on_inline_query(update, MagicMock())

        results = update.inline_query.answer.call_args.args[0]
        self.assertEqual([r.title for r in results], ["SHD = 2.500 USD"])

    async def test_answer_error_is_logged_not_raised(self):
        self.members.add(42)
        update = _inline_update("shade")
        update.inline_query.answer.side_effect = BadRequest("Query is too old")

        await self.bot.on_inline_query(update, MagicMock())

    async def test_start_adds_member(self):
        update = _message_update(user_id=7)
        await self.bot.cmd_start(update, MagicMock())

        self.assertTrue(self.members.contains(7))
        update.message.reply_text.assert_awaited_once_with(COMMUNITY_LINK)

    async def test_help_lists_commands(self):
        update = _message_update()
        await self.bot.cmd_help(update, MagicMock())

        text = update.message.reply_text.call_args.args[0]
        self.assertIn("/start", text)
        self.assertIn("/help", text)
        self.assertIn("/ratio", text)

    async def test_ratio_command(self):
        update = _message_update()
        await self.bot.cmd_ratio(update, MagicMock())

        update.message.reply_text.assert_awaited_once_with("1 SHD = 5.00 SCRT\nstkd-SCRT not found")


if __name__ == "__main__":
    unittest.main()
