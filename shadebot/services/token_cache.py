from __future__ import annotations

import threading
import time
from typing import Any, Callable, Iterable, Sequence

from shadebot.errors import FetchError
from shadebot.schemas.token import MergedToken, Snapshot
from shadebot.services import token_query
from shadebot.services.token_merge import LP_NAME_MARKER, build_snapshot

TRACK_TOKENS = "tokens"
TRACK_PRICES = "prices"
TRACKS = (TRACK_TOKENS, TRACK_PRICES)

STATE_STALE = "STALE"
STATE_REFRESHING = "REFRESHING"
STATE_FRESH = "FRESH"

TOKENS_MAX_AGE_SEC = 24 * 60 * 60
PRICES_MAX_AGE_SEC = 5 * 60


class _InFlightRefresh:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.error: BaseException | None = None


class _Track:
    def __init__(self, name: str, max_age_sec: float) -> None:
        self.name = name
        self.max_age_sec = max_age_sec
        self.rows: list[Any] = []
        # None means never fetched, which counts as expired
        self.fetched_at: float | None = None
        self.in_flight: _InFlightRefresh | None = None
        self.fetches = 0
        self.failures = 0
        self.waits = 0
        self.last_error: str | None = None

    def age(self, now: float) -> float | None:
        if self.fetched_at is None:
            return None
        return float(max(now - self.fetched_at, 0))

    def is_stale(self, now: float) -> bool:
        age = self.age(now)
        return age is None or age > self.max_age_sec


class TokenCache:
    """Lazily refreshed token/price snapshot shared by every request handler.

    Token metadata and prices age independently. A stale track is refetched on
    the next ``ensure_fresh`` call, at most one fetch per track is in flight,
    and each successful fetch republishes a merged ``Snapshot``. Readers only
    ever see whole snapshots, and a failed fetch keeps the last one in place.
    """

    def __init__(
        self,
        client,
        *,
        tokens_max_age_sec: float = TOKENS_MAX_AGE_SEC,
        prices_max_age_sec: float = PRICES_MAX_AGE_SEC,
        exclude_markers: Sequence[str] = (LP_NAME_MARKER,),
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.exclude_markers = tuple(exclude_markers)
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        self._tracks = {
            TRACK_TOKENS: _Track(TRACK_TOKENS, tokens_max_age_sec),
            TRACK_PRICES: _Track(TRACK_PRICES, prices_max_age_sec),
        }
        self._snapshot = Snapshot()

    def configure(
        self,
        *,
        tokens_max_age_sec: float | None = None,
        prices_max_age_sec: float | None = None,
        exclude_markers: Sequence[str] | None = None,
    ) -> None:
        """Apply runtime settings; takes effect from the next refresh."""
        with self._lock:
            if tokens_max_age_sec is not None:
                self._tracks[TRACK_TOKENS].max_age_sec = tokens_max_age_sec
            if prices_max_age_sec is not None:
                self._tracks[TRACK_PRICES].max_age_sec = prices_max_age_sec
            if exclude_markers is not None:
                self.exclude_markers = tuple(exclude_markers)

    def _fetch(self, track: _Track) -> list[Any]:
        if track.name == TRACK_TOKENS:
            return list(self.client.fetch_tokens())
        return list(self.client.fetch_prices())

    def _publish_locked(self) -> Snapshot:
        snapshot = build_snapshot(
            self._tracks[TRACK_TOKENS].rows,
            self._tracks[TRACK_PRICES].rows,
            version=self._snapshot.version + 1,
            published_at=self._wall_clock(),
            exclude_markers=self.exclude_markers,
        )
        self._snapshot = snapshot
        return snapshot

    def _refresh_track(self, track: _Track) -> bool:
        """Refresh ``track`` if stale. Returns True when this call fetched."""
        with self._lock:
            if not track.is_stale(self._clock()):
                return False
            pending = track.in_flight
            owner = pending is None
            if owner:
                pending = track.in_flight = _InFlightRefresh()
            else:
                track.waits += 1

        if not owner:
            print(f"[CACHE][refresh_wait] track={track.name}", flush=True)
            pending.done.wait()
            if pending.error is not None:
                raise pending.error
            return False

        print(f"[CACHE][refresh_start] track={track.name}", flush=True)
        try:
            rows = self._fetch(track)
            with self._lock:
                track.rows = rows
                track.fetched_at = self._clock()
                track.fetches += 1
                track.last_error = None
                snapshot = self._publish_locked()
        except Exception as exc:
            pending.error = exc
            with self._lock:
                track.failures += 1
                track.last_error = str(exc)
            print(f"[CACHE][refresh_failed] track={track.name} error={exc}", flush=True)
            raise
        finally:
            # publish happens before the marker clears so waiters see the new snapshot
            with self._lock:
                track.in_flight = None
            pending.done.set()

        print(
            f"[CACHE][refresh_ok] track={track.name} rows={len(rows)} "
            f"snapshot_version={snapshot.version} snapshot_size={len(snapshot.tokens)}",
            flush=True,
        )
        return True

    def ensure_fresh(self) -> Snapshot:
        """Refresh every stale track, then return the current snapshot.

        Both tracks are attempted even when one fails; the first fetch error is
        raised afterwards. Whatever did refresh is already published by then.
        """
        first_error: FetchError | None = None
        for name in TRACKS:
            try:
                self._refresh_track(self._tracks[name])
            except FetchError as exc:
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error
        return self._snapshot

    def current_snapshot(self) -> Snapshot:
        return self._snapshot

    def is_stale(self, track: str) -> bool:
        with self._lock:
            return self._tracks[track].is_stale(self._clock())

    @staticmethod
    def _state_locked(track: _Track, now: float) -> str:
        if track.in_flight is not None:
            return STATE_REFRESHING
        if track.is_stale(now):
            return STATE_STALE
        return STATE_FRESH

    def track_state(self, track: str) -> str:
        with self._lock:
            return self._state_locked(self._tracks[track], self._clock())

    def search(self, query: str) -> list[MergedToken]:
        return token_query.search(self.current_snapshot(), query)

    def compute_ratio(self, base_symbol: str, quote_symbol: str) -> float:
        return token_query.compute_ratio(self.current_snapshot(), base_symbol, quote_symbol)

    def compute_ratios(self, pairs: Iterable[tuple[str, str]]) -> list[tuple[str, str, float]]:
        return token_query.compute_ratios(self.current_snapshot(), pairs)

    def metrics(self) -> dict:
        snapshot = self.current_snapshot()
        out: dict[str, Any] = {
            "snapshot_version": snapshot.version,
            "snapshot_size": len(snapshot.tokens),
            "snapshot_published_at": snapshot.published_at,
        }
        for name in TRACKS:
            with self._lock:
                track = self._tracks[name]
                now = self._clock()
                out.update(
                    {
                        f"{name}_state": self._state_locked(track, now),
                        f"{name}_rows": len(track.rows),
                        f"{name}_age_sec": track.age(now),
                        f"{name}_max_age_sec": track.max_age_sec,
                        f"{name}_fetches": track.fetches,
                        f"{name}_failures": track.failures,
                        f"{name}_waits": track.waits,
                        f"{name}_last_error": track.last_error,
                    }
                )
        return out
