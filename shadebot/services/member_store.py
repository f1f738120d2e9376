from __future__ import annotations

import json
import threading
from pathlib import Path


class MemberStore:
    """Telegram user ids allowed past the inline-query gate, kept in a JSON file."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self._members: set[int] = set()

    def load(self) -> set[int]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            members: set[int] = set()
        else:
            try:
                members = {int(uid) for uid in json.loads(raw)}
            except (TypeError, ValueError) as exc:
                print(f"[MEMBERS][load_invalid] path={self.path} error={exc}", flush=True)
                members = set()

        with self._lock:
            self._members = members
        print(f"[MEMBERS][load] path={self.path} count={len(members)}", flush=True)
        return set(members)

    def _save_locked(self, members: set[int]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(sorted(members)), encoding="utf-8")

    def add(self, user_id: int) -> bool:
        with self._lock:
            if user_id in self._members:
                return False
            members = self._members | {int(user_id)}
            self._save_locked(members)
            self._members = members
        print(f"[MEMBERS][add] user_id={user_id} count={len(self)}", flush=True)
        return True

    def contains(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._members

    def __contains__(self, user_id: object) -> bool:
        return isinstance(user_id, int) and self.contains(user_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._members)
