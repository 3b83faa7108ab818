"""Manual flag overrides: admin/debug force-enable and force-disable.

Per-user overrides win over global ones. Writes take a lock; reads do not.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class Override:
    flag: str
    enabled: bool
    user_id: str | None = None


class OverrideStore:
    def __init__(self, initial: Mapping[str, bool] | None = None) -> None:
        self._global: dict[str, bool] = dict(initial or {})
        self._per_user: dict[str, dict[str, bool]] = {}
        self._lock = threading.Lock()

    def set(self, flag: str, enabled: bool, user_id: str | None = None) -> None:
        with self._lock:
            if user_id is None:
                self._global = {**self._global, flag: enabled}
            else:
                users = dict(self._per_user.get(flag, {}))
                users[user_id] = enabled
                self._per_user = {**self._per_user, flag: users}

    def force_enable(self, flag: str, user_id: str | None = None) -> None:
        self.set(flag, True, user_id)

    def force_disable(self, flag: str, user_id: str | None = None) -> None:
        self.set(flag, False, user_id)

    def set_many(self, overrides: Iterable[Override]) -> None:
        for override in overrides:
            self.set(override.flag, override.enabled, override.user_id)

    def clear(self, flag: str, user_id: str | None = None) -> None:
        with self._lock:
            if user_id is None:
                self._global = {k: v for k, v in self._global.items() if k != flag}
            elif flag in self._per_user:
                users = {k: v for k, v in self._per_user[flag].items() if k != user_id}
                self._per_user = {**self._per_user, flag: users}

    def clear_all(self) -> None:
        with self._lock:
            self._global = {}
            self._per_user = {}

    def get(self, flag: str, user_id: str | None = None) -> Override | None:
        if user_id is not None:
            users = self._per_user.get(flag)
            if users and user_id in users:
                return Override(flag=flag, enabled=users[user_id], user_id=user_id)
        if flag in self._global:
            return Override(flag=flag, enabled=self._global[flag])
        return None
