"""Cached student lists with optimistic activate/deactivate."""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from app.core.session import SessionContext
from app.services.optimistic import update_list_optimistically
from app.services.platform import PlatformClient

logger = logging.getLogger(__name__)

STUDENT_LIST_LIMIT = 1000


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _cache_key(session: SessionContext) -> str:
    return session.user.institution_id or f"user:{session.user.id}"


def _extract_students(payload: Any) -> list[dict]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("students", "items", "data"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def _index_of(items: list[dict], student_id: str) -> int | None:
    for i, item in enumerate(items):
        if str(item.get("id")) == student_id:
            return i
    return None


class _CachedList:
    def __init__(self, items: list[dict]):
        self.items = items
        self.fetched_at = _now()


class StudentDirectory:
    """Student lists per institution, refetched once older than ``ttl``."""

    def __init__(self, ttl: timedelta = timedelta(minutes=15)):
        self.ttl = ttl
        self._lists: dict[str, _CachedList] = {}

    def __len__(self) -> int:
        return len(self._lists)

    def clear(self) -> None:
        self._lists.clear()

    def _evict_expired(self) -> None:
        cutoff = _now() - self.ttl
        expired = [key for key, cached in self._lists.items() if cached.fetched_at < cutoff]
        for key in expired:
            del self._lists[key]

    def _items(self, key: str) -> list[dict]:
        self._evict_expired()
        if key not in self._lists:
            self._lists[key] = _CachedList([])
        return self._lists[key].items

    async def list_students(
        self,
        client: PlatformClient,
        session: SessionContext,
        refresh: bool = False,
    ) -> list[dict]:
        self._evict_expired()
        key = _cache_key(session)
        if refresh or key not in self._lists:
            payload = await client.get_json(
                "/principal/students",
                session.access_token,
                params={"limit": STUDENT_LIST_LIMIT},
                fallback="Failed to load students",
            )
            self._lists[key] = _CachedList(_extract_students(payload))
        return self._lists[key].items

    async def set_active(
        self,
        client: PlatformClient,
        session: SessionContext,
        student_id: str,
        is_active: bool,
    ) -> list[dict]:
        items = self._items(_cache_key(session))
        action = "activate" if is_active else "deactivate"

        def mutate(students: list[dict]) -> None:
            i = _index_of(students, student_id)
            if i is not None:
                students[i] = {**students[i], "isActive": is_active}

        await update_list_optimistically(
            items,
            mutate,
            lambda: client.put_form(
                f"/principal/students/{student_id}",
                session.access_token,
                {"isActive": is_active},
                fallback=f"Failed to {action} student",
            ),
        )
        logger.info("Student %s %sd by %s", student_id, action, session.user.id)
        return items

    async def deactivate(
        self,
        client: PlatformClient,
        session: SessionContext,
        student_id: str,
    ) -> list[dict]:
        items = self._items(_cache_key(session))

        def mutate(students: list[dict]) -> None:
            students[:] = [s for s in students if str(s.get("id")) != student_id]

        await update_list_optimistically(
            items,
            mutate,
            lambda: client.delete(
                f"/principal/students/{student_id}",
                session.access_token,
                fallback="Failed to deactivate student",
            ),
        )
        logger.info("Student %s removed by %s", student_id, session.user.id)
        return items
