from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
import json
import weakref

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

# An AsyncSession runs one statement at a time; callers may gather fetches on a shared session.
_session_locks: "weakref.WeakKeyDictionary[AsyncSession, asyncio.Lock]" = weakref.WeakKeyDictionary()


def session_lock(session: AsyncSession) -> asyncio.Lock:
    lock = _session_locks.get(session)
    if lock is None:
        lock = asyncio.Lock()
        _session_locks[session] = lock
    return lock


def _is_error_payload(payload) -> bool:
    # football-data.org error bodies carry errorCode / message instead of data.
    return isinstance(payload, dict) and ("errorCode" in payload or payload.get("error") is not None)


async def get_cached_payload(session: AsyncSession, cache_key: str) -> dict | None:
    async with session_lock(session):
        res = await session.execute(
            text(
                """
                SELECT payload FROM api_cache
                WHERE cache_key=:k AND expires_at > now()
                """
            ),
            {"k": cache_key},
        )
        row = res.first()
    payload = row[0] if row else None
    if isinstance(payload, str):
        payload = json.loads(payload)
    if payload is not None and _is_error_payload(payload):
        async with session_lock(session):
            await session.execute(text("DELETE FROM api_cache WHERE cache_key=:k"), {"k": cache_key})
        return None
    return payload


async def set_cached_payload(session: AsyncSession, cache_key: str, payload: dict, ttl_seconds: int) -> None:
    if ttl_seconds <= 0 or _is_error_payload(payload):
        return
    expires = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
    payload_json = payload
    if payload is not None and not isinstance(payload, str):
        payload_json = json.dumps(payload, ensure_ascii=False)
    async with session_lock(session):
        await session.execute(
            text(
                """
                INSERT INTO api_cache(cache_key, payload, expires_at)
                VALUES(:k, CAST(:p AS jsonb), :e)
                ON CONFLICT (cache_key)
                DO UPDATE SET payload=CAST(:p AS jsonb), expires_at=:e
                """
            ),
            {"k": cache_key, "p": payload_json, "e": expires},
        )
