"""
Redis-backed counter store, shared by every app instance.

Each RateLimitKey is one Redis hash::

    rate_limit:{fingerprint}:{target_id}
        normal     -> admitted normal notifications in the window
        critical   -> admitted critical notifications in the window
        last_sent  -> epoch millis of the last admitted batch

A single PEXPIRE on the hash expires the three fields together. Admission
runs as one Lua script, so the re-check and the increments happen inside a
single Redis command and concurrent gates can't interleave.

The per-target cap lives in a plain counter next to the hashes::

    owner_limit:{target_id}  -> admitted batches from all requesters

It expires a fixed ``window_ms`` after its first increment. The script
checks and bumps it together with the requester hash.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from qrnotify.services.limiter.config import RateLimitConfig
from qrnotify.services.limiter.store import CounterStoreError
from qrnotify.services.limiter.types import (
    Admit,
    Decision,
    Deny,
    DenyReason,
    RateLimitKey,
    WindowCounters,
)

logger = logging.getLogger(__name__)

# Same checks, same order as check_window(), then check_target().
# Returns {status, normal, critical, last_sent (-1 = never), retry_after_ms}.
ADMIT_SCRIPT = """
local key = KEYS[1]
local target_key = KEYS[2]
local normal_delta = tonumber(ARGV[1])
local critical_delta = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local window_ms = tonumber(ARGV[4])
local max_normal = tonumber(ARGV[5])
local max_critical = tonumber(ARGV[6])
local min_delay = tonumber(ARGV[7])
local target_limit = tonumber(ARGV[8])

local current = redis.call('HMGET', key, 'normal', 'critical', 'last_sent')
local normal = tonumber(current[1]) or 0
local critical = tonumber(current[2]) or 0
local last_sent = tonumber(current[3])

if last_sent and now - last_sent < min_delay then
  return {1, normal, critical, last_sent, min_delay - (now - last_sent)}
end
if normal + normal_delta > max_normal then
  return {2, normal, critical, last_sent or -1, 0}
end
if critical + critical_delta > max_critical then
  return {3, normal, critical, last_sent or -1, 0}
end
if target_limit >= 0 then
  local target_sent = tonumber(redis.call('GET', target_key)) or 0
  if target_sent + 1 > target_limit then
    return {4, normal, critical, last_sent or -1, 0}
  end
end

normal = redis.call('HINCRBY', key, 'normal', normal_delta)
critical = redis.call('HINCRBY', key, 'critical', critical_delta)
redis.call('HSET', key, 'last_sent', now)
redis.call('PEXPIRE', key, window_ms)
if target_limit >= 0 and redis.call('INCR', target_key) == 1 then
  redis.call('PEXPIRE', target_key, window_ms)
end
return {0, normal, critical, now, 0}
"""

_NO_TARGET_LIMIT = -1
_STATUS_ADMITTED = 0
_STATUS_REASONS = {
    1: DenyReason.TOO_SOON,
    2: DenyReason.NORMAL_BUDGET_EXCEEDED,
    3: DenyReason.CRITICAL_BUDGET_EXCEEDED,
    4: DenyReason.TARGET_BUDGET_EXCEEDED,
}


def _to_int(value: object) -> int | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return int(value)


class RedisCounterStore:
    """CounterStore implementation on top of ``redis.asyncio``."""

    def __init__(self, client: Redis) -> None:
        self._redis = client
        self._admit = client.register_script(ADMIT_SCRIPT)

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 2.0) -> RedisCounterStore:
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )
        logger.info("Rate limit counters stored in Redis at %s", url)
        return cls(client)

    async def read_counters(self, key: RateLimitKey, now_ms: int) -> WindowCounters:
        # Redis applies the TTL itself; now_ms is only meaningful in-process.
        try:
            normal, critical, last_sent = await self._redis.hmget(
                key.storage_key, "normal", "critical", "last_sent"
            )
        except (RedisError, OSError) as exc:
            raise CounterStoreError(f"Failed to read counters: {exc}") from exc

        return WindowCounters(
            normal_sent=_to_int(normal) or 0,
            critical_sent=_to_int(critical) or 0,
            last_sent_at_ms=_to_int(last_sent),
        )

    async def atomic_admit(
        self,
        key: RateLimitKey,
        normal_delta: int,
        critical_delta: int,
        now_ms: int,
        config: RateLimitConfig,
    ) -> Decision:
        try:
            result = await self._admit(
                keys=[key.storage_key, key.target_storage_key],
                args=[
                    normal_delta,
                    critical_delta,
                    now_ms,
                    config.window_ms,
                    config.max_normal_per_window,
                    config.max_critical_per_window,
                    config.min_delay_ms,
                    _NO_TARGET_LIMIT
                    if config.max_batches_per_target is None
                    else config.max_batches_per_target,
                ],
            )
        except (RedisError, OSError) as exc:
            raise CounterStoreError(f"Failed to admit batch: {exc}") from exc

        status, normal, critical, last_sent, retry_after = (_to_int(v) for v in result)
        if status == _STATUS_ADMITTED:
            return Admit(
                WindowCounters(
                    normal_sent=normal,
                    critical_sent=critical,
                    last_sent_at_ms=last_sent,
                )
            )

        reason = _STATUS_REASONS.get(status)
        if reason is None:
            raise CounterStoreError(f"Unexpected admit script status: {status!r}")
        if reason is DenyReason.TOO_SOON:
            return Deny(reason, retry_after_ms=retry_after)
        return Deny(reason)

    async def close(self) -> None:
        await self._redis.aclose()
        logger.info("Redis counter store closed")
