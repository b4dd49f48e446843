"""
Indexing job queues.

Both implementations deliver at least once and hand each message to exactly
one consumer at a time:
- ``InMemoryIndexingQueue`` for local development and tests
- ``RedisIndexingQueue`` for durable deployments, with delayed redelivery and
  lease expiry so a crashed worker's message becomes visible again

Dead-lettered messages go to ``<queue>_deadletter``.
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError
import structlog

from candidate_search.domain.entities.indexing import IndexingJob
from candidate_search.domain.interfaces import IIndexingQueue, QueueMessage

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


def _envelope(message_id: str, job: IndexingJob, delivery_count: int) -> str:
    return json.dumps(
        {"id": message_id, "job": job.to_message(), "delivery_count": delivery_count},
        sort_keys=True,
    )


def _message_from_envelope(raw: str, receipt_handle: str) -> QueueMessage:
    data = json.loads(raw)
    return QueueMessage(
        message_id=data["id"],
        job=IndexingJob.from_message(data["job"]),
        receipt_handle=receipt_handle,
        delivery_count=int(data.get("delivery_count", 0)),
    )


class InMemoryIndexingQueue(IIndexingQueue):
    """In-memory queue with delayed visibility."""

    def __init__(self, queue_name: str = "candidate-indexing", clock: Optional[Clock] = None):
        self.queue_name = queue_name
        self._clock = clock or time.monotonic
        self._scheduled: Dict[str, Tuple[float, int, str]] = {}
        self._in_flight: Dict[str, str] = {}
        self._dead_letters: List[Dict[str, Any]] = []
        self._sequence = 0
        self._lock = asyncio.Lock()

    @property
    def dead_letters(self) -> List[Dict[str, Any]]:
        return list(self._dead_letters)

    async def enqueue(self, job: IndexingJob, delay_seconds: float = 0) -> str:
        message_id = str(uuid.uuid4())
        async with self._lock:
            self._schedule(message_id, _envelope(message_id, job, 0), delay_seconds)
        logger.debug(
            "Indexing job queued (in-memory)",
            queue_name=self.queue_name,
            message_id=message_id,
            candidate_id=job.candidate_id,
        )
        return message_id

    def _schedule(self, message_id: str, raw: str, delay_seconds: float) -> None:
        self._sequence += 1
        self._scheduled[message_id] = (self._clock() + max(0.0, delay_seconds), self._sequence, raw)

    async def receive(self, max_messages: int = 1) -> List[QueueMessage]:
        async with self._lock:
            now = self._clock()
            due = sorted(
                (visible_at, sequence, message_id)
                for message_id, (visible_at, sequence, _) in self._scheduled.items()
                if visible_at <= now
            )[:max_messages]

            messages = []
            for _, _, message_id in due:
                _, _, raw = self._scheduled.pop(message_id)
                data = json.loads(raw)
                data["delivery_count"] = int(data.get("delivery_count", 0)) + 1
                raw = json.dumps(data, sort_keys=True)
                receipt_handle = str(uuid.uuid4())
                self._in_flight[receipt_handle] = raw
                messages.append(_message_from_envelope(raw, receipt_handle))
            return messages

    async def complete(self, message: QueueMessage) -> bool:
        async with self._lock:
            return self._in_flight.pop(message.receipt_handle, None) is not None

    async def abandon(self, message: QueueMessage, delay_seconds: float = 0) -> bool:
        async with self._lock:
            if self._in_flight.pop(message.receipt_handle, None) is None:
                return False
            # Re-serialize so retry bookkeeping on the job survives redelivery.
            raw = _envelope(message.message_id, message.job, message.delivery_count)
            self._schedule(message.message_id, raw, delay_seconds)
        logger.debug(
            "Indexing message abandoned (in-memory)",
            message_id=message.message_id,
            delay_seconds=delay_seconds,
        )
        return True

    async def dead_letter(self, message: QueueMessage, reason: str) -> bool:
        async with self._lock:
            self._in_flight.pop(message.receipt_handle, None)
            self._dead_letters.append({
                "id": message.message_id,
                "job": message.job.to_message(),
                "delivery_count": message.delivery_count,
                "reason": reason,
            })
        logger.debug(
            "Indexing message dead-lettered (in-memory)",
            dead_letter_queue=f"{self.queue_name}_deadletter",
            message_id=message.message_id,
        )
        return True

    async def pending_count(self) -> int:
        return len(self._scheduled)

    async def check_health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "queue": "memory",
            "pending": len(self._scheduled),
            "in_flight": len(self._in_flight),
            "dead_letters": len(self._dead_letters),
        }


# Moves expired leases back to the schedule, then claims due messages.
# Runs atomically inside Redis, so a message is claimed by exactly one worker.
_CLAIM_SCRIPT = """
local scheduled = KEYS[1]
local processing = KEYS[2]
local now = tonumber(ARGV[1])
local lease_until = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])

local expired = redis.call('ZRANGEBYSCORE', processing, '-inf', now)
for _, id in ipairs(expired) do
    redis.call('ZREM', processing, id)
    redis.call('ZADD', scheduled, now, id)
end

local due = redis.call('ZRANGEBYSCORE', scheduled, '-inf', now, 'LIMIT', 0, limit)
for _, id in ipairs(due) do
    redis.call('ZREM', scheduled, id)
    redis.call('ZADD', processing, lease_until, id)
end
return due
"""


class RedisIndexingQueue(IIndexingQueue):
    """Durable Redis queue.

    Keys per queue: a hash of message envelopes, a sorted set of scheduled ids
    scored by visibility time, and a sorted set of leased ids scored by lease
    expiry. Dead letters are pushed onto a list.
    """

    def __init__(
        self,
        redis_url: str,
        queue_name: str = "candidate-indexing",
        lease_seconds: int = 300,
        client: Optional[redis.Redis] = None,
        clock: Optional[Clock] = None,
    ):
        self.redis_url = redis_url
        self.queue_name = queue_name
        self.lease_seconds = lease_seconds
        self._redis = client
        self._clock = clock or time.time
        self._claim = None

        prefix = f"queue:{queue_name}"
        self._messages_key = f"{prefix}:messages"
        self._scheduled_key = f"{prefix}:scheduled"
        self._processing_key = f"{prefix}:processing"
        self._dead_letter_key = f"queue:{queue_name}_deadletter"

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection with lazy initialization."""
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            await self._redis.ping()
            logger.info("Redis indexing queue connection established", queue_name=self.queue_name)
        return self._redis

    async def enqueue(self, job: IndexingJob, delay_seconds: float = 0) -> str:
        client = await self._get_redis()
        message_id = str(uuid.uuid4())

        async with client.pipeline(transaction=True) as pipe:
            pipe.hset(self._messages_key, message_id, _envelope(message_id, job, 0))
            pipe.zadd(self._scheduled_key, {message_id: self._clock() + max(0.0, delay_seconds)})
            await pipe.execute()

        logger.debug(
            "Indexing job queued (Redis)",
            queue_name=self.queue_name,
            message_id=message_id,
            candidate_id=job.candidate_id,
        )
        return message_id

    async def receive(self, max_messages: int = 1) -> List[QueueMessage]:
        client = await self._get_redis()
        if self._claim is None:
            self._claim = client.register_script(_CLAIM_SCRIPT)

        now = self._clock()
        claimed = await self._claim(
            keys=[self._scheduled_key, self._processing_key],
            args=[now, now + self.lease_seconds, max_messages],
        )

        messages = []
        for message_id in claimed or []:
            raw = await client.hget(self._messages_key, message_id)
            if raw is None:
                await client.zrem(self._processing_key, message_id)
                continue
            data = json.loads(raw)
            data["delivery_count"] = int(data.get("delivery_count", 0)) + 1
            raw = json.dumps(data, sort_keys=True)
            await client.hset(self._messages_key, message_id, raw)
            messages.append(_message_from_envelope(raw, receipt_handle=message_id))
        return messages

    async def complete(self, message: QueueMessage) -> bool:
        client = await self._get_redis()
        async with client.pipeline(transaction=True) as pipe:
            pipe.zrem(self._processing_key, message.message_id)
            pipe.hdel(self._messages_key, message.message_id)
            removed, _ = await pipe.execute()
        return bool(removed)

    async def abandon(self, message: QueueMessage, delay_seconds: float = 0) -> bool:
        client = await self._get_redis()
        raw = _envelope(message.message_id, message.job, message.delivery_count)
        async with client.pipeline(transaction=True) as pipe:
            pipe.zrem(self._processing_key, message.message_id)
            pipe.hset(self._messages_key, message.message_id, raw)
            pipe.zadd(self._scheduled_key, {message.message_id: self._clock() + max(0.0, delay_seconds)})
            removed, _, _ = await pipe.execute()

        logger.debug(
            "Indexing message abandoned (Redis)",
            message_id=message.message_id,
            delay_seconds=delay_seconds,
        )
        return bool(removed)

    async def dead_letter(self, message: QueueMessage, reason: str) -> bool:
        client = await self._get_redis()
        payload = json.dumps({
            "id": message.message_id,
            "job": message.job.to_message(),
            "delivery_count": message.delivery_count,
            "reason": reason,
        }, sort_keys=True)
        async with client.pipeline(transaction=True) as pipe:
            pipe.zrem(self._processing_key, message.message_id)
            pipe.hdel(self._messages_key, message.message_id)
            pipe.lpush(self._dead_letter_key, payload)
            await pipe.execute()

        logger.debug(
            "Indexing message dead-lettered (Redis)",
            dead_letter_queue=self._dead_letter_key,
            message_id=message.message_id,
        )
        return True

    async def pending_count(self) -> int:
        client = await self._get_redis()
        return int(await client.zcard(self._scheduled_key))

    async def check_health(self) -> Dict[str, Any]:
        try:
            client = await self._get_redis()
            await client.ping()
            return {
                "status": "healthy",
                "queue": "redis",
                "pending": int(await client.zcard(self._scheduled_key)),
                "in_flight": int(await client.zcard(self._processing_key)),
                "dead_letters": int(await client.llen(self._dead_letter_key)),
            }
        except (RedisError, OSError) as e:
            logger.error("Redis indexing queue health check failed", error=str(e))
            return {"status": "unhealthy", "queue": "redis", "error": str(e)}

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


__all__ = ["InMemoryIndexingQueue", "RedisIndexingQueue"]
