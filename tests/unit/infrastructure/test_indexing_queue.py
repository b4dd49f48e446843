"""
Tests for the indexing queues.

Testing:
- In-memory delivery, visibility delays, abandon and dead letters
- Redis key layout and pipeline usage
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from candidate_search.domain.interfaces import QueueMessage
from candidate_search.infrastructure.messaging.indexing_queue import (
    InMemoryIndexingQueue,
    RedisIndexingQueue,
)
from tests.fixtures.candidate_fixtures import make_job


class FakeClock:

    def __init__(self):
        self.now = 50.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestInMemoryIndexingQueue:
    """Test in-memory queue semantics."""

    @pytest.mark.asyncio
    async def test_message_is_delivered_once(self, clock):
        queue = InMemoryIndexingQueue(clock=clock)
        message_id = await queue.enqueue(make_job())

        first = await queue.receive(max_messages=5)
        second = await queue.receive(max_messages=5)

        assert [m.message_id for m in first] == [message_id]
        assert first[0].delivery_count == 1
        assert second == []

    @pytest.mark.asyncio
    async def test_messages_are_received_in_enqueue_order(self, clock):
        queue = InMemoryIndexingQueue(clock=clock)
        ids = [await queue.enqueue(make_job(candidate_id=f"c{i}")) for i in range(3)]

        received = await queue.receive(max_messages=3)

        assert [m.message_id for m in received] == ids

    @pytest.mark.asyncio
    async def test_delayed_message_becomes_visible_later(self, clock):
        queue = InMemoryIndexingQueue(clock=clock)
        await queue.enqueue(make_job(), delay_seconds=10)

        assert await queue.receive() == []
        clock.now += 10
        assert len(await queue.receive()) == 1

    @pytest.mark.asyncio
    async def test_abandon_redelivers_with_updated_job(self, clock):
        queue = InMemoryIndexingQueue(clock=clock)
        await queue.enqueue(make_job())
        [message] = await queue.receive()
        message.job.schedule_retry("boom")

        assert await queue.abandon(message, delay_seconds=3)
        clock.now += 3
        [redelivered] = await queue.receive()

        assert redelivered.message_id == message.message_id
        assert redelivered.delivery_count == 2
        assert redelivered.job.retry_count == 1

    @pytest.mark.asyncio
    async def test_complete_acknowledges_once(self, clock):
        queue = InMemoryIndexingQueue(clock=clock)
        await queue.enqueue(make_job())
        [message] = await queue.receive()

        assert await queue.complete(message) is True
        assert await queue.complete(message) is False
        assert await queue.abandon(message) is False

    @pytest.mark.asyncio
    async def test_dead_letter(self, clock):
        queue = InMemoryIndexingQueue("jobs", clock=clock)
        await queue.enqueue(make_job())
        [message] = await queue.receive()

        await queue.dead_letter(message, reason="retries_exhausted: boom")

        assert queue.dead_letters[0]["reason"] == "retries_exhausted: boom"
        health = await queue.check_health()
        assert health["dead_letters"] == 1
        assert health["in_flight"] == 0


def _redis_client(execute_result):
    client = MagicMock()
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=execute_result)
    client.pipeline.return_value.__aenter__.return_value = pipe
    client.pipeline.return_value.__aexit__.return_value = False
    return client, pipe


class TestRedisIndexingQueue:
    """Test Redis command usage with a mocked client."""

    @pytest.mark.asyncio
    async def test_enqueue_writes_envelope_and_schedule(self, clock):
        client, pipe = _redis_client([1, 1])
        queue = RedisIndexingQueue("redis://unused", "jobs", client=client, clock=clock)
        job = make_job()

        message_id = await queue.enqueue(job, delay_seconds=5)

        key, field, raw = pipe.hset.call_args.args
        assert key == "queue:jobs:messages"
        assert field == message_id
        assert json.loads(raw)["job"]["candidate_id"] == job.candidate_id
        pipe.zadd.assert_called_once_with("queue:jobs:scheduled", {message_id: 55.0})
        client.pipeline.assert_called_once_with(transaction=True)

    @pytest.mark.asyncio
    async def test_receive_claims_through_script(self, clock):
        client, _ = _redis_client([])
        job = make_job()
        envelope = json.dumps({"id": "m1", "job": job.to_message(), "delivery_count": 0})
        claim = AsyncMock(return_value=["m1"])
        client.register_script.return_value = claim
        client.hget = AsyncMock(return_value=envelope)
        client.hset = AsyncMock(return_value=0)
        queue = RedisIndexingQueue("redis://unused", "jobs", lease_seconds=30, client=client, clock=clock)

        [message] = await queue.receive(max_messages=2)

        claim.assert_awaited_once_with(
            keys=["queue:jobs:scheduled", "queue:jobs:processing"],
            args=[50.0, 80.0, 2],
        )
        assert message.message_id == "m1"
        assert message.receipt_handle == "m1"
        assert message.delivery_count == 1
        assert message.job.job_id == job.job_id

    @pytest.mark.asyncio
    async def test_dead_letter_pushes_to_dead_letter_list(self, clock):
        client, pipe = _redis_client([1, 1, 1])
        queue = RedisIndexingQueue("redis://unused", "jobs", client=client, clock=clock)
        message = QueueMessage(message_id="m1", job=make_job(), receipt_handle="m1")

        await queue.dead_letter(message, reason="non_transient_error: bad")

        key, payload = pipe.lpush.call_args.args
        assert key == "queue:jobs_deadletter"
        assert json.loads(payload)["reason"] == "non_transient_error: bad"
        pipe.zrem.assert_called_once_with("queue:jobs:processing", "m1")
        pipe.hdel.assert_called_once_with("queue:jobs:messages", "m1")
