"""Tests for the fan-out event bus: ordering, preload and overflow policies."""

import pytest

from tickpulse.infrastructure.event_bus import SUBSCRIPTION_CLOSED, EventBus

from conftest import drain


@pytest.mark.asyncio
async def test_every_subscriber_gets_every_event_in_order():
	bus = EventBus()
	q1 = await bus.subscribe("feed", "a")
	q2 = await bus.subscribe("feed", "b")
	for i in range(5):
		await bus.publish("feed", i)
	assert drain(q1) == [0, 1, 2, 3, 4]
	assert drain(q2) == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_preload_comes_before_published_events():
	bus = EventBus()
	await bus.publish("feed", "before")
	queue = await bus.subscribe("feed", "late", preload=["snapshot", "status"])
	await bus.publish("feed", "after")
	assert drain(queue) == ["snapshot", "status", "after"]


@pytest.mark.asyncio
async def test_topics_are_isolated():
	bus = EventBus()
	feed = await bus.subscribe("feed", "ws")
	spikes = await bus.subscribe("spike", "log")
	await bus.publish("spike", "s1")
	assert drain(feed) == []
	assert drain(spikes) == ["s1"]


@pytest.mark.asyncio
async def test_drop_oldest_keeps_newest_events():
	bus = EventBus(max_queue_size=2)
	queue = await bus.subscribe("spike", "log", drop_oldest=True)
	for i in range(3):
		await bus.publish("spike", i)
	assert drain(queue) == [1, 2]


@pytest.mark.asyncio
async def test_full_subscriber_without_drop_is_evicted():
	bus = EventBus(max_queue_size=2)
	slow = await bus.subscribe("feed", "slow", drop_oldest=False)
	other = await bus.subscribe("feed", "other", drop_oldest=True)
	for i in range(3):
		await bus.publish("feed", i)

	assert drain(slow) == [SUBSCRIPTION_CLOSED]
	assert bus.subscriber_names("feed") == ["other"]
	assert drain(other) == [1, 2]

	# Later publications no longer reach the evicted queue
	await bus.publish("feed", 3)
	assert drain(slow) == []


@pytest.mark.asyncio
async def test_unsubscribe():
	bus = EventBus()
	queue = await bus.subscribe("feed", "a")
	assert await bus.unsubscribe("feed", queue) is True
	assert await bus.unsubscribe("feed", queue) is False
	await bus.publish("feed", "x")
	assert drain(queue) == []


@pytest.mark.asyncio
async def test_unsubscribe_all():
	bus = EventBus()
	await bus.subscribe("feed", "a")
	await bus.subscribe("spike", "b")
	await bus.unsubscribe_all("feed")
	assert bus.subscriber_count == 1
	await bus.unsubscribe_all()
	assert bus.subscriber_count == 0
