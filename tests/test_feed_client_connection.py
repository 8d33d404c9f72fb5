"""Connection-loop tests for the feed client against a local websockets server.

The server closes the first connection after a few frames (one of them
garbage) and keeps the second one open, so the client has to survive the
bad frame, freeze its metrics on disconnect and reconnect with backoff.
"""

import asyncio
import json

import pytest
from websockets.asyncio.server import serve

from tickpulse.client.feed_client import START_SIMULATION, FeedClient
from tickpulse.domain.services.client_aggregator import ClientAggregator
from tickpulse.shared.clock import epoch_ms


def _msg(type_, data):
	return json.dumps({"type": type_, "data": data})


async def _wait_for(predicate, timeout=3.0):
	loop = asyncio.get_running_loop()
	deadline = loop.time() + timeout
	while not predicate():
		if loop.time() > deadline:
			raise AssertionError("condition not reached in time")
		await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_reconnects_after_close_and_freezes_on_disconnect():
	connections = []
	received = []

	async def handler(ws):
		connections.append(ws)
		await ws.send(_msg("initialData", {"prices": {"NSE:ACC": 1800.0}}))
		if len(connections) == 1:
			await ws.send(_msg("status", {"running": True}))
			await ws.send("not json at all")
			await ws.send(_msg("initialData", {"prices": {"NSE:ACC": "abc"}}))
			await ws.send(_msg("priceUpdate", {"tick": {"NSE:ACC": 1801.0, "sentAt": epoch_ms()}, "spikes": []}))
			await asyncio.sleep(0.05)
			await ws.close()
			return
		async for message in ws:
			received.append(message)

	aggregator = ClientAggregator()
	async with serve(handler, "127.0.0.1", 0) as server:
		port = server.sockets[0].getsockname()[1]
		client = FeedClient(
			f"ws://127.0.0.1:{port}",
			aggregator,
			reconnect_base_delay=0.01,
			reconnect_max_delay=0.05,
		)
		await client.start()
		try:
			await _wait_for(lambda: len(connections) >= 2 and client.stats["connected"])

			assert client.stats["malformed"] == 2
			assert client.stats["reconnect_attempts"] == 0
			assert aggregator.prices() == {"NSE:ACC": 1800.0}

			# The disconnect ended this observer's run: values stay frozen
			assert aggregator.running is False
			frozen = aggregator.displayed_metrics()
			assert frozen.running is False
			assert frozen.tick_count == 1
			assert frozen.average_latency_ms is not None

			await client.send_command(START_SIMULATION)
			await _wait_for(lambda: received)
			assert json.loads(received[0]) == {"type": START_SIMULATION}
		finally:
			await client.stop()

	assert client.stats["running"] is False
	assert client.stats["connected"] is False


@pytest.mark.asyncio
async def test_start_on_connect_sends_command():
	received = []

	async def handler(ws):
		async for message in ws:
			received.append(json.loads(message))

	async with serve(handler, "127.0.0.1", 0) as server:
		port = server.sockets[0].getsockname()[1]
		client = FeedClient(f"ws://127.0.0.1:{port}", ClientAggregator(), start_on_connect=True)
		await client.start()
		try:
			await _wait_for(lambda: received)
		finally:
			await client.stop()

	assert received == [{"type": START_SIMULATION}]


@pytest.mark.asyncio
async def test_unreachable_server_keeps_retrying():
	async with serve(lambda ws: None, "127.0.0.1", 0) as server:
		port = server.sockets[0].getsockname()[1]
	# Server closed: every attempt now fails with a network error
	client = FeedClient(
		f"ws://127.0.0.1:{port}",
		ClientAggregator(),
		reconnect_base_delay=0.01,
		reconnect_max_delay=0.02,
	)
	await client.start()
	try:
		await _wait_for(lambda: client.stats["reconnect_attempts"] >= 3)
		assert client.stats["running"] is True
		assert client.stats["connected"] is False
	finally:
		await client.stop()
