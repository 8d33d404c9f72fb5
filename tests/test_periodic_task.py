"""Tests for the fixed-period task and its cancellation token."""

import asyncio

import pytest

from tickpulse.infrastructure.periodic_task import PeriodicTask


@pytest.mark.asyncio
async def test_runs_repeatedly_until_cancelled():
	calls = []
	task = PeriodicTask(0.001, lambda: calls.append(1), name="test")
	task.start()
	await asyncio.sleep(0.05)
	await task.cancel()

	assert len(calls) > 5
	assert not task.running
	count = len(calls)
	await asyncio.sleep(0.02)
	assert len(calls) == count


@pytest.mark.asyncio
async def test_no_invocation_after_cancel_flag_is_set():
	calls = []
	task = PeriodicTask(0.001, lambda: calls.append(1))
	task.start()
	await task.cancel()
	await asyncio.sleep(0.01)
	assert len(calls) <= 1


@pytest.mark.asyncio
async def test_callback_errors_do_not_stop_the_loop():
	calls = []

	def flaky():
		calls.append(1)
		if len(calls) == 1:
			raise RuntimeError("boom")

	task = PeriodicTask(0.001, flaky)
	task.start()
	await asyncio.sleep(0.03)
	await task.cancel()
	assert len(calls) > 1
	assert task.runs == len(calls)


@pytest.mark.asyncio
async def test_start_is_idempotent_while_running():
	task = PeriodicTask(0.001, lambda: None)
	task.start()
	first = task._task
	task.start()
	assert task._task is first
	await task.cancel()


def test_interval_must_be_positive():
	with pytest.raises(ValueError):
		PeriodicTask(0, lambda: None)
