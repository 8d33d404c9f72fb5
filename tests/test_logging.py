"""Tests for logging setup shared by the server and the CLI."""

import logging

import pytest

from tickpulse.shared.logging import get_logger, resolve_level, setup_logging


@pytest.fixture
def restore_root_level():
	root = logging.getLogger()
	level = root.level
	noisy = logging.getLogger("websockets").level
	yield
	root.setLevel(level)
	logging.getLogger("websockets").setLevel(noisy)


@pytest.mark.parametrize(
	"level, expected",
	[("info", logging.INFO), (" DEBUG ", logging.DEBUG), ("Warning", logging.WARNING), (logging.ERROR, logging.ERROR)],
)
def test_resolve_level(level, expected):
	assert resolve_level(level) == expected


def test_unknown_level_rejected():
	with pytest.raises(ValueError):
		resolve_level("chatty")


def test_setup_accepts_level_names(restore_root_level):
	setup_logging("debug")
	assert logging.getLogger().level == logging.DEBUG
	# The websocket library stays quiet even in debug mode
	assert logging.getLogger("websockets").level == logging.WARNING

	setup_logging("error")
	assert logging.getLogger().level == logging.ERROR
	assert logging.getLogger("websockets").level == logging.ERROR


def test_loggers_share_namespace():
	assert get_logger("scheduler").name == "tickpulse.scheduler"
