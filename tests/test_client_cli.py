"""Tests for the observer CLI: argument parsing and the metrics report line."""

import logging

from tickpulse.client.__main__ import build_parser, format_report, report
from tickpulse.client.feed_client import FeedClient
from tickpulse.domain.services.client_aggregator import ClientAggregator
from tickpulse.domain.value_objects.tick import Tick


def test_report_before_first_run_shows_not_available(caplog):
	caplog.set_level(logging.INFO, logger="tickpulse")
	client = FeedClient("ws://test/ws/feed", ClientAggregator())
	report(client)

	messages = [r.getMessage() for r in caplog.records if r.name == "tickpulse.client.cli"]
	assert len(messages) == 1
	assert "[STOP] ticks=0 rate=N/A latency=N/A" in messages[0]
	assert "spikes=0" in messages[0]


def test_report_line_while_running():
	agg = ClientAggregator(clock=lambda: 0.0)
	agg.on_initial_data({"NSE:ACC": 100.0})
	agg.on_status(True, now=0.0)
	agg.on_price_update(Tick("NSE:ACC", 110.0, sent_at=0.0), received_at=2.0)

	line = format_report(agg, now=1000.0)
	assert line.startswith("[RUN] ticks=1 rate=1/s latency=2.000ms")
	assert "NSE:ACC=110.00" in line
	assert "Δ=+10.00%" in line


def test_report_line_after_stop_keeps_frozen_values():
	agg = ClientAggregator(clock=lambda: 0.0)
	agg.on_status(True, now=0.0)
	agg.on_price_update(Tick("NSE:ACC", 100.0, sent_at=0.0), received_at=1.0)
	agg.on_status(False, now=100.0)
	assert "[STOP] ticks=1 rate=N/A latency=1.000ms" in format_report(agg)


def test_parser_options():
	args = build_parser().parse_args(["--start", "--duration", "2.5", "--instrument", "NSE:TCS"])
	assert args.start is True
	assert args.duration == 2.5
	assert args.instrument == "NSE:TCS"
	assert build_parser().parse_args([]).url.endswith("/ws/feed")
