"""Tests for the tick generator: universe, price rules and determinism."""

import random

import pytest

from tickpulse.domain.exceptions import InvalidPriceError, UnknownInstrumentError, ValidationError
from tickpulse.domain.services.tick_generator import TickGenerator

from conftest import INITIAL_PRICES, INSTRUMENTS, make_generator


def test_ticks_stay_inside_universe_with_two_decimal_positive_prices():
	generator = make_generator()
	for _ in range(2000):
		tick = generator.next()
		assert tick.instrument in INSTRUMENTS
		assert tick.price > 0
		assert round(tick.price, 2) == tick.price
	assert generator.state.generated == 2000


def test_same_seed_produces_same_sequence():
	a = make_generator(seed=99)
	b = make_generator(seed=99)
	assert [a.next() for _ in range(200)] == [b.next() for _ in range(200)]


def test_sent_at_comes_from_clock():
	generator = make_generator(clock=lambda: 1234.5)
	assert generator.next().sent_at == 1234.5


def test_normal_moves_stay_within_half_base_volatility():
	generator = make_generator(spike_probability=0.0)
	for _ in range(500):
		old = generator.current_prices()
		tick = generator.next()
		change = abs(tick.price - old[tick.instrument]) / old[tick.instrument]
		# ±0.5% plus the rounding of the second decimal
		assert change <= 0.005 + 0.01 / old[tick.instrument]


def test_forced_spikes_reach_threshold():
	generator = make_generator(spike_probability=1.0)
	for _ in range(50):
		old = generator.current_prices()
		tick = generator.next()
		pct = (tick.price - old[tick.instrument]) * 100 / old[tick.instrument]
		assert abs(pct) >= 9.99
		assert abs(pct) <= 15.01
	assert generator.state.forced_spikes == 50


def test_price_never_goes_below_minimum():
	generator = TickGenerator(
		["X"], {"X": 0.02}, spike_probability=1.0, rng=random.Random(3), clock=lambda: 0.0
	)
	for _ in range(200):
		assert generator.next().price >= 0.01


def test_current_prices_is_a_copy():
	generator = make_generator()
	snapshot = generator.current_prices()
	snapshot["NSE:ACC"] = -1
	assert generator.price_of("NSE:ACC") == INITIAL_PRICES["NSE:ACC"]


def test_price_of_unknown_instrument_raises():
	with pytest.raises(UnknownInstrumentError):
		make_generator().price_of("NSE:XYZ")


def test_initial_price_outside_universe_rejected():
	prices = dict(INITIAL_PRICES, **{"NSE:XYZ": 10.0})
	with pytest.raises(UnknownInstrumentError):
		TickGenerator(INSTRUMENTS, prices)


def test_missing_initial_price_rejected():
	prices = dict(INITIAL_PRICES)
	del prices["NSE:TCS"]
	with pytest.raises(ValidationError):
		TickGenerator(INSTRUMENTS, prices)


@pytest.mark.parametrize("bad_price", [0, -5.0, "100", True])
def test_invalid_initial_price_rejected(bad_price):
	prices = dict(INITIAL_PRICES, **{"NSE:ACC": bad_price})
	with pytest.raises(InvalidPriceError):
		TickGenerator(INSTRUMENTS, prices)


def test_empty_universe_rejected():
	with pytest.raises(ValidationError):
		TickGenerator([], {})
