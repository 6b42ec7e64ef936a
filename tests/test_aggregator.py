"""Tests for concurrent signal aggregation and merge policy."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import httpx
import pytest
from fakes import RecordingRouter, news_payload, reddit_payload

from roadwise.aggregator import aggregate, merge_conditions
from roadwise.config import RoadwiseConfig
from roadwise.models import ConditionsSnapshot, TrafficSignal, WeatherSnapshot


def _signals(prefix: str, n: int, source: str) -> list[TrafficSignal]:
	return [TrafficSignal(id=f"{prefix}{i}", title=f"{prefix} {i}", source=source) for i in range(n)]


@pytest.mark.asyncio
async def test_merges_all_sources(config: RoadwiseConfig) -> None:
	router = RecordingRouter(
		reddit=httpx.Response(200, json=reddit_payload(3)),
		news=httpx.Response(200, json=news_payload(2)),
	)
	async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
		snapshot = await aggregate(config, client)

	assert isinstance(snapshot, ConditionsSnapshot)
	# Discussion items first, then news, each in source order
	assert [s.id for s in snapshot.signals] == ["r0", "r1", "r2", "n0", "n1"]
	assert snapshot.weather is not None
	assert snapshot.weather.description == "light rain"
	assert snapshot.gathered_at != ""
	assert sorted(router.hosts()) == ["api.openweathermap.org", "newsdata.io", "www.reddit.com"]


@pytest.mark.asyncio
async def test_one_failed_source_does_not_block_others(config: RoadwiseConfig) -> None:
	router = RecordingRouter(news=httpx.Response(500))
	async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
		snapshot = await aggregate(config, client)

	assert [s.source for s in snapshot.signals] == ["discussion", "discussion"]
	assert snapshot.weather is not None


@pytest.mark.asyncio
async def test_all_sources_down_gives_empty_snapshot(config: RoadwiseConfig) -> None:
	router = RecordingRouter(
		reddit=httpx.Response(503),
		news=httpx.Response(503),
		weather=httpx.Response(503),
	)
	async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
		snapshot = await aggregate(config, client)

	assert snapshot.signals == []
	assert snapshot.weather is None
	assert snapshot.is_empty


@pytest.mark.asyncio
async def test_without_credentials_only_discussion_is_called(bare_config: RoadwiseConfig) -> None:
	router = RecordingRouter()
	async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
		snapshot = await aggregate(bare_config, client)

	assert router.hosts() == ["www.reddit.com"]
	assert len(snapshot.signals) == 2
	assert snapshot.weather is None


@pytest.mark.asyncio
async def test_merge_independent_of_completion_order(config: RoadwiseConfig) -> None:
	discussion = _signals("d", 2, "discussion")
	news = _signals("n", 3, "news")
	weather = WeatherSnapshot(temperature_celsius=28, description="haze", wind_speed_ms=2.0, icon_code="50d")

	def _delayed(value, delay):
		async def _fetch(cfg, client=None):
			await asyncio.sleep(delay)
			return value
		return _fetch

	async def _run(delays: tuple[float, float, float]) -> ConditionsSnapshot:
		with (
			patch("roadwise.aggregator.fetch_discussion_signals", _delayed(discussion, delays[0])),
			patch("roadwise.aggregator.fetch_news_signals", _delayed(news, delays[1])),
			patch("roadwise.aggregator.fetch_current_weather", _delayed(weather, delays[2])),
		):
			async with httpx.AsyncClient(transport=httpx.MockTransport(RecordingRouter())) as client:
				return await aggregate(config, client)

	first = await _run((0.03, 0.0, 0.01))
	second = await _run((0.0, 0.03, 0.02))
	third = await _run((0.01, 0.02, 0.0))

	for snapshot in (second, third):
		assert snapshot.signals == first.signals
		assert snapshot.weather == first.weather
	assert [s.id for s in first.signals] == ["d0", "d1", "n0", "n1", "n2"]


@pytest.mark.asyncio
async def test_slow_source_is_bounded_by_timeout(config: RoadwiseConfig) -> None:
	config.timeouts.source_seconds = 0.05

	async def _hang(cfg, client=None):
		await asyncio.sleep(10)
		return _signals("late", 1, "news")

	async def _fast(cfg, client=None):
		return _signals("d", 1, "discussion")

	async def _no_weather(cfg, client=None):
		return None

	with (
		patch("roadwise.aggregator.fetch_discussion_signals", _fast),
		patch("roadwise.aggregator.fetch_news_signals", _hang),
		patch("roadwise.aggregator.fetch_current_weather", _no_weather),
	):
		async with httpx.AsyncClient() as client:
			snapshot = await asyncio.wait_for(aggregate(config, client), timeout=2)

	assert [s.id for s in snapshot.signals] == ["d0"]


@pytest.mark.asyncio
async def test_unexpected_adapter_exception_is_absorbed(config: RoadwiseConfig) -> None:
	async def _broken(cfg, client=None):
		raise RuntimeError("adapter bug")

	async def _fast(cfg, client=None):
		return _signals("n", 2, "news")

	async def _no_weather(cfg, client=None):
		return None

	with (
		patch("roadwise.aggregator.fetch_discussion_signals", _broken),
		patch("roadwise.aggregator.fetch_news_signals", _fast),
		patch("roadwise.aggregator.fetch_current_weather", _no_weather),
	):
		async with httpx.AsyncClient() as client:
			snapshot = await aggregate(config, client)

	assert [s.id for s in snapshot.signals] == ["n0", "n1"]


class TestMergeConditions:
	def test_counts_add_up_and_order_is_kept(self) -> None:
		discussion = _signals("d", 4, "discussion")
		news = _signals("n", 3, "news")
		snapshot = merge_conditions(discussion, news, None)
		assert len(snapshot.signals) == 7
		assert [s.id for s in snapshot.signals if s.source == "discussion"] == ["d0", "d1", "d2", "d3"]
		assert [s.id for s in snapshot.signals if s.source == "news"] == ["n0", "n1", "n2"]

	def test_weather_passed_through(self) -> None:
		weather = WeatherSnapshot(temperature_celsius=30)
		snapshot = merge_conditions([], [], weather)
		assert snapshot.weather is weather
		assert snapshot.signals == []
		assert not snapshot.is_empty

	def test_inputs_not_mutated(self) -> None:
		discussion = _signals("d", 1, "discussion")
		merge_conditions(discussion, _signals("n", 1, "news"), None)
		assert len(discussion) == 1
