"""Gathers all live signal sources concurrently into one ConditionsSnapshot."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

import httpx

from roadwise.config import RoadwiseConfig
from roadwise.models import ConditionsSnapshot, TrafficSignal, WeatherSnapshot
from roadwise.sources import fetch_current_weather, fetch_discussion_signals, fetch_news_signals

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _bounded(name: str, coro: Awaitable[T], timeout: float, empty: T) -> T:
	"""Await one adapter under a timeout; a timeout yields the adapter's empty value."""
	try:
		return await asyncio.wait_for(coro, timeout=timeout)
	except asyncio.TimeoutError:
		logger.warning("Source %s timed out after %.1fs", name, timeout)
		return empty


def merge_conditions(
	discussion: list[TrafficSignal],
	news: list[TrafficSignal],
	weather: WeatherSnapshot | None,
) -> ConditionsSnapshot:
	"""Discussion signals first, then news, each in source order; weather passed through."""
	return ConditionsSnapshot(signals=[*discussion, *news], weather=weather)


async def aggregate(config: RoadwiseConfig, client: httpx.AsyncClient | None = None) -> ConditionsSnapshot:
	"""Fetch all sources concurrently and merge them.

	Never raises for a source failure: a source that errors or times out
	contributes its empty value.
	"""
	timeout = config.timeouts.source_seconds
	own_client = client is None
	if own_client:
		client = httpx.AsyncClient(timeout=timeout)

	try:
		results: list[Any] = await asyncio.gather(
			_bounded("discussion", fetch_discussion_signals(config, client), timeout, []),
			_bounded("news", fetch_news_signals(config, client), timeout, []),
			_bounded("weather", fetch_current_weather(config, client), timeout, None),
			return_exceptions=True,
		)
	finally:
		if own_client:
			await client.aclose()

	# Adapters are fail-soft; anything that still escaped counts as an empty source
	collected: dict[str, Any] = {"discussion": [], "news": [], "weather": None}
	for name, result in zip(list(collected), results):
		if isinstance(result, BaseException):
			logger.warning("Source %s raised unexpectedly: %r", name, result)
			continue
		collected[name] = result

	snapshot = merge_conditions(collected["discussion"], collected["news"], collected["weather"])
	logger.info(
		"Gathered %d discussion + %d news signals, weather %s",
		len(collected["discussion"]),
		len(collected["news"]),
		"present" if snapshot.weather is not None else "absent",
	)
	return snapshot
