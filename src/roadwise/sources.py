"""Async adapters for the live signal sources (discussion, news, weather).

Every adapter fails soft: transport errors, non-success statuses, rate
limits and malformed payloads are logged and turned into an empty result.
A missing credential short-circuits before any request is made.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any

import httpx

from roadwise.config import RoadwiseConfig
from roadwise.constants import (
	NEWS_API_URL,
	REDDIT_BASE_URL,
	SOURCE_DISCUSSION,
	SOURCE_NEWS,
	WEATHER_API_URL,
)
from roadwise.errors import SourceUnavailable
from roadwise.models import TrafficSignal, WeatherSnapshot

logger = logging.getLogger(__name__)

# Malformed-payload errors raised while walking third-party JSON
_SHAPE_ERRORS = (ValueError, KeyError, TypeError, IndexError, AttributeError, OverflowError)


def _epoch_to_iso(value: Any) -> str:
	try:
		return datetime.fromtimestamp(float(value), tz=timezone.utc).isoformat()
	except (TypeError, ValueError, OverflowError, OSError):
		return ""


def _raise_for_status(source: str, resp: httpx.Response) -> None:
	if resp.status_code == 429:
		raise SourceUnavailable(source, "rate limited (429)")
	if resp.status_code == 401:
		raise SourceUnavailable(source, "credential rejected (401)")
	if not resp.is_success:
		raise SourceUnavailable(source, f"HTTP {resp.status_code}")


async def fetch_discussion_signals(
	config: RoadwiseConfig,
	client: httpx.AsyncClient | None = None,
) -> list[TrafficSignal]:
	"""Search the city subreddit for recent traffic posts, newest first."""
	src = config.sources
	if src.discussion_limit <= 0 or not src.subreddit:
		return []

	own_client = client is None
	if own_client:
		client = httpx.AsyncClient(timeout=config.timeouts.source_seconds)

	signals: list[TrafficSignal] = []
	try:
		resp = await client.get(
			f"{REDDIT_BASE_URL}/r/{src.subreddit}/search.json",
			params={
				"q": " OR ".join(src.discussion_keywords),
				"sort": "new",
				"restrict_sr": "on",
				"limit": src.discussion_limit,
			},
			headers={"User-Agent": src.user_agent},
		)
		_raise_for_status(SOURCE_DISCUSSION, resp)
		data = resp.json()
		children = data["data"]["children"]
		for child in children:
			post = child["data"]
			signals.append(TrafficSignal(
				id=str(post["id"]),
				title=str(post.get("title") or ""),
				source_url=f"{REDDIT_BASE_URL}{post.get('permalink', '')}",
				published_at=_epoch_to_iso(post.get("created_utc")),
				source=SOURCE_DISCUSSION,
			))
	except SourceUnavailable as exc:
		logger.warning("Discussion search unavailable: %s", exc)
		return []
	except httpx.HTTPError as exc:
		logger.warning("Discussion search failed: %s", exc)
		return []
	except _SHAPE_ERRORS as exc:
		logger.warning("Discussion search returned unexpected payload: %r", exc)
		return []
	finally:
		if own_client:
			await client.aclose()

	return signals


async def fetch_news_signals(
	config: RoadwiseConfig,
	client: httpx.AsyncClient | None = None,
) -> list[TrafficSignal]:
	"""Fetch traffic news articles for the city. Requires NEWS_API_KEY."""
	api_key = config.credentials.news_api_key
	if not api_key:
		logger.warning("News API key is not configured; skipping news fetch")
		return []

	src = config.sources
	own_client = client is None
	if own_client:
		client = httpx.AsyncClient(timeout=config.timeouts.source_seconds)

	signals: list[TrafficSignal] = []
	try:
		resp = await client.get(
			NEWS_API_URL,
			params={
				"apikey": api_key,
				"q": src.news_query,
				"language": src.news_language,
				"country": src.news_country,
			},
		)
		_raise_for_status(SOURCE_NEWS, resp)
		data = resp.json()
		if data.get("status") != "success":
			raise SourceUnavailable(SOURCE_NEWS, f"non-success status {data.get('status')!r}")
		for article in data.get("results") or []:
			signals.append(TrafficSignal(
				id=str(article["article_id"]),
				title=str(article.get("title") or ""),
				source_url=str(article.get("link") or ""),
				published_at=str(article.get("pubDate") or ""),
				source=SOURCE_NEWS,
			))
	except SourceUnavailable as exc:
		logger.warning("News search unavailable: %s", exc)
		return []
	except httpx.HTTPError as exc:
		logger.warning("News search failed: %s", exc)
		return []
	except _SHAPE_ERRORS as exc:
		logger.warning("News search returned unexpected payload: %r", exc)
		return []
	finally:
		if own_client:
			await client.aclose()

	return signals


async def fetch_current_weather(
	config: RoadwiseConfig,
	client: httpx.AsyncClient | None = None,
) -> WeatherSnapshot | None:
	"""Current weather at the city centre. Requires OPENWEATHER_API_KEY."""
	api_key = config.credentials.openweather_api_key
	if not api_key:
		logger.warning("OpenWeatherMap API key is not configured; skipping weather fetch")
		return None

	own_client = client is None
	if own_client:
		client = httpx.AsyncClient(timeout=config.timeouts.source_seconds)

	try:
		resp = await client.get(
			WEATHER_API_URL,
			params={
				"lat": config.city.latitude,
				"lon": config.city.longitude,
				"appid": api_key,
				"units": "metric",
			},
		)
		_raise_for_status("weather", resp)
		data = resp.json()
		condition = data["weather"][0]
		return WeatherSnapshot(
			# half-up, not banker's rounding
			temperature_celsius=int(math.floor(float(data["main"]["temp"]) + 0.5)),
			description=str(condition["description"]),
			wind_speed_ms=float((data.get("wind") or {}).get("speed", 0.0)),
			icon_code=str(condition.get("icon") or ""),
		)
	except SourceUnavailable as exc:
		if exc.reason.endswith("(401)"):
			logger.error("Invalid OpenWeatherMap API key")
		else:
			logger.warning("Weather lookup unavailable: %s", exc)
		return None
	except httpx.HTTPError as exc:
		logger.warning("Weather lookup failed: %s", exc)
		return None
	except _SHAPE_ERRORS as exc:
		logger.warning("Weather lookup returned unexpected payload: %r", exc)
		return None
	finally:
		if own_client:
			await client.aclose()
