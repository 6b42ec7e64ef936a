"""Advisory synthesis -- turn a conditions snapshot into route advice and predictive alerts."""

from __future__ import annotations

import asyncio
import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel

from roadwise.aggregator import aggregate
from roadwise.config import RoadwiseConfig
from roadwise.constants import DEFAULT_LIMITS, MIN_PLACE_LENGTH
from roadwise.errors import GenerationError, InputValidationError
from roadwise.generation import Generator
from roadwise.models import (
	ConditionsSnapshot,
	PredictiveAlertSet,
	RouteAdvisory,
	TravelAdvice,
	WeatherSnapshot,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

NO_REPORTS = "No live traffic reports are available right now."
NO_WEATHER = "Current weather data is unavailable."

ROUTE_PROMPT = """Generate optimal route advice for a trip in {city} from {origin} to {destination}.

## Live traffic
{traffic}

## Weather
{weather}

## Instructions
Synthesize the information above into a clear, actionable travel plan:
- traffic_analysis: the current traffic situation between origin and destination
- weather_impact: how current and expected weather will affect the trip
- recommendation.primary: the main recommended route or action
- recommendation.alternative: an alternative route or mode of transport
- recommendation.avoid: specific roads or areas to avoid
- best_departure_time: the best time to start the journey
- prediction: how traffic is likely to change over the next few hours

If live data is missing, rely on typical patterns for {city} and say so.
"""

ALERTS_PROMPT = """You provide predictive alerts for travellers in {city}.

Based on the route, current weather and live traffic reports below, predict
potential incidents along the route (accidents, road closures, congestion,
waterlogging, events). Each alert needs a type, location, description,
relevance (0 to 1, how much it matters for this trip), confidence (0 to 1)
and a recommended_action. Return an empty list if nothing is worth flagging.

Origin: {origin}
Destination: {destination}
Weather: {weather}
Live traffic reports:
{reports}
"""


def validate_route_request(origin: str, destination: str) -> tuple[str, str]:
	"""Strip and length-check origin/destination. Raises InputValidationError."""
	origin = (origin or "").strip()
	destination = (destination or "").strip()
	if len(origin) < MIN_PLACE_LENGTH:
		raise InputValidationError(f"origin must be at least {MIN_PLACE_LENGTH} characters")
	if len(destination) < MIN_PLACE_LENGTH:
		raise InputValidationError(f"destination must be at least {MIN_PLACE_LENGTH} characters")
	return origin, destination


def render_weather_sentence(weather: WeatherSnapshot | None) -> str:
	if weather is None:
		return NO_WEATHER
	return (
		f"Currently {weather.temperature_celsius}°C with {weather.description}, "
		f"wind {weather.wind_speed_ms:g} m/s."
	)


def render_conditions_summary(conditions: ConditionsSnapshot, limit: int) -> str:
	"""First ``limit`` signal titles joined into one line."""
	titles = [s.title.strip() for s in conditions.signals[:max(limit, 0)] if s.title.strip()]
	if not titles:
		return NO_REPORTS
	return "; ".join(titles)


def build_route_prompt(
	origin: str,
	destination: str,
	conditions: ConditionsSnapshot,
	*,
	city: str,
	signal_limit: int,
) -> str:
	return ROUTE_PROMPT.format(
		city=city,
		origin=origin,
		destination=destination,
		traffic=render_conditions_summary(conditions, signal_limit),
		weather=render_weather_sentence(conditions.weather),
	)


def build_alerts_prompt(origin: str, destination: str, conditions: ConditionsSnapshot, *, city: str) -> str:
	lines = [f"- {s.title.strip()}" for s in conditions.signals if s.title.strip()]
	return ALERTS_PROMPT.format(
		city=city,
		origin=origin,
		destination=destination,
		weather=render_weather_sentence(conditions.weather),
		reports="\n".join(lines) if lines else f"- {NO_REPORTS}",
	)


async def _generate(
	generator: Generator,
	prompt: str,
	schema: type[ModelT],
	timeout: float,
) -> ModelT:
	"""One bounded generation call; every failure surfaces as GenerationError."""
	try:
		return await asyncio.wait_for(generator.generate(prompt, schema), timeout=timeout)
	except GenerationError:
		raise
	except asyncio.TimeoutError as exc:
		raise GenerationError(f"{schema.__name__} generation timed out after {timeout:.0f}s") from exc
	except Exception as exc:
		raise GenerationError(f"{schema.__name__} generation failed") from exc


async def synthesize(
	origin: str,
	destination: str,
	conditions: ConditionsSnapshot,
	generator: Generator,
	*,
	city: str = "Bengaluru",
	generation_timeout: float = float(DEFAULT_LIMITS["generation_timeout"]),
	route_signal_limit: int = DEFAULT_LIMITS["route_signal_limit"],
) -> TravelAdvice:
	"""Run route and alert generation concurrently and merge them with the snapshot.

	Fails as a unit: if either generation fails, the other is cancelled and
	GenerationError propagates. No partial advice is returned.
	"""
	origin, destination = validate_route_request(origin, destination)

	route_prompt = build_route_prompt(origin, destination, conditions, city=city, signal_limit=route_signal_limit)
	alerts_prompt = build_alerts_prompt(origin, destination, conditions, city=city)

	route_task = asyncio.ensure_future(_generate(generator, route_prompt, RouteAdvisory, generation_timeout))
	alerts_task = asyncio.ensure_future(_generate(generator, alerts_prompt, PredictiveAlertSet, generation_timeout))
	try:
		route_advisory, alerts = await asyncio.gather(route_task, alerts_task)
	except BaseException:
		for task in (route_task, alerts_task):
			task.cancel()
		await asyncio.gather(route_task, alerts_task, return_exceptions=True)
		raise

	return TravelAdvice(route_advisory=route_advisory, predictive_alerts=alerts, conditions=conditions)


class TravelAdvisor:
	"""Validate, gather live conditions, then synthesize advice."""

	def __init__(
		self,
		config: RoadwiseConfig,
		generator: Generator,
		client: httpx.AsyncClient | None = None,
	) -> None:
		self._config = config
		self._generator = generator
		self._client = client

	async def conditions(self) -> ConditionsSnapshot:
		return await aggregate(self._config, self._client)

	async def advise(self, origin: str, destination: str) -> TravelAdvice:
		origin, destination = validate_route_request(origin, destination)
		conditions = await self.conditions()
		try:
			return await synthesize(
				origin,
				destination,
				conditions,
				self._generator,
				city=self._config.city.name,
				generation_timeout=self._config.timeouts.generation_seconds,
				route_signal_limit=self._config.advice.route_signal_limit,
			)
		except GenerationError as exc:
			logger.error("Travel advice for %s -> %s failed: %s", origin, destination, exc)
			raise
