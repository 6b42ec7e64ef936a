"""Tests for advisory synthesis and the TravelAdvisor pipeline."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from fakes import ALERTS_PAYLOAD, ROUTE_PAYLOAD, FakeGenerator, RecordingRouter, reddit_payload

from roadwise.advisor import (
	NO_REPORTS,
	NO_WEATHER,
	TravelAdvisor,
	build_alerts_prompt,
	build_route_prompt,
	render_conditions_summary,
	render_weather_sentence,
	synthesize,
	validate_route_request,
)
from roadwise.config import RoadwiseConfig
from roadwise.errors import GenerationError, InputValidationError
from roadwise.models import (
	ConditionsSnapshot,
	PredictiveAlertSet,
	RouteAdvisory,
	TrafficSignal,
	WeatherSnapshot,
)


def _conditions(n: int = 3, weather: bool = True) -> ConditionsSnapshot:
	return ConditionsSnapshot(
		signals=[TrafficSignal(id=str(i), title=f"Report {i}", source="news") for i in range(n)],
		weather=WeatherSnapshot(temperature_celsius=28, description="light rain", wind_speed_ms=3.5) if weather else None,
	)


class TestValidateRouteRequest:
	def test_strips_whitespace(self) -> None:
		assert validate_route_request("  HSR Layout ", "Whitefield\n") == ("HSR Layout", "Whitefield")

	@pytest.mark.parametrize(("origin", "destination"), [("ab", "Indiranagar"), ("Koramangala", "MG"), ("   ", "Hebbal"), ("", "")])
	def test_rejects_short_places(self, origin: str, destination: str) -> None:
		with pytest.raises(InputValidationError):
			validate_route_request(origin, destination)

	def test_three_characters_is_enough(self) -> None:
		assert validate_route_request("BTM", "KRP") == ("BTM", "KRP")


class TestPromptRendering:
	def test_weather_sentence(self) -> None:
		sentence = render_weather_sentence(WeatherSnapshot(temperature_celsius=28, description="light rain", wind_speed_ms=3.5))
		assert sentence == "Currently 28°C with light rain, wind 3.5 m/s."

	def test_weather_absent(self) -> None:
		assert render_weather_sentence(None) == NO_WEATHER

	def test_summary_takes_first_n(self) -> None:
		assert render_conditions_summary(_conditions(6), 2) == "Report 0; Report 1"

	def test_summary_without_signals(self) -> None:
		assert render_conditions_summary(_conditions(0), 5) == NO_REPORTS

	def test_summary_skips_blank_titles(self) -> None:
		conditions = ConditionsSnapshot(signals=[TrafficSignal(id="a", title="  "), TrafficSignal(id="b", title="Jam")])
		assert render_conditions_summary(conditions, 5) == "Jam"

	def test_route_prompt_is_compacted(self) -> None:
		prompt = build_route_prompt("Koramangala", "Indiranagar", _conditions(8), city="Bengaluru", signal_limit=3)
		assert "from Koramangala to Indiranagar" in prompt
		assert "Report 2" in prompt
		assert "Report 3" not in prompt
		assert "28°C" in prompt

	def test_alerts_prompt_lists_every_signal(self) -> None:
		prompt = build_alerts_prompt("Koramangala", "Indiranagar", _conditions(8), city="Bengaluru")
		for i in range(8):
			assert f"- Report {i}" in prompt
		assert "Origin: Koramangala" in prompt

	def test_alerts_prompt_without_signals(self) -> None:
		prompt = build_alerts_prompt("Koramangala", "Indiranagar", _conditions(0, weather=False), city="Bengaluru")
		assert NO_REPORTS in prompt
		assert NO_WEATHER in prompt


class TestSynthesize:
	@pytest.mark.asyncio
	async def test_merges_both_generations_and_snapshot(self, generator: FakeGenerator) -> None:
		conditions = _conditions()
		advice = await synthesize("Koramangala", "Indiranagar", conditions, generator)

		assert advice.route_advisory == RouteAdvisory.model_validate(ROUTE_PAYLOAD)
		assert advice.predictive_alerts == PredictiveAlertSet.model_validate(ALERTS_PAYLOAD)
		assert advice.conditions is conditions
		assert {schema for _, schema, _ in generator.calls} == {RouteAdvisory, PredictiveAlertSet}

	@pytest.mark.asyncio
	async def test_empty_snapshot_still_produces_advice(self) -> None:
		generator = FakeGenerator(responses={
			RouteAdvisory: ROUTE_PAYLOAD,
			PredictiveAlertSet: {"alerts": []},
		})
		advice = await synthesize("Koramangala", "Indiranagar", ConditionsSnapshot(), generator)

		assert advice.route_advisory.recommendation.primary
		assert advice.predictive_alerts.alerts == []
		assert NO_REPORTS in generator.prompts_for(RouteAdvisory)[0]
		assert NO_WEATHER in generator.prompts_for(PredictiveAlertSet)[0]

	@pytest.mark.asyncio
	async def test_generations_run_concurrently(self) -> None:
		generator = FakeGenerator(delays={RouteAdvisory: 0.2, PredictiveAlertSet: 0.2})
		loop = asyncio.get_running_loop()
		start = loop.time()
		await synthesize("Koramangala", "Indiranagar", _conditions(), generator)
		assert loop.time() - start < 0.35

	@pytest.mark.asyncio
	async def test_route_failure_fails_the_whole_synthesis(self) -> None:
		generator = FakeGenerator(responses={
			RouteAdvisory: GenerationError("RouteAdvisory: response did not match schema"),
			PredictiveAlertSet: ALERTS_PAYLOAD,
		}, delays={RouteAdvisory: 0.05})

		with pytest.raises(GenerationError):
			await synthesize("Koramangala", "Indiranagar", _conditions(), generator)
		# Alerts finished on their own, but nothing partial came back
		assert generator.completed == [PredictiveAlertSet]

	@pytest.mark.asyncio
	async def test_alerts_failure_cancels_pending_route(self) -> None:
		generator = FakeGenerator(responses={
			RouteAdvisory: ROUTE_PAYLOAD,
			PredictiveAlertSet: GenerationError("quota exceeded"),
		}, delays={RouteAdvisory: 5.0})

		with pytest.raises(GenerationError):
			await asyncio.wait_for(synthesize("Koramangala", "Indiranagar", _conditions(), generator), timeout=2)
		assert generator.cancelled == [RouteAdvisory]

	@pytest.mark.asyncio
	async def test_non_conformant_payload_is_generation_error(self) -> None:
		generator = FakeGenerator(responses={
			RouteAdvisory: {"traffic_analysis": "only one field"},
			PredictiveAlertSet: ALERTS_PAYLOAD,
		})
		with pytest.raises(GenerationError) as exc_info:
			await synthesize("Koramangala", "Indiranagar", _conditions(), generator)
		assert exc_info.value.__cause__ is not None

	@pytest.mark.asyncio
	async def test_timeout_is_generation_error(self) -> None:
		generator = FakeGenerator(delays={RouteAdvisory: 5.0})
		with pytest.raises(GenerationError, match="timed out"):
			await synthesize("Koramangala", "Indiranagar", _conditions(), generator, generation_timeout=0.05)

	@pytest.mark.asyncio
	async def test_short_input_rejected_before_generation(self, generator: FakeGenerator) -> None:
		with pytest.raises(InputValidationError):
			await synthesize("ab", "Indiranagar", _conditions(), generator)
		assert generator.calls == []


class TestTravelAdvisor:
	@pytest.mark.asyncio
	async def test_advise_end_to_end(self, config: RoadwiseConfig, generator: FakeGenerator) -> None:
		router = RecordingRouter(reddit=httpx.Response(200, json=reddit_payload(2)))
		async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
			advice = await TravelAdvisor(config, generator, client).advise("Koramangala", "Indiranagar")

		assert len(advice.conditions.signals) == 4
		assert advice.conditions.weather is not None
		route_prompt = generator.prompts_for(RouteAdvisory)[0]
		assert "Jam on ORR #0" in route_prompt
		assert "light rain" in route_prompt

	@pytest.mark.asyncio
	@pytest.mark.parametrize(("origin", "destination"), [("ab", "Indiranagar"), ("Koramangala", "x")])
	async def test_invalid_input_makes_no_calls(
		self, config: RoadwiseConfig, generator: FakeGenerator, origin: str, destination: str,
	) -> None:
		router = RecordingRouter()
		async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
			with pytest.raises(InputValidationError):
				await TravelAdvisor(config, generator, client).advise(origin, destination)

		assert router.requests == []
		assert generator.calls == []

	@pytest.mark.asyncio
	async def test_advice_serializes(self, config: RoadwiseConfig, generator: FakeGenerator) -> None:
		router = RecordingRouter()
		async with httpx.AsyncClient(transport=httpx.MockTransport(router)) as client:
			advice = await TravelAdvisor(config, generator, client).advise("Koramangala", "Indiranagar")

		data = advice.to_dict()
		assert data["route_advisory"]["recommendation"]["avoid"] == "Avoid Koramangala 80 Feet Road."
		assert data["predictive_alerts"]["alerts"][0]["relevance"] == 0.8
		assert data["conditions"]["weather"]["temperature_celsius"] == 25
