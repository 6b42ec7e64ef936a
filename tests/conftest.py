"""Shared fixtures: configs with and without credentials, and a scripted generator."""

from __future__ import annotations

import pytest
from fakes import FakeGenerator

from roadwise.config import RoadwiseConfig


@pytest.fixture()
def config() -> RoadwiseConfig:
	cfg = RoadwiseConfig()
	cfg.credentials.news_api_key = "news-key"
	cfg.credentials.openweather_api_key = "weather-key"
	cfg.credentials.llm_api_key = "llm-key"
	return cfg


@pytest.fixture()
def bare_config() -> RoadwiseConfig:
	"""Config with no credentials at all."""
	return RoadwiseConfig()


@pytest.fixture()
def generator() -> FakeGenerator:
	return FakeGenerator()
