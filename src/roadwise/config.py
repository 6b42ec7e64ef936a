"""Configuration loading for roadwise (roadwise.toml + environment credentials)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from roadwise.constants import DEFAULT_DISCUSSION_KEYWORDS, DEFAULT_LIMITS
from roadwise.errors import ConfigError

CONFIG_FILENAME = "roadwise.toml"

# Environment variable -> (section, attribute)
_ENV_OVERLAY: dict[str, tuple[str, str]] = {
	"NEWS_API_KEY": ("credentials", "news_api_key"),
	"OPENWEATHER_API_KEY": ("credentials", "openweather_api_key"),
	"LLM_API_KEY": ("credentials", "llm_api_key"),
	"ROADWISE_LLM_BASE_URL": ("llm", "base_url"),
	"ROADWISE_LLM_MODEL": ("llm", "model"),
	"ROADWISE_REPORTS_PATH": ("reports", "path"),
}


@dataclass
class CityConfig:
	"""The city whose conditions are aggregated."""

	name: str = "Bengaluru"
	latitude: float = 12.9716
	longitude: float = 77.5946


@dataclass
class SourcesConfig:
	"""Query parameters for the discussion and news sources."""

	subreddit: str = "bangalore"
	discussion_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_DISCUSSION_KEYWORDS))
	discussion_limit: int = DEFAULT_LIMITS["discussion_results"]
	news_query: str = "Bengaluru traffic OR Bangalore traffic"
	news_language: str = "en"
	news_country: str = "in"
	user_agent: str = "roadwise/0.1 (traffic advisory)"


@dataclass
class CredentialsConfig:
	"""API credentials. Each one is optional; a missing key degrades its source."""

	news_api_key: str = ""
	openweather_api_key: str = ""
	llm_api_key: str = ""


@dataclass
class LLMConfig:
	"""OpenAI-compatible chat completions backend."""

	base_url: str = "https://api.openai.com/v1"
	model: str = "gpt-4o-mini"
	temperature: float = 0.2
	max_tokens: int = DEFAULT_LIMITS["llm_max_tokens"]


@dataclass
class TimeoutsConfig:
	"""Per-call bounds, in seconds."""

	source_seconds: float = float(DEFAULT_LIMITS["source_timeout"])
	generation_seconds: float = float(DEFAULT_LIMITS["generation_timeout"])


@dataclass
class AdviceConfig:
	route_signal_limit: int = DEFAULT_LIMITS["route_signal_limit"]


@dataclass
class ReportsConfig:
	path: str = "reports.jsonl"

	@property
	def resolved_path(self) -> Path:
		return Path(self.path).expanduser().resolve()


@dataclass
class RoadwiseConfig:
	"""Top-level configuration constructed once at process start."""

	city: CityConfig = field(default_factory=CityConfig)
	sources: SourcesConfig = field(default_factory=SourcesConfig)
	credentials: CredentialsConfig = field(default_factory=CredentialsConfig)
	llm: LLMConfig = field(default_factory=LLMConfig)
	timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
	advice: AdviceConfig = field(default_factory=AdviceConfig)
	reports: ReportsConfig = field(default_factory=ReportsConfig)


def _apply_section(section: str, target: Any, data: dict[str, Any]) -> None:
	"""Copy known keys from a TOML table onto a dataclass instance.

	Each value must have the same type as the field's default; integers are
	accepted for float fields. Raises ConfigError otherwise.
	"""
	known = {f.name for f in fields(target)}
	for key, value in data.items():
		if key not in known:
			continue
		current = getattr(target, key)
		if isinstance(current, float) and type(value) is int:
			value = float(value)
		if type(value) is not type(current):
			raise ConfigError(
				f"{section}.{key} must be {type(current).__name__}, got {type(value).__name__}"
			)
		if isinstance(value, list) and not all(isinstance(item, str) for item in value):
			raise ConfigError(f"{section}.{key} must be a list of strings")
		setattr(target, key, value)


def load_config(path: str | Path) -> RoadwiseConfig:
	"""Load a roadwise.toml file. Missing sections keep their defaults.

	Raises FileNotFoundError for a missing file and ConfigError for a value of the wrong type.
	"""
	config_path = Path(path)
	if not config_path.exists():
		raise FileNotFoundError(f"Config file not found: {config_path}")

	with open(config_path, "rb") as f:
		data = tomllib.load(f)

	cfg = RoadwiseConfig()
	for section in ("city", "sources", "credentials", "llm", "timeouts", "advice", "reports"):
		table = data.get(section)
		if isinstance(table, dict):
			_apply_section(section, getattr(cfg, section), table)
	return cfg


def apply_env(config: RoadwiseConfig, environ: Mapping[str, str]) -> RoadwiseConfig:
	"""Overlay credentials and overrides from an explicit environment mapping.

	Only non-empty values override. Returns the same config object.
	"""
	for var, (section, attr) in _ENV_OVERLAY.items():
		value = environ.get(var, "").strip()
		if value:
			setattr(getattr(config, section), attr, value)
	return config


def validate_config(config: RoadwiseConfig) -> list[tuple[str, str]]:
	"""Check a config for problems. Returns (level, message) pairs; level is "error" or "warning"."""
	issues: list[tuple[str, str]] = []

	if not -90.0 <= config.city.latitude <= 90.0:
		issues.append(("error", f"city.latitude out of range: {config.city.latitude}"))
	if not -180.0 <= config.city.longitude <= 180.0:
		issues.append(("error", f"city.longitude out of range: {config.city.longitude}"))

	if config.timeouts.source_seconds <= 0:
		issues.append(("error", "timeouts.source_seconds must be positive"))
	if config.timeouts.generation_seconds <= 0:
		issues.append(("error", "timeouts.generation_seconds must be positive"))

	if not config.llm.model.strip():
		issues.append(("error", "llm.model is empty"))
	if not config.credentials.llm_api_key:
		issues.append(("warning", "LLM_API_KEY not set; advice and image description will fail"))
	if not config.credentials.news_api_key:
		issues.append(("warning", "NEWS_API_KEY not set; news signals disabled"))
	if not config.credentials.openweather_api_key:
		issues.append(("warning", "OPENWEATHER_API_KEY not set; weather disabled"))

	if config.sources.discussion_limit <= 0:
		issues.append(("warning", "sources.discussion_limit is zero; discussion signals disabled"))
	if config.advice.route_signal_limit < 0:
		issues.append(("error", "advice.route_signal_limit must not be negative"))

	return issues
