"""Data models for roadwise.

Live signals are plain dataclasses built by the adapters. Everything the
generation capability returns is a pydantic model so that it can be
validated against a schema.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from roadwise.constants import ANONYMOUS_USER, REPORT_STATUS_SUBMITTED


def _now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
	return uuid4().hex[:12]


# -- Live signals --


@dataclass
class TrafficSignal:
	"""One discussion post or news article about traffic."""

	id: str = ""
	title: str = ""
	source_url: str = ""
	published_at: str = ""
	source: str = ""  # discussion/news


@dataclass
class WeatherSnapshot:
	"""A single current weather reading."""

	temperature_celsius: int = 0
	description: str = ""
	wind_speed_ms: float = 0.0
	icon_code: str = ""


@dataclass
class ConditionsSnapshot:
	"""Merged view of all live signals for one aggregation cycle."""

	signals: list[TrafficSignal] = field(default_factory=list)
	weather: WeatherSnapshot | None = None
	gathered_at: str = field(default_factory=_now_iso)

	@property
	def is_empty(self) -> bool:
		return not self.signals and self.weather is None

	def to_dict(self) -> dict[str, Any]:
		return asdict(self)


# -- Generated advisories --


class RouteRecommendation(BaseModel):
	primary: str = Field(description="The main recommended route or action.")
	alternative: str = Field(description="An alternative route or mode of transport.")
	avoid: str = Field(description="Specific routes or areas to avoid.")


class RouteAdvisory(BaseModel):
	"""Route analysis for one origin/destination pair."""

	traffic_analysis: str = Field(description="Summary of the current traffic between origin and destination.")
	weather_impact: str = Field(description="How current and predicted weather will affect the route.")
	recommendation: RouteRecommendation
	best_departure_time: str = Field(description="The suggested best time to start the journey.")
	prediction: str = Field(description="How traffic is likely to change.")


def _clamp_unit(value: Any) -> Any:
	if isinstance(value, bool):
		return value
	if isinstance(value, str):
		try:
			value = float(value)
		except ValueError:
			return value
	if isinstance(value, (int, float)):
		return min(1.0, max(0.0, float(value)))
	return value


class PredictiveAlert(BaseModel):
	"""A predicted incident along the route."""

	type: str = Field(description="Alert type, e.g. accident, road closure, congestion, waterlogging.")
	location: str = Field(description="Where the incident is expected.")
	description: str = Field(description="What is expected to happen.")
	relevance: float = Field(description="Relevance to this trip, between 0 and 1.")
	confidence: float = Field(default=0.5, description="Confidence in the prediction, between 0 and 1.")
	recommended_action: str = Field(default="", description="What the traveller should do about it.")

	@field_validator("relevance", "confidence", mode="before")
	@classmethod
	def _clamp_score(cls, value: Any) -> Any:
		return _clamp_unit(value)


class PredictiveAlertSet(BaseModel):
	alerts: list[PredictiveAlert] = Field(default_factory=list)

	def ranked(self) -> list[PredictiveAlert]:
		"""Alerts ordered by descending relevance, for presentation."""
		return sorted(self.alerts, key=lambda a: a.relevance, reverse=True)


class Department(str, Enum):
	BBMP = "BBMP"
	BESCOM = "BESCOM"
	BWSSB = "BWSSB"
	BTP = "BTP"
	OTHER = "Other"

	@classmethod
	def coerce(cls, value: Any) -> Department:
		"""Map a free-form department token onto the enum; unknown tokens become OTHER."""
		if isinstance(value, cls):
			return value
		token = str(value or "").strip().lower()
		for member in cls:
			if member.value.lower() == token:
				return member
		return cls.OTHER


class CivicIssueDescription(BaseModel):
	"""Structured description of a civic issue shown in one photo."""

	description: str = Field(description="A concise, factual description of the issue shown in the image.")
	department: Department = Field(description="Responsible department: one of BBMP, BESCOM, BWSSB, BTP, Other.")
	location_description: str = Field(description="The location as suggested by visual cues in the image.")

	@field_validator("department", mode="before")
	@classmethod
	def _coerce_department(cls, value: Any) -> Department:
		return Department.coerce(value)


# -- Responses and records --


@dataclass
class TravelAdvice:
	"""Merged result of one advice request."""

	route_advisory: RouteAdvisory
	predictive_alerts: PredictiveAlertSet
	conditions: ConditionsSnapshot

	def to_dict(self) -> dict[str, Any]:
		return {
			"route_advisory": self.route_advisory.model_dump(mode="json"),
			"predictive_alerts": self.predictive_alerts.model_dump(mode="json"),
			"conditions": self.conditions.to_dict(),
		}


@dataclass
class GeoPoint:
	lat: float = 0.0
	lon: float = 0.0


@dataclass
class CivicReport:
	"""A submitted civic report; one flat record per report."""

	id: str = field(default_factory=_new_id)
	description: str = ""
	department: str = Department.OTHER.value
	image_data_uri: str = ""
	location: GeoPoint = field(default_factory=GeoPoint)
	status: str = REPORT_STATUS_SUBMITTED
	submitted_by: str = ANONYMOUS_USER
	created_at: str = field(default_factory=_now_iso)

	def to_dict(self) -> dict[str, Any]:
		return asdict(self)

	@classmethod
	def from_dict(cls, data: dict[str, Any]) -> CivicReport:
		known = {"id", "description", "department", "image_data_uri", "status", "submitted_by", "created_at"}
		filtered = {k: v for k, v in data.items() if k in known}
		loc = data.get("location") or {}
		return cls(location=GeoPoint(lat=float(loc.get("lat", 0.0)), lon=float(loc.get("lon", 0.0))), **filtered)
