"""Centralized endpoints, limits and closed vocabularies."""

from __future__ import annotations

# -- Upstream endpoints --

REDDIT_BASE_URL = "https://www.reddit.com"
NEWS_API_URL = "https://newsdata.io/api/1/news"
WEATHER_API_URL = "https://api.openweathermap.org/data/2.5/weather"

# -- Signal sources --

SOURCE_DISCUSSION = "discussion"
SOURCE_NEWS = "news"

DEFAULT_DISCUSSION_KEYWORDS: tuple[str, ...] = (
	"traffic",
	"jam",
	"accident",
	"silk board",
	"electronic city",
	"marathahalli",
	"road closure",
)

# -- Civic departments --

DEPARTMENT_DESCRIPTIONS: dict[str, str] = {
	"BBMP": "garbage, potholes, road conditions, drains",
	"BESCOM": "electricity issues such as broken streetlights and power lines",
	"BWSSB": "water supply and sewage",
	"BTP": "traffic issues such as signal malfunctions and illegal parking",
	"Other": "anything that does not fit the categories above",
}

REPORT_STATUS_SUBMITTED = "Submitted"
ANONYMOUS_USER = "anonymous"

# -- Input limits --

MIN_PLACE_LENGTH = 3
MIN_REPORT_DESCRIPTION_LENGTH = 10

# Common default limits used across the codebase
DEFAULT_LIMITS: dict[str, int] = {
	"discussion_results": 25,
	"route_signal_limit": 5,
	"source_timeout": 10,
	"generation_timeout": 60,
	"llm_max_tokens": 1200,
}
