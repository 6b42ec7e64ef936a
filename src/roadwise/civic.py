"""Civic issue reporting: describe an issue photo and build the report record."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re

from roadwise.constants import (
	ANONYMOUS_USER,
	DEFAULT_LIMITS,
	DEPARTMENT_DESCRIPTIONS,
	MIN_REPORT_DESCRIPTION_LENGTH,
)
from roadwise.errors import GenerationError, InputValidationError
from roadwise.generation import Generator
from roadwise.models import CivicIssueDescription, CivicReport, Department, GeoPoint

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)$")

DESCRIBE_PROMPT = """You are helping a citizen report a civic issue in {city}. Analyze the attached
image and produce a brief, factual report.

1. description: what is visibly wrong (pothole, overflowing garbage bin, broken
   streetlight, water leakage...). Do not guess the cause unless it is obvious.
2. department: the department best placed to handle it. Use exactly one of:
{departments}
3. location_description: where this appears to be, from landmarks or other visual context.
"""


def encode_image_data_uri(data: bytes, mime_type: str) -> str:
	"""Encode raw image bytes as ``data:<mime>;base64,<payload>``."""
	if not data:
		raise InputValidationError("image is empty")
	if not mime_type.startswith("image/"):
		raise InputValidationError(f"not an image MIME type: {mime_type}")
	return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(uri: str) -> tuple[str, bytes]:
	"""Split an image data URI into (mime type, decoded bytes). Raises InputValidationError."""
	match = _DATA_URI_RE.match((uri or "").strip())
	if match is None:
		raise InputValidationError("expected an image data URI: data:<mimetype>;base64,<encoded_data>")
	try:
		payload = base64.b64decode(match.group("data"), validate=False)
	except (binascii.Error, ValueError) as exc:
		raise InputValidationError("image data URI is not valid base64") from exc
	if not payload:
		raise InputValidationError("image is empty")
	return match.group("mime"), payload


def build_describe_prompt(city: str) -> str:
	departments = "\n".join(f"   - {name}: {desc}" for name, desc in DEPARTMENT_DESCRIPTIONS.items())
	return DESCRIBE_PROMPT.format(city=city, departments=departments)


async def describe_issue(
	image_data_uri: str,
	generator: Generator,
	*,
	city: str = "Bengaluru",
	timeout: float = float(DEFAULT_LIMITS["generation_timeout"]),
) -> CivicIssueDescription:
	"""Describe the civic issue in one image. Out-of-set departments come back as Other."""
	parse_data_uri(image_data_uri)
	prompt = build_describe_prompt(city)
	try:
		return await asyncio.wait_for(
			generator.generate(prompt, CivicIssueDescription, image_data_uri=image_data_uri),
			timeout=timeout,
		)
	except GenerationError:
		raise
	except asyncio.TimeoutError as exc:
		raise GenerationError(f"image description timed out after {timeout:.0f}s") from exc
	except Exception as exc:
		raise GenerationError("image description failed") from exc


def build_report(
	*,
	description: str,
	department: str | Department,
	image_data_uri: str,
	location: GeoPoint | None,
	submitted_by: str = ANONYMOUS_USER,
) -> CivicReport:
	"""Validate a citizen submission and turn it into a flat report record."""
	description = (description or "").strip()
	if len(description) < MIN_REPORT_DESCRIPTION_LENGTH:
		raise InputValidationError(
			f"description must be at least {MIN_REPORT_DESCRIPTION_LENGTH} characters"
		)
	if not image_data_uri:
		raise InputValidationError("an image is required")
	parse_data_uri(image_data_uri)
	if location is None:
		raise InputValidationError("a location is required")
	if not (-90.0 <= location.lat <= 90.0 and -180.0 <= location.lon <= 180.0):
		raise InputValidationError("location is out of range")

	return CivicReport(
		description=description,
		department=Department.coerce(department).value,
		image_data_uri=image_data_uri,
		location=location,
		submitted_by=(submitted_by or "").strip() or ANONYMOUS_USER,
	)
