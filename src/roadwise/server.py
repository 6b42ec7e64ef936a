"""FastAPI surface for travel advice, live conditions and civic reports."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from roadwise import __version__
from roadwise.advisor import TravelAdvisor
from roadwise.civic import build_report, describe_issue
from roadwise.config import RoadwiseConfig
from roadwise.constants import ANONYMOUS_USER, MIN_PLACE_LENGTH
from roadwise.errors import GenerationError, InputValidationError
from roadwise.generation import ChatCompletionsGenerator, Generator
from roadwise.models import GeoPoint
from roadwise.report_log import ReportLog

logger = logging.getLogger(__name__)

ADVICE_FAILED = "Failed to get travel advice from our AI. Please try again."
DESCRIBE_FAILED = "Failed to describe image. Please try again."


class AdviceRequest(BaseModel):
	origin: str = Field(min_length=MIN_PLACE_LENGTH)
	destination: str = Field(min_length=MIN_PLACE_LENGTH)


class DescribeImageRequest(BaseModel):
	image_data_uri: str


class LocationIn(BaseModel):
	lat: float = Field(ge=-90.0, le=90.0)
	lon: float = Field(ge=-180.0, le=180.0)


class ReportCreate(BaseModel):
	description: str
	department: str
	image_data_uri: str
	location: LocationIn | None = None
	submitted_by: str = ANONYMOUS_USER


def create_app(
	config: RoadwiseConfig,
	generator: Generator | None = None,
	report_log: ReportLog | None = None,
) -> FastAPI:
	"""Build the app. Dependencies are injected so tests can swap the generator and store."""
	owned_generator: ChatCompletionsGenerator | None = None
	if generator is None:
		owned_generator = ChatCompletionsGenerator(config)
		generator = owned_generator
	gen: Generator = generator
	reports = report_log or ReportLog(config.reports.resolved_path)
	advisor = TravelAdvisor(config, gen)

	@asynccontextmanager
	async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
		yield
		if owned_generator is not None:
			await owned_generator.close()

	app = FastAPI(title="roadwise", version=__version__, lifespan=_lifespan)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=["*"],
		allow_methods=["*"],
		allow_headers=["*"],
	)

	@app.get("/api/health")
	async def health() -> dict[str, str]:
		return {"status": "ok", "version": __version__}

	@app.get("/api/conditions")
	async def conditions() -> dict[str, Any]:
		snapshot = await advisor.conditions()
		return snapshot.to_dict()

	@app.post("/api/advice")
	async def advice(body: AdviceRequest) -> dict[str, Any]:
		try:
			result = await advisor.advise(body.origin, body.destination)
		except InputValidationError as exc:
			raise HTTPException(status_code=422, detail=str(exc)) from exc
		except GenerationError as exc:
			raise HTTPException(status_code=502, detail=ADVICE_FAILED) from exc
		return result.to_dict()

	@app.post("/api/describe-image")
	async def describe_image(body: DescribeImageRequest) -> dict[str, Any]:
		try:
			described = await describe_issue(
				body.image_data_uri,
				gen,
				city=config.city.name,
				timeout=config.timeouts.generation_seconds,
			)
		except InputValidationError as exc:
			raise HTTPException(status_code=422, detail=str(exc)) from exc
		except GenerationError as exc:
			logger.error("Image description failed: %s", exc)
			raise HTTPException(status_code=502, detail=DESCRIBE_FAILED) from exc
		return described.model_dump(mode="json")

	# Report routes do blocking file I/O; plain def runs them in the threadpool
	@app.post("/api/reports", status_code=201)
	def submit_report(body: ReportCreate) -> dict[str, Any]:
		location = GeoPoint(lat=body.location.lat, lon=body.location.lon) if body.location else None
		try:
			report = build_report(
				description=body.description,
				department=body.department,
				image_data_uri=body.image_data_uri,
				location=location,
				submitted_by=body.submitted_by,
			)
		except InputValidationError as exc:
			raise HTTPException(status_code=422, detail=str(exc)) from exc
		reports.append(report)
		return report.to_dict()

	@app.get("/api/reports")
	def list_reports(user_id: str = ANONYMOUS_USER) -> list[dict[str, Any]]:
		return [r.to_dict() for r in reports.for_user(user_id)]

	return app
