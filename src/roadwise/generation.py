"""Schema-validated structured generation.

Synthesizers depend only on the ``Generator`` protocol. The concrete backend
here speaks the OpenAI-compatible chat completions API over httpx and asks
for a JSON-schema constrained response, then validates it with pydantic.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from roadwise.config import RoadwiseConfig
from roadwise.errors import GenerationError
from roadwise.json_utils import extract_json_object

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

SYSTEM_PROMPT = (
	"You are a precise assistant. Respond with a single JSON object that "
	"conforms to the provided schema and nothing else."
)


class Generator(Protocol):
	"""Generate an instance of ``schema`` from a prompt; raise GenerationError on any failure."""

	async def generate(
		self,
		prompt: str,
		schema: type[ModelT],
		*,
		image_data_uri: str | None = None,
	) -> ModelT: ...


def parse_structured(content: str, schema: type[ModelT]) -> ModelT:
	"""Parse model output text into ``schema``, raising GenerationError if it does not conform."""
	payload = extract_json_object(content)
	if payload is None:
		raise GenerationError(f"{schema.__name__}: response was not a JSON object")
	try:
		return schema.model_validate(payload)
	except ValidationError as exc:
		raise GenerationError(f"{schema.__name__}: response did not match schema") from exc


class ChatCompletionsGenerator:
	"""Generator backed by an OpenAI-compatible /chat/completions endpoint."""

	def __init__(self, config: RoadwiseConfig, client: httpx.AsyncClient | None = None) -> None:
		self._llm = config.llm
		self._api_key = config.credentials.llm_api_key
		self._timeout = config.timeouts.generation_seconds
		self._client = client

	async def _ensure_client(self) -> httpx.AsyncClient:
		if self._client is None:
			self._client = httpx.AsyncClient(timeout=self._timeout)
		return self._client

	async def close(self) -> None:
		if self._client is not None:
			await self._client.aclose()
			self._client = None

	def _build_payload(self, prompt: str, schema: type[BaseModel], image_data_uri: str | None) -> dict[str, Any]:
		user_content: str | list[dict[str, Any]]
		if image_data_uri:
			user_content = [
				{"type": "text", "text": prompt},
				{"type": "image_url", "image_url": {"url": image_data_uri}},
			]
		else:
			user_content = prompt
		return {
			"model": self._llm.model,
			"temperature": self._llm.temperature,
			"max_tokens": self._llm.max_tokens,
			"messages": [
				{"role": "system", "content": SYSTEM_PROMPT},
				{"role": "user", "content": user_content},
			],
			"response_format": {
				"type": "json_schema",
				"json_schema": {
					"name": schema.__name__,
					"schema": schema.model_json_schema(),
				},
			},
		}

	async def generate(
		self,
		prompt: str,
		schema: type[ModelT],
		*,
		image_data_uri: str | None = None,
	) -> ModelT:
		if not self._api_key:
			raise GenerationError("LLM API key is not configured")

		client = await self._ensure_client()
		url = f"{self._llm.base_url.rstrip('/')}/chat/completions"
		payload = self._build_payload(prompt, schema, image_data_uri)
		try:
			resp = await client.post(
				url,
				json=payload,
				headers={"Authorization": f"Bearer {self._api_key}"},
			)
		except httpx.HTTPError as exc:
			logger.error("Generation request failed (model=%s): %s", self._llm.model, exc)
			raise GenerationError("generation request failed") from exc

		if not resp.is_success:
			logger.error(
				"Generation HTTP %d (model=%s): %s",
				resp.status_code, self._llm.model, resp.text[:600],
			)
			raise GenerationError(f"generation backend returned HTTP {resp.status_code}")

		try:
			data = resp.json()
			content = data["choices"][0]["message"]["content"] or ""
		except (ValueError, KeyError, IndexError, TypeError) as exc:
			raise GenerationError("generation backend returned an unexpected envelope") from exc

		return parse_structured(content, schema)
