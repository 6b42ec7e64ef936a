"""JSON extraction for model output that may be fenced or wrapped in prose."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def _balanced_spans(text: str, open_char: str, close_char: str) -> list[str]:
	"""Outermost balanced open/close spans in text order, ignoring characters inside JSON strings.

	Single pass with a stack of open positions. Opens that never close are
	dropped, so a span nested inside an unclosed prefix is still found.
	"""
	start = text.find(open_char)
	if start == -1:
		return []

	pairs: list[tuple[int, int]] = []
	stack: list[int] = []
	in_string = False
	escaped = False
	for i in range(start, len(text)):
		ch = text[i]
		if in_string:
			if escaped:
				escaped = False
			elif ch == "\\":
				escaped = True
			elif ch == '"':
				in_string = False
			continue
		if ch == '"':
			in_string = True
		elif ch == open_char:
			stack.append(i)
		elif ch == close_char and stack:
			pairs.append((stack.pop(), i))

	spans: list[str] = []
	end = -1
	for lo, hi in sorted(pairs):
		if lo > end:
			spans.append(text[lo:hi + 1])
			end = hi
	return spans


def _find_balanced(text: str, open_char: str, close_char: str) -> str | None:
	"""Return the first balanced open/close span in text, or None."""
	spans = _balanced_spans(text, open_char, close_char)
	return spans[0] if spans else None


def extract_json_object(text: str) -> dict[str, Any] | None:
	"""Extract a JSON object from model output.

	Tries, in order: the body of a markdown fence, the whole text, then each
	outermost balanced ``{...}`` span. Returns None if nothing parses to a dict.
	"""
	if not text or not text.strip():
		return None

	candidates: list[str] = []
	fence_match = _FENCE_RE.search(text)
	if fence_match:
		candidates.append(fence_match.group(1).strip())
	candidates.append(text.strip())

	for candidate in candidates:
		try:
			parsed = json.loads(candidate)
		except (json.JSONDecodeError, ValueError):
			continue
		if isinstance(parsed, dict):
			return parsed

	# Prose can contain braces too, e.g. "{A -> B}"; keep going past spans that don't parse
	for span in _balanced_spans(text, "{", "}"):
		try:
			parsed = json.loads(span)
		except (json.JSONDecodeError, ValueError):
			continue
		if isinstance(parsed, dict):
			return parsed
	return None
