"""Exception hierarchy shared by adapters, synthesizers and the HTTP surface."""

from __future__ import annotations


class RoadwiseError(Exception):
	"""Base class for all roadwise errors."""


class InputValidationError(RoadwiseError):
	"""Caller-supplied input was rejected before any network call."""


class SourceUnavailable(RoadwiseError):
	"""A signal source failed (network, auth, rate limit or malformed payload).

	Raised and caught inside an adapter; it never reaches the adapter's caller.
	"""

	def __init__(self, source: str, reason: str) -> None:
		super().__init__(f"{source}: {reason}")
		self.source = source
		self.reason = reason


class GenerationError(RoadwiseError):
	"""The structured-generation capability errored, timed out or returned a non-conformant payload."""


class ConfigError(RoadwiseError):
	"""The configuration file is missing, unreadable or rejected."""
