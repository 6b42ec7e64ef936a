"""roadwise command-line interface."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
import os
import sys
import tomllib
from pathlib import Path
from typing import Any

from roadwise.advisor import TravelAdvisor
from roadwise.aggregator import aggregate
from roadwise.civic import describe_issue, encode_image_data_uri
from roadwise.config import CONFIG_FILENAME, RoadwiseConfig, apply_env, load_config, validate_config
from roadwise.errors import ConfigError, GenerationError, InputValidationError
from roadwise.generation import ChatCompletionsGenerator
from roadwise.models import TravelAdvice

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="roadwise", description="Live traffic signals and AI travel advice")
	parser.add_argument("--config", default=None, help=f"Path to {CONFIG_FILENAME}")
	parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level")
	sub = parser.add_subparsers(dest="command")

	advise = sub.add_parser("advise", help="Get route advice and predictive alerts")
	advise.add_argument("origin")
	advise.add_argument("destination")
	advise.add_argument("--json", action="store_true", help="Output JSON")

	conditions = sub.add_parser("conditions", help="Show current live conditions")
	conditions.add_argument("--json", action="store_true", help="Output JSON")

	describe = sub.add_parser("describe", help="Describe a civic issue from a photo")
	describe.add_argument("image", help="Path to an image file")
	describe.add_argument("--json", action="store_true", help="Output JSON")

	serve = sub.add_parser("serve", help="Run the HTTP API")
	serve.add_argument("--host", default="127.0.0.1")
	serve.add_argument("--port", type=int, default=8000)

	sub.add_parser("check", help="Validate configuration")

	return parser


def _validate_config_path(raw: str) -> Path | None:
	"""Reject config paths with null bytes or parent-directory traversal."""
	if "\x00" in raw:
		return None
	path = Path(raw)
	if ".." in path.parts:
		return None
	return path


def _load(args: argparse.Namespace) -> RoadwiseConfig:
	path: Path | None = None
	if args.config:
		path = _validate_config_path(args.config)
		if path is None:
			raise ConfigError(f"Invalid config path: {args.config!r}")
	elif Path(CONFIG_FILENAME).exists():
		path = Path(CONFIG_FILENAME)

	if path is None:
		cfg = RoadwiseConfig()
	else:
		try:
			cfg = load_config(path)
		except (FileNotFoundError, tomllib.TOMLDecodeError) as exc:
			raise ConfigError(str(exc)) from exc
	return apply_env(cfg, os.environ)


def _print_advice(advice: TravelAdvice) -> None:
	route = advice.route_advisory
	print(f"Traffic: {route.traffic_analysis}")
	print(f"Weather impact: {route.weather_impact}")
	print(f"Recommended: {route.recommendation.primary}")
	print(f"Alternative: {route.recommendation.alternative}")
	print(f"Avoid: {route.recommendation.avoid}")
	print(f"Best departure: {route.best_departure_time}")
	print(f"Outlook: {route.prediction}")
	ranked = advice.predictive_alerts.ranked()
	print(f"\nAlerts: {len(ranked)}")
	for alert in ranked:
		print(f"  [{alert.relevance:.2f}] {alert.type} @ {alert.location}: {alert.description}")
		if alert.recommended_action:
			print(f"         -> {alert.recommended_action}")
	print(f"\nLive signals used: {len(advice.conditions.signals)}")


def _emit_json(data: Any) -> None:
	print(json.dumps(data, indent=2, ensure_ascii=False))


async def _run_advise(cfg: RoadwiseConfig, origin: str, destination: str) -> TravelAdvice:
	generator = ChatCompletionsGenerator(cfg)
	try:
		return await TravelAdvisor(cfg, generator).advise(origin, destination)
	finally:
		await generator.close()


def cmd_advise(args: argparse.Namespace) -> int:
	cfg = _load(args)
	try:
		advice = asyncio.run(_run_advise(cfg, args.origin, args.destination))
	except InputValidationError as exc:
		print(f"Invalid request: {exc}", file=sys.stderr)
		return 1
	except GenerationError:
		print("Failed to get travel advice from our AI. Please try again.", file=sys.stderr)
		return 1

	if args.json:
		_emit_json(advice.to_dict())
	else:
		_print_advice(advice)
	return 0


def cmd_conditions(args: argparse.Namespace) -> int:
	cfg = _load(args)
	snapshot = asyncio.run(aggregate(cfg))
	if args.json:
		_emit_json(snapshot.to_dict())
		return 0

	print(f"Conditions at {snapshot.gathered_at}")
	if snapshot.weather is not None:
		w = snapshot.weather
		print(f"Weather: {w.temperature_celsius}°C, {w.description}, wind {w.wind_speed_ms:g} m/s")
	else:
		print("Weather: unavailable")
	print(f"Signals: {len(snapshot.signals)}")
	for signal in snapshot.signals:
		print(f"  ({signal.source}) {signal.title}")
	return 0


async def _run_describe(cfg: RoadwiseConfig, data_uri: str) -> Any:
	generator = ChatCompletionsGenerator(cfg)
	try:
		return await describe_issue(
			data_uri,
			generator,
			city=cfg.city.name,
			timeout=cfg.timeouts.generation_seconds,
		)
	finally:
		await generator.close()


def cmd_describe(args: argparse.Namespace) -> int:
	cfg = _load(args)
	image_path = Path(args.image)
	if not image_path.is_file():
		print(f"Image not found: {image_path}", file=sys.stderr)
		return 1
	mime_type, _ = mimetypes.guess_type(image_path.name)
	try:
		data_uri = encode_image_data_uri(image_path.read_bytes(), mime_type or "")
		described = asyncio.run(_run_describe(cfg, data_uri))
	except InputValidationError as exc:
		print(f"Invalid image: {exc}", file=sys.stderr)
		return 1
	except GenerationError:
		print("Failed to describe image. Please try again.", file=sys.stderr)
		return 1

	if args.json:
		_emit_json(described.model_dump(mode="json"))
	else:
		print(f"Description: {described.description}")
		print(f"Department: {described.department.value}")
		print(f"Location: {described.location_description}")
	return 0


def cmd_serve(args: argparse.Namespace) -> int:
	import uvicorn

	from roadwise.server import create_app

	cfg = _load(args)
	app = create_app(cfg)
	uvicorn.run(app, host=args.host, port=args.port)
	return 0


def cmd_check(args: argparse.Namespace) -> int:
	cfg = _load(args)
	issues = validate_config(cfg)
	for level, message in issues:
		print(f"{level.upper()}: {message}")
	if not issues:
		print("Config OK")
	return 1 if any(level == "error" for level, _ in issues) else 0


COMMANDS = {
	"advise": cmd_advise,
	"conditions": cmd_conditions,
	"describe": cmd_describe,
	"serve": cmd_serve,
	"check": cmd_check,
}


def main(argv: list[str] | None = None) -> int:
	parser = build_parser()
	args = parser.parse_args(argv)

	logging.basicConfig(
		level=logging.INFO if args.verbose else logging.WARNING,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)

	if args.command is None:
		parser.print_help()
		return 0

	try:
		return COMMANDS[args.command](args)
	except ConfigError as exc:
		print(f"Config error: {exc}", file=sys.stderr)
		return 1


if __name__ == "__main__":
	sys.exit(main())
