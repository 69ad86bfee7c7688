from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from netprecheck.config import settings
from netprecheck.errors import ConfigError
from netprecheck.formatting import render_text
from netprecheck.registry import build_registry, load_config
from netprecheck.reporting import render_report_markdown, report_to_json
from netprecheck.service import run_precheck

logger = logging.getLogger(__name__)

EXIT_PASS = 0
EXIT_CHECKS_FAILED = 1
EXIT_BAD_CONFIG = 2
EXIT_CRASHED = 3


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


RENDERERS = {
    "text": render_text,
    "json": report_to_json,
    "markdown": render_report_markdown,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="netprecheck",
        description="Validate cluster networking before deployment.",
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=settings.PRECHECK_CONFIG_PATH,
        help="Path to the precheck YAML file (default: %(default)s)",
    )
    parser.add_argument("--format", choices=sorted(RENDERERS), default="text")
    parser.add_argument("--output", "-o", help="Write the report to this file instead of stdout")
    parser.add_argument("--global-timeout", type=_positive_float, help="Seconds before unfinished checks are abandoned")
    parser.add_argument("--max-parallel", type=_positive_int, help="Maximum number of checks running at once")
    parser.add_argument(
        "--only",
        action="append",
        default=[],
        metavar="PREFIX",
        help="Run only checks whose id starts with PREFIX (repeatable)",
    )
    parser.add_argument("--list", action="store_true", help="List the checks that would run and exit")
    parser.add_argument("--log-level", default=settings.PRECHECK_LOG_LEVEL)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = load_config(args.config)
        registry = build_registry(config)
        if args.list:
            selected = registry.filtered(args.only)
            if not len(selected):
                raise ConfigError(f"No checks match: {', '.join(args.only)}")
            for spec in selected:
                targets = ", ".join(t.describe() for t in spec.targets)
                print(f"{spec.id}\t{spec.kind.value}\t{targets}")
            return EXIT_PASS
        report = run_precheck(
            config,
            only=args.only,
            global_timeout_s=args.global_timeout,
            max_parallel=args.max_parallel,
            registry=registry,
        )
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_BAD_CONFIG
    except Exception:
        logger.exception("Precheck runner crashed")
        return EXIT_CRASHED

    rendered = RENDERERS[args.format](report)
    if args.output:
        Path(args.output).write_text(rendered + "\n")
        logger.info("Wrote %s report to %s", args.format, args.output)
    else:
        print(rendered)

    return EXIT_PASS if report.passed else EXIT_CHECKS_FAILED


if __name__ == "__main__":
    sys.exit(main())
