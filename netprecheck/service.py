from __future__ import annotations

import logging
from dataclasses import dataclass

from netprecheck.checks.results import Report
from netprecheck.config import settings
from netprecheck.errors import ConfigError
from netprecheck.models import PrecheckConfig
from netprecheck.probes.base import Probes, SystemProbes
from netprecheck.registry import CheckRegistry, build_registry
from netprecheck.runner import run

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSettings:
    global_timeout_s: float
    max_parallel: int
    default_timeout_s: float
    default_retries: int


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def resolve_run_settings(
    config: PrecheckConfig,
    *,
    global_timeout_s: float | None = None,
    max_parallel: int | None = None,
) -> RunSettings:
    """Explicit arguments win over the config file, which wins over the environment.

    A check without its own timeout falls back to ``defaults.timeout_s``, then
    ``PRECHECK_DEFAULT_TIMEOUT_S``, then the global timeout.
    """
    global_timeout = _first(global_timeout_s, config.global_timeout, settings.PRECHECK_GLOBAL_TIMEOUT_S)
    parallel = _first(max_parallel, config.max_parallel, settings.PRECHECK_MAX_PARALLEL)
    default_timeout = _first(config.defaults.timeout_s, settings.PRECHECK_DEFAULT_TIMEOUT_S, global_timeout)

    if global_timeout <= 0:
        raise ConfigError(f"global timeout must be positive, got {global_timeout}")
    if parallel < 1:
        raise ConfigError(f"max_parallel must be at least 1, got {parallel}")
    if default_timeout <= 0:
        raise ConfigError(f"default check timeout must be positive, got {default_timeout}")

    return RunSettings(
        global_timeout_s=global_timeout,
        max_parallel=parallel,
        default_timeout_s=default_timeout,
        default_retries=config.defaults.retries,
    )


def run_precheck(
    config: PrecheckConfig,
    *,
    only: list[str] | None = None,
    global_timeout_s: float | None = None,
    max_parallel: int | None = None,
    probes: Probes | None = None,
    registry: CheckRegistry | None = None,
) -> Report:
    if registry is None:
        registry = build_registry(config)
    if only:
        registry = registry.filtered(only)
        if not len(registry):
            raise ConfigError(f"No checks match: {', '.join(only)}")
    run_settings = resolve_run_settings(
        config, global_timeout_s=global_timeout_s, max_parallel=max_parallel
    )
    probes = probes or SystemProbes(config.ssh)

    report = run(
        registry,
        probes,
        global_timeout_s=run_settings.global_timeout_s,
        max_parallel=run_settings.max_parallel,
        default_timeout_s=run_settings.default_timeout_s,
        default_retries=run_settings.default_retries,
    )
    logger.info(
        "Precheck finished: %s (%s checks in %sms)",
        report.status.value,
        len(report.results),
        report.duration_ms,
    )
    return report
