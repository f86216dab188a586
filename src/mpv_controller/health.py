import logging
import os
import shutil
from dataclasses import dataclass

from mpv_controller.config import MpvControllerConfig

logger = logging.getLogger(__name__)

HELPER_TOOLS = ("socat", "nc")


@dataclass
class HealthCheckResult:
    name: str
    passed: bool
    detail: str


def run_startup_checks(config: MpvControllerConfig) -> list[HealthCheckResult]:
    results = [
        _check_mpv_binary(config),
        *(_check_helper_tool(config, tool) for tool in HELPER_TOOLS),
        _check_direct_socket(config),
        _check_log_dir(config),
    ]

    passed = sum(1 for r in results if r.passed)

    logger.info("Health check: %d/%d passed", passed, len(results))
    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        symbol = "OK" if result.passed else "FAIL"
        logger.log(level, "  [%s] %s: %s", symbol, result.name, result.detail)

    return results


def has_critical_failures(results: list[HealthCheckResult]) -> bool:
    critical_checks = {"mpv_binary"}
    return any(not r.passed and r.name in critical_checks for r in results)


def _check_mpv_binary(config: MpvControllerConfig) -> HealthCheckResult:
    name = "mpv_binary"
    path = shutil.which(config.mpv_binary)
    if path is None:
        return HealthCheckResult(name=name, passed=False, detail=f"'{config.mpv_binary}' not found on PATH")
    return HealthCheckResult(name=name, passed=True, detail=path)


def _check_helper_tool(config: MpvControllerConfig, tool: str) -> HealthCheckResult:
    if tool not in config.transports:
        return HealthCheckResult(name=tool, passed=True, detail="not configured, skipping")
    path = shutil.which(tool)
    if path is None:
        return HealthCheckResult(
            name=tool,
            passed=False,
            detail=f"{tool} not found, IPC communication with mpv may be limited",
        )
    return HealthCheckResult(name=tool, passed=True, detail=path)


def _check_direct_socket(config: MpvControllerConfig) -> HealthCheckResult:
    name = "direct_socket"
    if "direct" not in config.transports:
        return HealthCheckResult(
            name=name,
            passed=False,
            detail="direct socket transport disabled, delivery depends on helper tools",
        )
    return HealthCheckResult(name=name, passed=True, detail="enabled as fallback")


def _check_log_dir(config: MpvControllerConfig) -> HealthCheckResult:
    name = "log_dir"
    log_dir = os.path.dirname(os.path.abspath(config.mpv_log_file))
    if not os.path.isdir(log_dir):
        return HealthCheckResult(name=name, passed=False, detail=f"{log_dir} does not exist")
    if not os.access(log_dir, os.W_OK):
        return HealthCheckResult(name=name, passed=False, detail=f"{log_dir} is not writable")
    return HealthCheckResult(name=name, passed=True, detail=config.mpv_log_file)
