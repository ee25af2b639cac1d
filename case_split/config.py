"""Configuration loader for the case-split reconciler."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _get_env(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key)
    if value is not None:
        value = value.strip()
        if value == "":
            return default
        return value
    return default


def _get_float(key: str, default: float) -> float:
    value = _get_env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {key} must be a number") from exc


def _get_bool(key: str, default: bool) -> bool:
    value = _get_env(key)
    if value is None:
        return default
    value_lower = value.lower()
    if value_lower in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if value_lower in {"0", "false", "f", "no", "n", "off"}:
        return False
    raise ValueError(f"Environment variable {key} must be a boolean")


DEFAULT_LINE_TOLERANCE = 1.5
DEFAULT_SECTION_START = "Case Details"
DEFAULT_SECTION_END = "General Summary"
DEFAULT_LEGEND_PREFIX = "Record Type"


@dataclass(slots=True)
class AppConfig:
    log_level: str = "INFO"
    log_json: bool = True
    line_tolerance: float = DEFAULT_LINE_TOLERANCE
    section_start: str = DEFAULT_SECTION_START
    section_end: str = DEFAULT_SECTION_END
    legend_prefix: str = DEFAULT_LEGEND_PREFIX
    output_suffix: str = ".fixed.txt"
    report_suffix: str = ".report.txt"
    write_bom: bool = True
    crlf: bool = True

    @property
    def newline(self) -> str:
        return "\r\n" if self.crlf else "\n"


def load_config() -> AppConfig:
    line_tolerance = _get_float("CASE_SPLIT_LINE_TOLERANCE", DEFAULT_LINE_TOLERANCE)
    if line_tolerance < 0:
        raise ValueError("Environment variable CASE_SPLIT_LINE_TOLERANCE must not be negative")

    output_suffix = _get_env("CASE_SPLIT_OUTPUT_SUFFIX", ".fixed.txt")
    report_suffix = _get_env("CASE_SPLIT_REPORT_SUFFIX", ".report.txt")
    if output_suffix == report_suffix:
        raise ValueError("CASE_SPLIT_OUTPUT_SUFFIX and CASE_SPLIT_REPORT_SUFFIX must differ")

    return AppConfig(
        log_level=_get_env("LOG_LEVEL", "INFO").upper(),
        log_json=_get_bool("CASE_SPLIT_LOG_JSON", True),
        line_tolerance=line_tolerance,
        section_start=_get_env("CASE_SPLIT_SECTION_START", DEFAULT_SECTION_START),
        section_end=_get_env("CASE_SPLIT_SECTION_END", DEFAULT_SECTION_END),
        legend_prefix=_get_env("CASE_SPLIT_LEGEND_PREFIX", DEFAULT_LEGEND_PREFIX),
        output_suffix=output_suffix,
        report_suffix=report_suffix,
        write_bom=_get_bool("CASE_SPLIT_WRITE_BOM", True),
        crlf=_get_bool("CASE_SPLIT_CRLF", True),
    )
