"""Tab-separated key/value logging for training runs."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
RUN_LOGGER = "range_ai.run"


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler unless the host application already did."""

    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def format_display_path(path_value: str | Path, bases: Iterable[Path] | None = None) -> str:
    """Shorten absolute paths relative to the cwd or the project root."""

    path = Path(path_value)
    if not path.is_absolute():
        return str(path)
    for base in bases if bases is not None else (Path.cwd(), PROJECT_ROOT):
        if path.is_relative_to(base):
            return str(path.relative_to(base))
    return str(path)


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "on" if value else "off"
    if isinstance(value, float):
        return f"{value:.3f}"
    if isinstance(value, Path):
        return format_display_path(value)
    return str(value)


def format_key_values(
    values: Mapping[str, Any],
    *,
    prefix: str | None = None,
    separator: str = "=",
) -> str:
    """``prefix<TAB>key=value<TAB>...``; None values are skipped."""

    joiner = ": " if separator == ":" else separator
    segments = [str(prefix)] if prefix else []
    segments.extend(
        f"{key}{joiner}{format_value(value)}" for key, value in values.items() if value is not None
    )
    return "\t".join(segments)


def log_key_values(
    logger_name: str,
    values: Mapping[str, Any],
    *,
    prefix: str | None = None,
    key_value_separator: str = "=",
    level: int = logging.INFO,
) -> None:
    logger = logging.getLogger(logger_name)
    if logger.isEnabledFor(level):
        logger.log(level, format_key_values(values, prefix=prefix, separator=key_value_separator))


def log_role_values(
    logger_name: str,
    role: str,
    values: Mapping[str, Any],
    *,
    level: int = logging.INFO,
) -> None:
    """Same as ``log_key_values`` with the role name as the leading column."""

    log_key_values(logger_name, values, prefix=f"[{role}]", level=level)


def mode_label(mode: str) -> str:
    words = mode.replace("-", " ").replace("_", " ").split()
    return " ".join("AI" if word.lower() == "ai" else word.title() for word in words)


def log_run_context(mode: str, context: Mapping[str, Any]) -> None:
    titled = {key.replace("_", " ").title(): value for key, value in context.items()}
    log_key_values(RUN_LOGGER, titled, prefix=mode_label(mode), key_value_separator=":")
