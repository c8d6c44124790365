"""Soft validation checks that warn instead of failing."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    # Sweeps slower than 6h make daily digests arrive many hours late
    sweep_interval = config_dict.get("sweep_interval", "1h")
    if isinstance(sweep_interval, str):
        try:
            if parse_duration(sweep_interval) > 6 * 3600:
                warning_messages.append(
                    f"Long sweep_interval ({sweep_interval}) delays daily digests by up to that amount"
                )
        except DurationParseError:
            pass  # reported by model validation

    email = config_dict.get("email", {})
    if isinstance(email, dict):
        max_retries = email.get("max_retries", 2)
        delay = email.get("retry_initial_delay", 5)
        if isinstance(max_retries, int) and isinstance(delay, (int, float)):
            if max_retries > 3 and delay >= 10:
                warning_messages.append(
                    f"max_retries={max_retries} with retry_initial_delay={delay}s can stall a sweep "
                    "on one failing alert; deferred sends are retried next sweep anyway"
                )

    if config_dict.get("instant_retry_sweep") is False:
        warning_messages.append(
            "instant_retry_sweep is disabled: instant alerts whose send failed will not be retried"
        )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
