"""Main entry point for the job alert service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from jobalerts.config.environment import EnvironmentConfig
from jobalerts.config.exceptions import ConfigurationError
from jobalerts.config.loader import load_config
from jobalerts.config.models import AppConfig, EmailTransportType
from jobalerts.domain.models import Frequency
from jobalerts.logging import get_logger
from jobalerts.logging.config import configure_logging
from jobalerts.matching.engine import MatchEvaluator
from jobalerts.notifications.resend_client import ResendTransport
from jobalerts.notifications.service import NotificationDispatcher
from jobalerts.notifications.smtp_client import SMTPTransport
from jobalerts.notifications.transport import EmailTransport
from jobalerts.persistence.database import close_database, init_database
from jobalerts.pipeline import AlertSweep, SweepAbortedError
from jobalerts.scheduler import SchedulerService
from jobalerts.utils.timestamps import parse_iso_datetime

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > Environment > Config.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_transport(app_config: AppConfig, env_config: EnvironmentConfig) -> EmailTransport:
    """Create the email transport selected by ``email.transport``."""
    email_config = app_config.email
    if email_config.transport == EmailTransportType.RESEND.value:
        return ResendTransport(
            api_key=env_config.resend_api_key,
            sender=env_config.sender_address,
            timeout=email_config.send_timeout,
        )
    return SMTPTransport.from_environment(
        env_config, use_tls=email_config.use_tls, timeout=email_config.send_timeout
    )


def build_sweep(app_config: AppConfig, env_config: EnvironmentConfig) -> AlertSweep:
    dispatcher = NotificationDispatcher(
        transport=build_transport(app_config, env_config),
        email_config=app_config.email,
        app_settings=app_config.app,
    )
    return AlertSweep(dispatcher=dispatcher, evaluator=MatchEvaluator())


def scheduled_frequencies(app_config: AppConfig) -> List[Frequency]:
    frequencies = [Frequency.DAILY, Frequency.WEEKLY]
    if app_config.instant_retry_sweep:
        frequencies.insert(0, Frequency.INSTANT)
    return frequencies


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Job alert service - matches saved job alerts against new postings and emails digests"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument(
        "--run-sweep",
        default=None,
        choices=[f.value for f in Frequency],
        help="Run a single sweep of this tier and exit",
    )
    parser.add_argument(
        "--as-of",
        type=parse_iso_datetime,
        default=None,
        help="Sweep time as ISO 8601 (default: now); only with --run-sweep",
    )
    args = parser.parse_args(argv)
    if args.as_of is not None and args.run_sweep is None:
        parser.error("--as-of requires --run-sweep")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the job alert service.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Job alert service starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "run_sweep": args.run_sweep,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "transport": app_config.email.transport,
                "sweep_interval_seconds": app_config.sweep_interval_seconds,
                "instant_retry_sweep": app_config.instant_retry_sweep,
            },
        )

        sweep = build_sweep(app_config, env_config)

        if args.run_sweep:
            return _run_once(sweep, Frequency(args.run_sweep), args.as_of, start_time)

        return _run_daemon(sweep, app_config, start_time)

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


def _run_once(sweep: AlertSweep, frequency: Frequency, as_of, start_time: float) -> int:
    logger.info(
        f"Executing manual {frequency.value} sweep",
        extra={"event": "service.manual_sweep.starting"},
    )
    try:
        result = sweep.run_sweep(frequency, as_of)
    except SweepAbortedError as e:
        print(f"Sweep aborted: {e}", file=sys.stderr)
        close_database()
        return 1

    logger.info(
        f"Manual sweep completed: {result.alerts_processed} alerts, "
        f"{result.sent_count} sent, {result.suppressed_count} suppressed, "
        f"{result.deferred_count} deferred, {result.failed_count} failed",
        extra={
            "event": "service.manual_sweep.completed",
            "duration_seconds": round(result.duration_seconds, 3),
            "had_errors": result.had_errors,
        },
    )

    close_database()
    _log_stopped(start_time)
    return 1 if result.had_errors else 0


def _run_daemon(sweep: AlertSweep, app_config: AppConfig, start_time: float) -> int:
    shutdown_event = threading.Event()

    scheduler_service = SchedulerService(
        sweep_callable=sweep.run_sweep,
        interval_seconds=app_config.sweep_interval_seconds,
        frequencies=scheduled_frequencies(app_config),
        shutdown_event=shutdown_event,
    )

    def signal_handler(signum, frame):
        logger.info(
            f"Received signal {signum}, shutting down",
            extra={"event": "service.signal_received", "signal": signum},
        )
        scheduler_service.shutdown(wait=False)
        close_database()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    scheduler_service.start()

    logger.info(
        "Scheduler started. Press Ctrl+C to stop",
        extra={"event": "service.daemon_mode.started"},
    )

    try:
        shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info(
            "Keyboard interrupt received, shutting down",
            extra={"event": "service.keyboard_interrupt"},
        )
        scheduler_service.shutdown(wait=False)
        close_database()

    _log_stopped(start_time)
    return 0


def _log_stopped(start_time: float) -> None:
    logger.info(
        "Job alert service stopped",
        extra={
            "event": "service.stopping",
            "uptime_seconds": round(time.time() - start_time, 2),
        },
    )


if __name__ == "__main__":
    sys.exit(main())
