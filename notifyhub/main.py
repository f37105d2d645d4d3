"""Main entry point for the notifyhub schedule worker."""

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Sequence, Tuple

from dotenv import load_dotenv

from notifyhub.config.environment import EnvironmentConfig
from notifyhub.config.exceptions import ConfigurationError
from notifyhub.config.loader import load_config
from notifyhub.config.models import AppConfig
from notifyhub.engine import DueScheduleSelector, ScheduleExecutor, ScheduleWorker
from notifyhub.logging import get_logger
from notifyhub.logging.config import configure_logging
from notifyhub.notifications import NotificationError, build_email_channel
from notifyhub.persistence.database import close_database, init_database
from notifyhub.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > LOG_LEVEL > config file > INFO.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        pass
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def build_worker(app_config: AppConfig, env_config: EnvironmentConfig) -> ScheduleWorker:
    """Wire the email channel, selector and executor into a worker.

    Raises:
        NotificationError: If the SMTP transport check fails
    """
    channel = build_email_channel(env_config, app_config.email)
    if app_config.email.verify_on_startup:
        channel.verify()

    return ScheduleWorker(
        selector=DueScheduleSelector(),
        executor=ScheduleExecutor(channel),
        zone=app_config.worker.zone(),
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="notifyhub - executes scheduled notifications for departments and teams"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml if present)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run a single worker pass immediately and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Run the worker.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = parse_args(argv)
    load_dotenv()

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "notifyhub worker starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "manual_run": args.manual_run,
                "timezone": app_config.worker.timezone,
                "tick_interval_seconds": app_config.worker.tick_interval_seconds,
            },
        )

        init_database(env_config.database_url)
        worker = build_worker(app_config, env_config)

        if args.manual_run:
            logger.info("Executing manual pass", extra={"event": "service.manual_pass.starting"})
            result = worker.run_pass()
            close_database()

            logger.info(
                f"Manual pass completed: {len(result.schedule_results)} schedule(s), "
                f"{result.total_sent} sent, {result.total_failed} failed",
                extra={
                    "event": "service.manual_pass.completed",
                    "duration_seconds": result.duration_seconds,
                    "had_errors": result.had_errors,
                    "aborted_count": result.aborted_count,
                },
            )
            logger.info(
                "notifyhub worker stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return 1 if result.had_errors else 0

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            tick_callable=worker.run_pass,
            interval_seconds=app_config.worker.tick_interval_seconds,
            shutdown_event=shutdown_event,
            run_on_startup=app_config.worker.run_on_startup,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)

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
        logger.info(
            "notifyhub worker stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e.message}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except NotificationError as e:
        print(f"Email transport not ready: {e}", file=sys.stderr)
        logger.error(
            f"Email transport check failed: {e}",
            extra={"event": "service.startup.failed", "error_type": type(e).__name__},
        )
        close_database()
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        close_database()
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            exc_info=True,
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
        )
        close_database()
        return 1


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
