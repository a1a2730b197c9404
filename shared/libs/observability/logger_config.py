import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[service]} | "
    "{module}:{function}:{line} - {message} | {extra}"
)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _add_file_sink(path: Path, level: str, rotation: str, retention: str, json: bool):
    # enqueue: consumer worker threads log concurrently
    logger.add(
        path,
        format=LOG_FORMAT,
        level=level.upper(),
        rotation=rotation,
        retention=retention,
        compression="zip",
        backtrace=True,
        enqueue=True,
        serialize=json,
    )


def configure_logger(
    env: str = "development",
    console_level: Optional[str] = None,
    file_level: str = "DEBUG",
    error_file_level: str = "ERROR",
    log_to_file: bool = True,
    log_dir: str = "logs",
    json: bool = False,
) -> None:
    """
    Configure the Loguru logger shared by every marketplace service.

    Records carry a `service` extra, "-" until the app calls `bind_service`.

    Args:
        env: "development" or "production"; picks the default console level.
        console_level: Console level, overrides the env default.
        file_level: Level for logs/app.log.
        error_file_level: Level for logs/error.log.
        log_to_file: Add the rotating file sinks.
        log_dir: Directory for the file sinks.
        json: Write file sinks as JSON lines for log shipping.
    """
    logger.remove()
    logger.configure(extra={"service": "-"})

    development = env.lower() == "development"
    console_level = console_level or ("DEBUG" if development else "INFO")

    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=console_level.upper(),
        backtrace=True,
        diagnose=development,
        colorize=True,
    )

    if log_to_file:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        _add_file_sink(directory / "app.log", file_level, "10 MB", "7 days", json)
        _add_file_sink(directory / "error.log", error_file_level, "5 MB", "30 days", json)

    logger.debug(
        "Logger configured",
        env=env,
        console_level=console_level,
        log_to_file=log_to_file,
        json=json,
    )


def bind_service(name: str) -> None:
    """Tag every subsequent record with the running service's name."""
    logger.configure(extra={"service": name})


configure_logger(
    env=os.getenv("ENV", "development"),
    console_level=os.getenv("CONSOLE_LOG_LEVEL"),
    file_level=os.getenv("FILE_LOG_LEVEL", "DEBUG"),
    error_file_level=os.getenv("ERROR_LOG_LEVEL", "ERROR"),
    log_to_file=_env_flag("LOG_TO_FILE", "true"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    json=_env_flag("LOG_JSON", "false"),
)

# Export the configured logger
log = logger
