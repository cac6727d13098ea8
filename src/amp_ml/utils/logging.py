"""
Logging setup for the AMP-ML pipeline.

Only CLI entrypoints attach handlers (setup_logger on the "amp_ml" logger).
Library modules log through logging.getLogger(__name__) and reach those
handlers by propagation.
"""

import logging
import sys
from pathlib import Path
from typing import Any

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _make_handler(handler: logging.Handler, level: int, formatter: logging.Formatter):
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(
    name: str = "amp_ml",
    level: int = logging.INFO,
    log_file: Path | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Attach a stdout handler (and optionally a file handler) to a logger.

    Calling it again replaces the handlers, so repeated CLI invocations in one
    process do not duplicate output.

    Args:
        name: Logger name ("amp_ml" for the CLI)
        level: Logging level
        log_file: Optional log file; parent directories are created
        format_string: Record format (default: timestamp, level, message)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()
    # Records from amp_ml.* children stop here instead of reaching the root logger
    logger.propagate = False

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)
    logger.addHandler(_make_handler(logging.StreamHandler(sys.stdout), level, formatter))

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _make_handler(logging.FileHandler(log_file, mode="a"), level, formatter)
        )

    return logger


def auto_log_path(
    command: str,
    outdir: Path | str = "results",
    run_id: str | None = None,
) -> Path:
    """
    Log file location for a CLI command.

    Logs live in a ``logs/`` directory next to the results directory:

        logs/run/run_{ID}.log
        logs/score/run_{ID}.log

    Args:
        command: CLI command name (run, score)
        outdir: Results directory
        run_id: Run identifier ("unknown" when None)

    Returns:
        Absolute path; setup_logger creates the parent directories
    """
    outdir = Path(outdir).resolve()
    logs_root = outdir if outdir.name == "logs" else outdir.parent / "logs"
    rid = run_id or "unknown"

    if command in ("run", "score"):
        return logs_root / command / f"run_{rid}.log"
    return logs_root / "misc" / f"{command}_{rid}.log"


def log_section(logger: logging.Logger, title: str, width: int = 80, char: str = "="):
    """Log a section header."""
    logger.info(char * width)
    logger.info(title)
    logger.info(char * width)


def log_diagnostics(
    logger: logging.Logger, diagnostics: dict[str, Any], level: int = logging.ERROR
):
    """Log a stage-failure diagnostics dict, one key per line."""
    for key, value in diagnostics.items():
        logger.log(level, f"  {key}: {value}")
