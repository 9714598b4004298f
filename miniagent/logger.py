"""Logging configuration for miniagent."""

import logging
from pathlib import Path


def setup_logging(
    log_file: str = "log/agent.log",
    level: int | str = logging.INFO,
    verbose: bool = False,
) -> None:
    """Setup logging to file and, with verbose, to stderr."""

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        logging.FileHandler(log_path, mode='a', encoding='utf-8'),
    ]

    # The console is the chat surface; only mirror logs there on request
    if verbose:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True
    )

    # Suppress noisy third-party logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    if verbose:
        logging.getLogger("miniagent").setLevel(logging.DEBUG)

    logging.info("="*60)
    logging.info(f"miniagent logging started. Writing to {log_path.absolute()}")
    logging.info("="*60)
