"""studysync - calendar import and scheduling core for StudySync.

Provides the ICS import pipeline, the per-user event store, conflict detection,
free-slot lookup and the calendar assistant, plus a small aiohttp API. Imports
are kept light so the package can be inspected without starting the server.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs one stderr handler with a compact formatter so that startup
    messages are visible before configuration is loaded. Callers may adjust
    the level later (e.g. from config).

    The STUDYSYNC_DEBUG environment variable (truthy values: "1", "true",
    "yes", "on") forces DEBUG verbosity regardless of ``level_name``.
    """
    import logging
    import os
    import sys

    debug_env = os.environ.get("STUDYSYNC_DEBUG", "")
    if isinstance(debug_env, str) and debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        try:
            from colorlog import ColoredFormatter

            # HH:MM:SS  LEVEL   logger.name: message (only the level is colorized)
            fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
            log_colors = {
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            }
            formatter: logging.Formatter = ColoredFormatter(
                fmt, datefmt="%H:%M:%S", log_colors=log_colors
            )
        except ImportError:
            fmt = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
            formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")

        handler.setFormatter(formatter)
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the studysync API server.

    Loads configuration from the environment (and ``.env``), applies command
    line overrides from ``args`` and blocks until the server is shut down.

    Args:
        args: Optional argparse namespace carrying ``port`` / ``host`` overrides
    """
    import logging
    import os

    _init_logging(os.environ.get("STUDYSYNC_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from studysync.api.server import start_server
    from studysync.core.config_manager import ConfigManager

    cfg = ConfigManager().load_full_config()

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            cfg["server_port"] = int(port)
            logger.debug("Applied command line port override: %d", int(port))
        host = getattr(args, "host", None)
        if host:
            cfg["server_bind"] = host
        if getattr(args, "verbose", False):
            cfg["log_level"] = "DEBUG"

    cfg_level = cfg.get("log_level")
    if isinstance(cfg_level, str):
        logger.info("Applying configured log_level=%s", cfg_level)
        logging.getLogger().setLevel(getattr(logging, cfg_level.upper(), logging.INFO))

    # Only surface a small set of config keys to avoid leaking secrets into logs.
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: cfg.get(k) for k in ("server_bind", "server_port", "relay_url", "user_id")},
    )

    start_server(cfg)
