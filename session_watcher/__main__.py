"""Command line entry point: ``python -m session_watcher`` or ``smtc2web``."""

import argparse
import logging
import sys
import time
from dataclasses import replace

import uvicorn

from . import app as app_module
from .config import write_default_config
from .config_watcher import ConfigWatcher
from .exceptions import ConfigError
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)

RESTART_GRACE_SECONDS = 0.5


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="smtc2web",
        description="Serve the current OS media session as a local JSON feed",
    )
    parser.add_argument("--config", help="Path to config.toml (default: per-user config dir)")
    parser.add_argument("--host", help="Override the listen address")
    parser.add_argument("--port", type=int, help="Override the listen port")
    parser.add_argument(
        "--restarted",
        action="store_true",
        help="Started by a previous instance; wait for it to release the port",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    watcher = ConfigWatcher(config_file=args.config)
    try:
        config = watcher.load()
        overrides = {}
        if args.host is not None:
            overrides["listen_address"] = args.host
        if args.port is not None:
            overrides["listen_port"] = args.port
        if overrides:
            config = replace(config, **overrides)
            config.validate()
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(config)
    write_default_config(watcher.current())

    if args.restarted:
        logger.info("Restarted by previous instance")
        time.sleep(RESTART_GRACE_SECONDS)

    app_module.config_watcher = watcher
    logger.info(f"Server running at {config.base_url}")

    # uvicorn exits the process with a non-zero status if the bind fails
    uvicorn.run(
        app_module.app,
        host=config.listen_address,
        port=config.listen_port,
        log_level=config.log_level.lower(),
        access_log=config.debug,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
