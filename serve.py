#!/usr/bin/env -S uv run --script

import argparse
import logging

import uvicorn

from pieces.api import create_app
from pieces.config import Config
from pieces.setup import setup_logging

logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="Serve the pieces API and views")
    parser.add_argument(
        "other",
        help="Other arguments are ignored",
        nargs="*",
    )
    parser.add_argument(
        "--config",
        help="Path to the config file",
        default="config.yaml",
    )
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload on file changes"
    )
    parser.add_argument("--log-level", default="info", help="Log level")
    return parser.parse_args()


setup_logging()
config = Config.read(parse_args().config)
app = create_app(config)


def main():
    opts = parse_args()
    logger.info("Serving pieces with config=%s", opts.config)

    uvicorn.run(
        "serve:app",
        host=opts.host or config.server.host,
        port=opts.port or config.server.port,
        reload=opts.reload or config.server.reload,
        log_level=opts.log_level,
    )


if __name__ == "__main__":
    main()
