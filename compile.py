#!/usr/bin/env -S uv run --script
"""
Compile views, both for editors and for everybody else.

    ./compile.py                  # all views
    ./compile.py site:home blog   # some views, or whole namespaces
"""

import argparse
import logging
import sys

from pieces.api import create_piece_service
from pieces.config import Config
from pieces.setup import setup_logging
from pieces.views.types import NS_SEPARATOR, ViewsError, split_path

logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "views",
        nargs="*",
        help="namespace:view paths or namespaces to compile. All if none given.",
    )
    parser.add_argument("--config", default="config.yaml", help="Path to the config file")
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Continue with the next view when one fails",
    )
    return parser.parse_args()


def resolve_views(service, names: list[str]) -> list[str]:
    """
    Expand namespaces to their views.
    """
    if not names:
        return service.views.list_views()

    paths = []
    for name in names:
        if NS_SEPARATOR in name:
            paths.append(name)
        else:
            paths.extend(service.views.list_views(name))
    return paths


def main() -> int:
    args = parse_args()
    setup_logging(logging.INFO)

    service = create_piece_service(Config.read(args.config))
    failed = 0
    for path in resolve_views(service, args.views):
        namespace, view = split_path(path)
        try:
            service.compile_view(namespace, view)
        except ViewsError as error:
            logger.error("Failed to compile view=%s: %s", path, error)
            failed += 1
            if not args.keep_going:
                break
        else:
            logger.info("Compiled view=%s", path)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
