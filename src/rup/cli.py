import argparse
import logging
import os
import sys

from pydantic import ValidationError

from . import __version__
from .config import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_TIMEOUT, ServerConfig
from .response import NOT_FOUND_PAGE
from .server import run_server

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="rup", description="A simple command-line static http server")
    ap.add_argument("root", nargs="?", default=os.environ.get("RUP_ROOT", "."),
                    help="directory to serve (default: current directory)")
    ap.add_argument("-p", "--port", type=int, default=os.environ.get("PORT", str(DEFAULT_PORT)),
                    help=f"port to listen on (default: {DEFAULT_PORT})")
    ap.add_argument("-b", "--bind", dest="host", default=os.environ.get("RUP_HOST", DEFAULT_HOST),
                    help=f"address to bind (default: {DEFAULT_HOST})")
    ap.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                    help="seconds to wait for the request line")
    ap.add_argument("--not-found-page", default=NOT_FOUND_PAGE,
                    help="custom 404 page, relative to the working directory")
    ap.add_argument("--log-level", default=os.environ.get("RUP_LOG_LEVEL", "INFO"),
                    choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    ap.add_argument("-V", "--version", action="version", version=f"rup {__version__}")
    return ap


def load_config(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig(
        host=args.host,
        port=args.port,
        root=args.root,
        timeout=args.timeout,
        not_found_page=args.not_found_page,
    )


def main(argv: list[str] | None = None):
    ap = build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    try:
        config = load_config(args)
    except ValidationError as e:
        ap.error(str(e))

    logger.info("rup version %s", __version__)
    try:
        run_server(config)
    except OSError as e:
        logger.error("Couldn't bind %s:%d: %s", config.host, config.port, e)
        sys.exit(1)


if __name__ == "__main__":
    main()
