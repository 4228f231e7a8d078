"""gst-log-viewer: upload GStreamer debug logs, then filter and chart them."""

import logging
import os
import sys
from argparse import ArgumentParser

from gstlogview.app import create_app
from gstlogview.config import Config


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="gst-log-viewer",
        description="Serve the GStreamer log query and timeline API.",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("CONFIG_PATH", "config.yaml"),
        help="Path to the YAML config file (default: $CONFIG_PATH or config.yaml)",
    )
    parser.add_argument("--host", help="Bind address (overrides server.host)")
    parser.add_argument("--port", type=int, help="Listen port (overrides server.port)")
    parser.add_argument(
        "--log-level",
        help="Logging level, e.g. DEBUG or INFO (overrides logging.level)",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = Config(args.config)

    logging.basicConfig(
        level=(args.log_level or config["logging"]["level"]).upper(),
        format=config["logging"]["format"],
        stream=sys.stderr,
    )
    logger = logging.getLogger(__name__)

    host = args.host or config["server"]["host"]
    port = args.port or config["server"]["port"]

    app = create_app(config)
    logger.info("Listening on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=config["server"]["debug"],
            threaded=True, use_reloader=False)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
