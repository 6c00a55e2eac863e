"""samplegate entry point: load settings, start the aiohttp query service."""

import argparse
import logging
import sys
from pathlib import Path

from samplegate.config import load_config
from samplegate.server import create_app

log = logging.getLogger("samplegate")


def main(argv: list[str] | None = None) -> None:
    from aiohttp import web

    parser = argparse.ArgumentParser(description="Debug-sampling permission service")
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("--source", help="Override sampling.source (data:<json> or file:<path>)")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.source is not None:
        config["sampling"]["source"] = args.source

    logging.basicConfig(
        level=getattr(logging, config["logging"]["level"].upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    app = create_app(config)
    log.info("Serving debug sampling permissions on port %s", config["server"]["port"])
    web.run_app(app, port=config["server"]["port"])


if __name__ == "__main__":
    main()
