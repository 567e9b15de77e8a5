from typing import List
import argparse
import asyncio
import json
import logging
import os
from logging.config import dictConfig

from social.graze.webfinger.config import WebFingerConfig
from social.graze.webfinger.discover import discover
from social.graze.webfinger.endpoint import HttpUrlBuilder

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging_config_file = os.getenv("LOGGING_CONFIG_FILE", "")

    if len(logging_config_file) > 0:
        with open(logging_config_file) as fl:
            dictConfig(json.load(fl))
        return

    logging.basicConfig()
    logging.getLogger().setLevel(logging.DEBUG if debug else logging.INFO)


async def realMain() -> None:
    parser = argparse.ArgumentParser(
        prog="webfinger", description="Discover WebFinger resources"
    )
    parser.add_argument("resource", nargs="+", help="The resource(s) to discover.")
    parser.add_argument("--host", help="Send discovery requests to this host.")
    parser.add_argument(
        "--port", type=int, help="Send discovery requests to this port."
    )
    parser.add_argument(
        "--rel",
        action="append",
        default=[],
        help="Link relation to request. May be repeated.",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Log raw HTTP requests and responses."
    )
    parser.add_argument(
        "--insecure-http",
        action="store_true",
        help="Use http:// instead of https:// discovery endpoints.",
    )

    args = vars(parser.parse_args())

    configure_logging(args.get("debug", False))

    config = WebFingerConfig(debug=args.get("debug", False))
    if args.get("insecure_http"):
        config.url_builder = HttpUrlBuilder

    resources: List[str] = args.get("resource", [])

    try:
        for resource in resources:
            try:
                response = await discover(
                    resource,
                    config=config,
                    host=args.get("host"),
                    port=args.get("port"),
                    rel=args.get("rel"),
                )
                print(response.model_dump_json(indent=2, exclude_defaults=True))
            except Exception:
                logging.exception("Exception discovering resource %s", resource)
    finally:
        await config.close()


def main() -> None:
    asyncio.run(realMain())


if __name__ == "__main__":
    main()
