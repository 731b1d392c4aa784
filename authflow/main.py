import argparse
import asyncio
import logging
import sys

import httpx

from .client import build_client
from .config import get_settings
from .errors import AuthFlowError
from .models import UserSession


def parse_args(argv=None):
    p = argparse.ArgumentParser(prog="authflow", description="Send one authenticated request.")
    p.add_argument("method")
    p.add_argument("path")
    p.add_argument("--json", dest="body", default=None, help="JSON request body")
    return p.parse_args(argv)


async def run(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()

    session = None
    if settings.ACCESS_TOKEN or settings.REFRESH_TOKEN:
        session = UserSession(
            access_token=settings.ACCESS_TOKEN,
            refresh_token=settings.REFRESH_TOKEN,
            is_logged=True,
        )

    async with build_client(settings, session=session) as client:
        kwargs = {}
        if args.body is not None:
            kwargs["content"] = args.body
            kwargs["headers"] = {"Content-Type": "application/json"}
        try:
            r = await client.request(args.method.upper(), args.path, **kwargs)
        except (AuthFlowError, httpx.HTTPError) as e:
            logging.error("request failed: %s", e)
            return 1
        print(r.status_code)
        print(r.text)
    return 0


def main():
    logging.basicConfig(level=get_settings().LOG_LEVEL)
    sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    main()
