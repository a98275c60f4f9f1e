"""Main entry point for the reference native messaging host.

Chrome or Firefox starts this process and talks to it over
stdin/stdout. It answers every message until the browser closes
stdin. Exit status is 0 on a clean disconnect and 1 on any other
failure, with the reason on stderr (stdout carries frames only).
"""
from __future__ import annotations

import asyncio
import sys

from returns.io import IOFailure
from returns.unsafe import unsafe_perform_io

from native_messaging.host.event_loop import event_loop
from native_messaging.host.handler import handle_message
from native_messaging.host.log import setup_logging


def main() -> None:
    """Run the echo host until disconnect."""
    logger = setup_logging()
    logger.debug("--- host started ---")
    try:
        result = asyncio.run(event_loop(handle_message))
    except KeyboardInterrupt:
        raise SystemExit(0) from None
    if isinstance(result, IOFailure):
        err = unsafe_perform_io(result.failure())
        sys.stderr.write(f"native-messaging-echo: {err.message}\n")
        sys.exit(1)
    logger.debug("--- host finished ---")


if __name__ == "__main__":
    main()
