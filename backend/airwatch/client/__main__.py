"""
Console viewer: follow live readings from a terminal.

    python -m airwatch.client --base-url http://localhost:8000
"""

import argparse
import asyncio
import logging
import sys

from airwatch.client.viewer_session import ClientConfig, ViewerSession
from airwatch.models import StoredReading, air_quality_category


def _print_reading(reading: StoredReading):
    print(
        f"{reading.timestamp.isoformat()}  "
        f"{reading.temperature:.1f}°C  {reading.humidity:.0f}%  "
        f"PM2.5 {reading.pm25:g} ({air_quality_category(reading.pm25)})  "
        f"wind {reading.wind_speed:g} {reading.wind_direction.value}"
    )


async def _run(args: argparse.Namespace):
    async with ViewerSession(
        base_url=args.base_url,
        poll_interval=args.poll_interval,
        on_update=_print_reading,
    ):
        await asyncio.Event().wait()


def main():
    parser = argparse.ArgumentParser(description="Follow live air quality readings")
    parser.add_argument("--base-url", default=ClientConfig.API_BASE_URL, help="Backend URL")
    parser.add_argument("--poll-interval", type=float, default=ClientConfig.POLL_INTERVAL,
                        help="Seconds between backup polls")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log connection details")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='[%(asctime)s] %(message)s',
        datefmt='%H:%M:%S',
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
