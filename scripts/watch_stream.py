#!/usr/bin/env python3
"""
Zone Stream Watcher
===================

Standalone script to watch the live /ws/zones stream.

This script:
    1. Connects to a running crowd monitor
    2. Optionally requests an on-demand refresh on connect
    3. Logs status counts for every snapshot received
    4. Reports a final summary after the configured duration

Prerequisites:
    - The crowd monitor must be running at the configured URL
    - Install dependencies: pip install -e .

Usage:
    python scripts/watch_stream.py --duration 60
    python scripts/watch_stream.py --url ws://localhost:5000/ws/zones --refresh
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from collections import Counter

import websockets
from websockets.exceptions import ConnectionClosed


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def watch(url: str, duration: int, request_refresh: bool) -> dict:
    """
    Watch the stream for ``duration`` seconds.

    Returns:
        Final stats dict
    """
    logger.info("=" * 60)
    logger.info(f"Watching {url} for {duration} seconds")
    logger.info("=" * 60)

    snapshots = 0
    parse_errors = 0
    status_totals: Counter = Counter()
    start_time = time.time()

    try:
        async with websockets.connect(
            url,
            ping_interval=20,
            ping_timeout=10,
            close_timeout=5,
        ) as ws:
            if request_refresh:
                await ws.send(json.dumps({"event": "requestUpdate"}))

            while True:
                remaining = duration - (time.time() - start_time)
                if remaining <= 0:
                    logger.info(f"Watch duration ({duration}s) reached")
                    break

                try:
                    raw = await asyncio.wait_for(ws.recv(), timeout=remaining)
                except asyncio.TimeoutError:
                    continue

                try:
                    message = json.loads(raw)
                    readings = message["data"]
                except (json.JSONDecodeError, KeyError, TypeError) as e:
                    parse_errors += 1
                    logger.error(f"Invalid message: {e}")
                    continue

                snapshots += 1
                statuses = Counter(r["status"] for r in readings)
                clusters = {r["cluster"] for r in readings if r["cluster"] > 0}
                status_totals.update(statuses)

                logger.info(
                    f"Snapshot {snapshots}: zones={len(readings)}, "
                    f"clusters={len(clusters)}, "
                    f"overcrowded={statuses.get('overcrowded', 0)}, "
                    f"moderate={statuses.get('moderate', 0)}, "
                    f"normal={statuses.get('normal', 0)}"
                )

    except ConnectionClosed as e:
        logger.warning(f"Connection closed: {e}")
    except OSError as e:
        logger.error(f"Cannot connect to {url}: {e}")

    total_time = time.time() - start_time

    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.1f} seconds")
    logger.info(f"Snapshots received: {snapshots}")
    logger.info(f"Parse errors: {parse_errors}")
    for status, count in sorted(status_totals.items()):
        logger.info(f"  {status}: {count}")
    logger.info("=" * 60)

    return {
        "duration": total_time,
        "snapshots": snapshots,
        "parse_errors": parse_errors,
        "status_totals": dict(status_totals),
    }


def main():
    parser = argparse.ArgumentParser(description="Watch the crowd monitor zone stream")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("CROWD_STREAM_URL", "ws://localhost:5000/ws/zones"),
        help="WebSocket URL of the zone stream",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Watch duration in seconds (default: 60)",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Request an on-demand snapshot right after connecting",
    )

    args = parser.parse_args()

    result = asyncio.run(watch(
        url=args.url,
        duration=args.duration,
        request_refresh=args.refresh,
    ))

    sys.exit(0 if result["snapshots"] > 0 else 1)


if __name__ == "__main__":
    main()
