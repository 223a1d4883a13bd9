#!/usr/bin/env python3
"""
Wayfinder - Pedestrian route tracking for head-worn displays

Usage:
    python -m wayfinder DESTINATION [options]

Options:
    --api-key KEY     Google Maps API key (default: $GOOGLE_MAPS_API_KEY)
    --lat LAT         Fixed latitude (for testing without GPS)
    --lon LON         Fixed longitude (for testing without GPS)
    --record FILE     Record GPS trace to JSON file for debugging
    --playback FILE   Playback GPS trace from JSON file
    --speed FACTOR    Playback speed multiplier (default: 1.0)
    --log FILE        Log file path (default: wayfinder_TIMESTAMP.log)
    --no-snap         Skip road snapping and route from raw GPS
    --quiet           Do not speak arrival/failure cues
"""

import argparse
import os
import sys
from datetime import datetime

from .app import Wayfinder
from .config import CONFIG
from .gps import FixRecorder, PlaybackPositionFeed, StaticPositionFeed, TermuxPositionFeed
from .models import NavState


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Wayfinder - Pedestrian route tracking for head-worn displays"
    )
    parser.add_argument("destination",
                        help="Destination as free text (address or place name)")
    parser.add_argument("--api-key", default=os.environ.get(CONFIG["api_key_env"]),
                        help=f"Google Maps API key (default: ${CONFIG['api_key_env']})")
    parser.add_argument("--lat", type=float, metavar="LAT",
                        help="Fixed latitude (for testing without GPS)")
    parser.add_argument("--lon", type=float, metavar="LON",
                        help="Fixed longitude (for testing without GPS)")
    parser.add_argument("--record", metavar="FILE",
                        help="Record GPS trace to JSON file")
    parser.add_argument("--playback", metavar="FILE",
                        help="Playback GPS trace from JSON file")
    parser.add_argument("--speed", type=float, default=1.0,
                        help="Playback speed multiplier (default: 1.0)")
    parser.add_argument("--log", metavar="FILE",
                        help="Log file path (default: wayfinder_TIMESTAMP.log)")
    parser.add_argument("--no-snap", action="store_true",
                        help="Skip road snapping")
    parser.add_argument("--quiet", action="store_true",
                        help="Do not speak arrival/failure cues")
    return parser


def parse_args(argv=None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate lat/lon - must provide both or neither
    if (args.lat is None) != (args.lon is None):
        parser.error("--lat and --lon must be used together")

    if args.record and args.playback:
        parser.error("--record and --playback cannot be used together")

    if args.playback and args.lat is not None:
        parser.error("--playback cannot be combined with --lat/--lon")

    if args.speed <= 0:
        parser.error("--speed must be positive")

    if not args.destination.strip():
        parser.error("destination must not be empty")

    if not args.api_key:
        parser.error(f"an API key is required (--api-key or ${CONFIG['api_key_env']})")

    return args


def main(argv=None) -> int:
    args = parse_args(argv)

    log_path = args.log or f"wayfinder_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"

    speed = 1.0
    if args.playback:
        feed = PlaybackPositionFeed(args.playback, speed=args.speed)
        speed = args.speed
    elif args.lat is not None:
        feed = StaticPositionFeed(args.lat, args.lon)
    else:
        feed = TermuxPositionFeed()

    if args.record:
        feed = FixRecorder(feed, args.record)

    app = Wayfinder(
        api_key=args.api_key,
        feed=feed,
        log_path=log_path,
        snap=not args.no_snap,
        speak=not args.quiet,
        playback_speed=speed,
    )
    event = app.run(args.destination.strip())

    if event and event.state == NavState.ARRIVED:
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
