#!/usr/bin/env python3
"""Command-line front end: fetch a URL to stdout, or profile it with --profile N."""

import argparse
import logging
import signal
import sys
import threading

from Jockey import (AbortSignal, JockeyError, UserAgentMiddleware, LoggingMiddleware,
                    create_sync_client, load_client_config, parse_fuzzy_url, parse_header_args)

logger = logging.getLogger("jockey")

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_REQUEST_FAILED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jockey",
        description="Fetch a URL over a raw socket, or profile it with repeated requests.")
    parser.add_argument('url', help="URL to request; http is assumed when no scheme is given")
    parser.add_argument('--profile', type=int, metavar='N',
                        help="send N sequential requests and print latency statistics")
    parser.add_argument('-H', '--header', action='append', default=[], metavar='"NAME: VALUE"',
                        help="extra request header, may be repeated; overrides defaults")
    parser.add_argument('-A', '--user-agent', help="User-Agent header to send")
    parser.add_argument('--max-time', type=float, metavar='SECONDS',
                        help="close the connection if the response takes longer than this")
    parser.add_argument('--config', metavar='PATH', help="JSON configuration file")
    parser.add_argument('-v', '--verbose', action='store_true', help="log request details")
    return parser


def _fetch(client, endpoint, headers, max_time) -> int:
    abort = AbortSignal()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: abort.close())
    if max_time is not None:
        abort.abort(max_time)
    try:
        outcome = client.fetch(endpoint, sys.stdout.buffer, headers, abort)
    except JockeyError as e:
        print(f"[jockey] {e}", file=sys.stderr)
        return EXIT_REQUEST_FAILED
    finally:
        signal.signal(signal.SIGINT, previous)
        sys.stdout.flush()
    logger.info(f"Status {outcome.status}, {outcome.bytes_read} bytes read")
    return EXIT_OK


def _profile(client, endpoint, headers, repetitions) -> int:
    stop_event = threading.Event()

    def on_interrupt(signum, frame):
        print("[jockey] Interrupted, finishing the current request", file=sys.stderr)
        stop_event.set()

    previous = signal.signal(signal.SIGINT, on_interrupt)
    try:
        results = client.profile(endpoint, repetitions, headers, stop_event)
    finally:
        signal.signal(signal.SIGINT, previous)
    print(f"Profiled {endpoint.url}")
    print(results, end="")
    return EXIT_OK


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")

    try:
        endpoint = parse_fuzzy_url(args.url)
        headers = parse_header_args(args.header)
        config = load_client_config(args.config)
        if args.profile is not None and args.profile < 1:
            raise ValueError(f"--profile must be at least 1, got {args.profile}")
        if args.max_time is not None and args.max_time < 0:
            raise ValueError(f"--max-time cannot be negative, got {args.max_time}")
    except (ValueError, FileNotFoundError) as e:
        print(f"[jockey] {e}", file=sys.stderr)
        return EXIT_USAGE

    middleware = [LoggingMiddleware()]
    if args.user_agent:
        middleware.append(UserAgentMiddleware(args.user_agent))
    client = create_sync_client(config=config, middleware=middleware)

    if args.profile is not None:
        return _profile(client, endpoint, headers, args.profile)
    return _fetch(client, endpoint, headers, args.max_time)


if __name__ == "__main__":
    sys.exit(main())
