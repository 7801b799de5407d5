"""
CLI Module

Architectural Intent:
- Command-line interface for the fanout relay
- Entry point for all user interactions
- Delegates to the composition root (serve) or the relay HTTP API
  (publish, stats, dash)
- Supports --verbose/--debug flags for log level control
"""

import argparse
import asyncio
import json
import logging
import sys
import traceback

from fanout.infrastructure.config import load_config
from fanout.infrastructure.logging import configure_logging, parse_level
from fanout.infrastructure.relay_client import RelayAPIError, RelayClient


async def run_relay(container, relay_host, relay_port, web_host, web_port, stop_event=None):
    """Run the TCP relay and the web API until *stop_event* is set.

    With no stop_event the relay runs until the task is cancelled.
    """
    from fanout.presentation.web.app import FanoutWebApp

    transport = container.transport
    web = FanoutWebApp(
        container.registry,
        container.dispatcher,
        container.stats,
        publish_timeout=container.config.web.publish_timeout,
    )

    await transport.start(relay_host, relay_port)
    await web.start(web_host, web_port)
    print(f"[*] Subscribers: tcp://{relay_host}:{transport.bound_port}")
    print(f"[*] Publish API: http://{web_host}:{web.port}/api/publish")

    telemetry = container.telemetry
    telemetry_stop = asyncio.Event()
    telemetry_task = None
    await telemetry.initialize()
    if telemetry.enabled:
        print(f"[*] Metrics export: {telemetry.config.endpoint}")
        telemetry_task = asyncio.create_task(
            telemetry.run(container.stats, telemetry_stop)
        )
    try:
        if stop_event is None:
            await transport.serve_forever()
        else:
            await stop_event.wait()
    finally:
        telemetry_stop.set()
        if telemetry_task is not None:
            await telemetry_task
        web.stop()
        await transport.stop()


async def async_main():
    parser = argparse.ArgumentParser(
        description="Fanout: a best-effort channel relay for pub/sub fan-out"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON logs"
    )
    parser.add_argument(
        "--config", default=None, help="Path to JSON config (default: fanout.json)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser(
        "serve", help="Run the relay (TCP subscribers + HTTP publish API)"
    )
    serve_parser.add_argument("--host", help="Subscriber listener host")
    serve_parser.add_argument(
        "--port", "-p", type=int, help="Subscriber listener port"
    )
    serve_parser.add_argument("--web-host", help="HTTP API host")
    serve_parser.add_argument("--web-port", type=int, help="HTTP API port")

    publish_parser = subparsers.add_parser(
        "publish", help="Publish an event through a running relay"
    )
    publish_parser.add_argument(
        "--url", "-u", help="Relay HTTP API base URL"
    )
    publish_parser.add_argument("channel", help="Channel name")
    publish_parser.add_argument("payload", help="Payload text")

    stats_parser = subparsers.add_parser(
        "stats", help="Print counters from a running relay"
    )
    stats_parser.add_argument("--url", "-u", help="Relay HTTP API base URL")

    dash_parser = subparsers.add_parser("dash", help="Launch the relay dashboard")
    dash_parser.add_argument("--url", "-u", help="Relay HTTP API base URL")
    dash_parser.add_argument(
        "--interval", "-i", type=float, help="Refresh interval in seconds"
    )

    args = parser.parse_args()
    config = load_config(args.config)

    # Configure logging based on flags
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = parse_level(config.log_level)
    configure_logging(level=level, json_format=args.json_logs or config.json_logs)

    verbose = args.verbose or args.debug

    if args.command == "serve":
        from fanout.composition_root import create_container

        try:
            container = create_container(config)
        except ValueError as e:
            print(f"[-] Invalid configuration: {e}")
            sys.exit(1)
        try:
            await run_relay(
                container,
                args.host or config.relay.host,
                args.port if args.port is not None else config.relay.port,
                args.web_host or config.web.host,
                args.web_port if args.web_port is not None else config.web.port,
            )
        except OSError as e:
            print(f"[-] Cannot start relay: {e}")
            if verbose:
                traceback.print_exc()
            sys.exit(1)
        return

    if args.command == "publish":
        client = RelayClient(args.url or config.client.url)
        try:
            result = await client.publish(args.channel, args.payload)
        except ConnectionError as e:
            print(f"[-] Connection error: {e}")
            if verbose:
                traceback.print_exc()
            sys.exit(1)
        except RelayAPIError as e:
            print(f"[-] Publish rejected: {e.message}")
            sys.exit(1)

        print(
            f"[+] Delivered to {result['delivered']} of "
            f"{result['matched']} subscriber(s) on '{result['channel']}'."
        )
        if result["failed"]:
            print(f"[!] Dropped for: {', '.join(result['failed'])}")
        return

    if args.command == "stats":
        client = RelayClient(args.url or config.client.url)
        try:
            stats = await client.stats()
        except (ConnectionError, RelayAPIError) as e:
            print(f"[-] Cannot read stats: {e}")
            if verbose:
                traceback.print_exc()
            sys.exit(1)
        print(json.dumps(stats, indent=2, sort_keys=True))
        return

    if args.command == "dash":
        from fanout.presentation.tui.dashboard import Dashboard

        app = Dashboard(
            RelayClient(args.url or config.client.url),
            refresh_interval=args.interval or config.client.refresh_interval,
        )
        await app.run_async()
        return

    parser.print_help()


def main():
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        print("\n[*] Relay stopped.")


if __name__ == "__main__":
    main()
