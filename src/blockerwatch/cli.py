"""Command-line interface for blockerwatch.

Provides the main entry point for serving the local endpoint, watching
window activity, and running one-off detections or diagnostics.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="blockerwatch",
        description="Local detection of developer blockers from screen activity",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/blockerwatch.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Start the local HTTP endpoint")
    serve_parser.add_argument(
        "--no-watch", action="store_true",
        help="Do not monitor window activity; only manual /detect triggers",
    )

    subparsers.add_parser("watch", help="Monitor window activity and report blockers")

    detect_parser = subparsers.add_parser("detect", help="Run a single manual detection")
    detect_parser.add_argument(
        "--window", type=str, default="",
        help="Focused window title to attribute the detection to",
    )
    detect_parser.add_argument(
        "--duration-ms", type=int, default=0,
        help="Time already spent on the window, in milliseconds",
    )

    subparsers.add_parser("signatures", help="List the blocker signature catalog")
    subparsers.add_parser("health", help="Initialize providers and report their state")

    return parser.parse_args(argv)


def _print_blocker(blocker) -> None:
    print(
        f"[{blocker.timestamp.strftime('%H:%M:%S')}] {blocker.severity.value.upper()} "
        f"{blocker.description} ({blocker.category.value}, {blocker.confidence:.2f})"
    )
    if blocker.suggested_action:
        print(f"  Suggested: {blocker.suggested_action}")


def _build_watch_loop(settings, detector):
    from blockerwatch.activity.loop import WatchLoop
    from blockerwatch.activity.probe import default_probe
    from blockerwatch.activity.tracker import ActivityTracker

    probe = default_probe()
    if probe is None:
        logger.warning("No window probe for this platform; activity monitoring disabled")
        return None
    mon = settings.monitor
    return WatchLoop(
        detector=detector,
        probe=probe,
        tracker=ActivityTracker(idle_threshold=mon.idle_threshold),
        poll_interval=mon.poll_interval,
        idle_check_interval=mon.idle_check_interval,
        eviction_interval=mon.eviction_interval_hours * 3600.0,
        retention_days=settings.privacy.local_data_retention_days,
    )


async def _watch(settings) -> None:
    """Run the activity loop in the foreground, printing blockers."""
    from blockerwatch.bootstrap import build_detector
    from blockerwatch.domain.models import BlockerEventKind

    detector = build_detector(settings)
    loop = _build_watch_loop(settings, detector)
    if loop is None:
        return

    def on_event(event) -> None:
        if event.kind is BlockerEventKind.CREATED:
            _print_blocker(event.blocker)

    detector.bus.subscribe(on_event)
    report = await detector.initialize()
    print(f"Providers: {report.state.value}")
    try:
        await loop.run()
    finally:
        await detector.close()


async def _detect(settings, args) -> None:
    """Run one manual detection and print the outcome."""
    from blockerwatch.bootstrap import build_detector
    from blockerwatch.domain.models import DetectionContext, TriggerKind

    detector = build_detector(settings)
    await detector.initialize()
    try:
        blocker = await detector.detect(
            DetectionContext(
                window_name=args.window,
                activity_duration_ms=max(0, args.duration_ms),
                trigger=TriggerKind.MANUAL,
            )
        )
    finally:
        await detector.close()

    if blocker is None:
        print("No blocker detected")
    else:
        _print_blocker(blocker)
        for signal in blocker.signals:
            print(f"  - {signal}")


def _list_signatures(settings) -> None:
    from blockerwatch.bootstrap import build_matcher

    for sig in build_matcher(settings).signatures():
        print(
            f"{sig.id:<24} {sig.category.value:<12} {sig.confidence:.2f} "
            f"{sig.min_duration_ms:>6}ms  {', '.join(sig.signals)}"
        )


async def _health(settings) -> None:
    """Initialize providers and print per-provider readiness."""
    from blockerwatch.bootstrap import build_detector

    detector = build_detector(settings)
    report = await detector.initialize()
    try:
        print(f"State: {report.state.value}")
        for name, health in report.providers.items():
            line = f"  {name:<7} {health.readiness.value}"
            if health.last_error:
                line += f"  ({health.last_error})"
            print(line)

        llm = detector.orchestrator.llm
        list_models = getattr(llm, "list_models", None)
        if list_models is not None:
            models = await list_models()
            print(f"  Ollama models: {', '.join(models) or 'none'}")
    finally:
        await detector.close()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the blockerwatch CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from blockerwatch.config.settings import load_settings
    from blockerwatch.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "serve":
        logger.info("Starting endpoint server")
        import uvicorn
        from blockerwatch.bootstrap import build_detector
        from blockerwatch.endpoint.server import create_app

        detector = build_detector(settings)
        watch_loop = None if args.no_watch else _build_watch_loop(settings, detector)
        app = create_app(detector, watch_loop=watch_loop)
        uvicorn.run(app, host=settings.endpoint.host, port=settings.endpoint.port)

    elif args.command == "watch":
        logger.info("Watching window activity")
        try:
            asyncio.run(_watch(settings))
        except KeyboardInterrupt:
            logger.info("Interrupted")

    elif args.command == "detect":
        asyncio.run(_detect(settings, args))

    elif args.command == "signatures":
        _list_signatures(settings)

    elif args.command == "health":
        asyncio.run(_health(settings))


if __name__ == "__main__":
    main()
