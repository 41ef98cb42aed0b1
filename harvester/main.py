"""
Main entry point for the episode harvester.

Usage:
    harvester serve                                  # Dashboard API (workers started over HTTP)
    harvester auto --workers 3                       # Automatic workers pulling jobs from the backend
    harvester manual --link URL --mal-id 21          # Harvest one anime link
"""

import argparse
import signal
import sys
import time
from pathlib import Path
from typing import Optional

# Load environment variables from .env file
from dotenv import load_dotenv
env_path = Path.cwd() / '.env'
if env_path.exists():
    load_dotenv(env_path)

from harvester.errors import MalformedInput
from harvester.settings import Settings
from harvester.supervisor import WorkerSupervisor


# Global supervisor for signal handling
_supervisor: Optional[WorkerSupervisor] = None
_stop_requested = False


def signal_handler(signum, frame):
    """Handle SIGINT/SIGTERM for graceful shutdown."""
    global _stop_requested
    print("\n\n" + "=" * 60)
    print("STOP SIGNAL RECEIVED - SHUTTING DOWN GRACEFULLY")
    print("=" * 60)
    if _supervisor is None:
        sys.exit(0)
    _stop_requested = True


def _install_signal_handlers():
    signal.signal(signal.SIGINT, signal_handler)
    # SIGTERM is not reliably available on Windows
    if hasattr(signal, 'SIGTERM') and sys.platform != 'win32':
        signal.signal(signal.SIGTERM, signal_handler)


def _build_supervisor(args, settings: Settings) -> WorkerSupervisor:
    config = settings.harvester_config()
    if args.visible:
        config.headless = False
    api_url = args.api_url or settings.api_url
    if not api_url:
        print("Job backend URL is not set (use --api-url or JOB_API_URL). Exiting.")
        sys.exit(1)
    return WorkerSupervisor(config, api_url=api_url).start()


def _wait_for_workers(supervisor: WorkerSupervisor, until_idle: bool):
    while not _stop_requested:
        if until_idle and not supervisor.active_workers:
            return
        time.sleep(1)


def run_serve(args, settings: Settings) -> int:
    """Run the dashboard API with uvicorn."""
    import uvicorn
    from harvester.server import create_app

    app = create_app(settings=settings)
    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level="info"
    )
    return 0


def run_auto(args, settings: Settings) -> int:
    """Run automatic workers until interrupted."""
    global _supervisor
    _supervisor = _build_supervisor(args, settings)
    _install_signal_handlers()

    worker_ids = _supervisor.dispatch_automatic(args.workers)
    print(f"Started {len(worker_ids)} automatic workers: {', '.join(worker_ids)}")
    print("Press Ctrl+C to stop\n")

    _wait_for_workers(_supervisor, until_idle=False)
    _supervisor.shutdown()
    return 0


def run_manual(args, settings: Settings) -> int:
    """Harvest a single anime link and exit."""
    global _supervisor
    _supervisor = _build_supervisor(args, settings)
    _install_signal_handlers()

    try:
        worker_id = _supervisor.dispatch_manual(args.link, args.mal_id)
    except MalformedInput as e:
        print(f"Error: {e}")
        return 1

    print(f"Started manual worker {worker_id}")
    _wait_for_workers(_supervisor, until_idle=True)
    _supervisor.shutdown()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Anime episode harvester')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Run the dashboard API server')
    serve.add_argument('--host', type=str, default=None)
    serve.add_argument('--port', type=int, default=None)

    for name, help_text in (('auto', 'Run automatic workers'), ('manual', 'Harvest one anime link')):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('--api-url', type=str, default=None,
                         help='Job backend base URL (default: JOB_API_URL)')
        sub.add_argument('--visible', action='store_true',
                         help='Show browser window (default: headless)')

    subparsers.choices['auto'].add_argument('--workers', type=int, default=1,
                                            help='Number of workers (default: 1)')
    subparsers.choices['manual'].add_argument('--link', type=str, required=True,
                                              help='Anime or episode URL')
    subparsers.choices['manual'].add_argument('--mal-id', type=str, required=True,
                                              help='MAL ID of the anime')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()

    if args.command == 'serve':
        return run_serve(args, settings)
    if args.command == 'auto':
        return run_auto(args, settings)
    return run_manual(args, settings)


if __name__ == '__main__':
    sys.exit(main())
