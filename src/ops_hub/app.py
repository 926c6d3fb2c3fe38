"""Process entry point: wires the automation core and runs the scheduler."""

import argparse
import asyncio
import signal
import sys
from contextlib import suppress
from dataclasses import dataclass

import httpx
import structlog

from ops_hub.automation import Automations, register_default_jobs
from ops_hub.config import configure_logging, get_settings
from ops_hub.config.settings import Settings
from ops_hub.events import EventRecorder
from ops_hub.integrations import SyncDispatcher
from ops_hub.notifications import (
    EmailTransport,
    Notifier,
    RecordingTransport,
    ResendTransport,
)
from ops_hub.scheduler import Scheduler
from ops_hub.storage import MemoryStorage, Storage
from ops_hub.vault import CredentialVault, InsecureKeyError

logger = structlog.get_logger(__name__)


@dataclass
class Runtime:
    """Everything one process needs, created once at startup."""

    settings: Settings
    storage: Storage
    vault: CredentialVault
    events: EventRecorder
    transport: EmailTransport
    notifier: Notifier
    dispatcher: SyncDispatcher
    automations: Automations
    scheduler: Scheduler
    http_client: httpx.AsyncClient
    owns_client: bool = False

    async def close(self) -> None:
        """Stop all jobs, then release the HTTP client."""
        await self.scheduler.stop_all()
        if self.owns_client:
            await self.http_client.aclose()


def build_runtime(
    settings: Settings,
    storage: Storage,
    transport: EmailTransport | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Runtime:
    """Wire the automation core.

    Raises:
        InsecureKeyError: Production without a real ENCRYPTION_KEY.
    """
    vault = CredentialVault.from_settings(settings)
    events = EventRecorder()

    owns_client = http_client is None
    if http_client is None:
        http_client = httpx.AsyncClient(timeout=httpx.Timeout(settings.http_timeout))

    if transport is None:
        api_key = settings.resend_api_key.get_secret_value() if settings.resend_api_key else None
        transport = ResendTransport(api_key, base_url=settings.resend_api_url, client=http_client)

    notifier = Notifier(storage, transport, settings, events=events)
    dispatcher = SyncDispatcher(storage, vault, http_client)
    automations = Automations(storage, notifier, dispatcher, settings, events=events)
    scheduler = Scheduler(timezone=settings.scheduler_timezone, events=events)

    return Runtime(
        settings=settings,
        storage=storage,
        vault=vault,
        events=events,
        transport=transport,
        notifier=notifier,
        dispatcher=dispatcher,
        automations=automations,
        scheduler=scheduler,
        http_client=http_client,
        owns_client=owns_client,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ops-hub",
        description="Ops Hub scheduled automations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --seed data.json                          # Run the scheduler until interrupted
  %(prog)s --seed data.json --dry-run                # Record emails instead of sending them
  %(prog)s --seed data.json --run-once check-low-cash
  %(prog)s --list-jobs
        """,
    )
    parser.add_argument("--seed", metavar="FILE", help="JSON file to load into memory storage")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Record outgoing emails in memory instead of sending them",
    )
    parser.add_argument("--run-once", metavar="JOB", help="Run one job immediately and exit")
    parser.add_argument("--list-jobs", action="store_true", help="List scheduled jobs and exit")
    return parser


async def _wait_for_shutdown() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows event loops).
        with suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)
    await stop.wait()


async def main(argv: list[str] | None = None) -> int:
    """Run the automation core. Returns the process exit code."""
    args = _build_parser().parse_args(argv)

    configure_logging()
    settings = get_settings()

    storage: Storage = MemoryStorage.from_seed(args.seed) if args.seed else MemoryStorage()
    transport = RecordingTransport() if args.dry_run else None

    try:
        runtime = build_runtime(settings, storage, transport=transport)
    except InsecureKeyError as e:
        logger.critical("insecure_encryption_key", error=str(e))
        return 1

    try:
        job_ids = register_default_jobs(runtime.scheduler, runtime.automations, settings)

        if args.list_jobs:
            for job in runtime.scheduler.get_status()["jobs"]:
                print(f"{job['id']:<28} {job['frequency']:<22} {job['name']}")
            return 0

        if args.run_once:
            if args.run_once not in job_ids:
                logger.error("unknown_job", job=args.run_once, available=job_ids)
                return 2
            await runtime.scheduler.run_now(args.run_once)
            job = runtime.scheduler.get_job(args.run_once)
            return 1 if job is not None and job.failure_count else 0

        logger.info("ops_hub_started", jobs=job_ids, environment=settings.environment)
        await _wait_for_shutdown()
        logger.info("ops_hub_stopping")
        return 0
    finally:
        await runtime.close()
        if isinstance(runtime.transport, RecordingTransport):
            logger.info("dry_run_summary", emails_recorded=len(runtime.transport.sent))


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
