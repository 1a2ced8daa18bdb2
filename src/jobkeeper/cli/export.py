from __future__ import annotations

import argparse
import json
import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from jobkeeper.errors import (
    IntegrityError,
    InvalidArgumentError,
    JobCancelledError,
    JobFailedError,
    RemoteServiceError,
)
from jobkeeper.export import ExportOrchestrator
from jobkeeper.models import JobHandle, TableReference
from jobkeeper.remote import HttpRemoteJobService, InMemoryRemoteJobService, RemoteJobService
from jobkeeper.runtime import JsonlAuditLogger
from jobkeeper.settings import CoordinatorConfig, PollPolicy
from jobkeeper.tables import TableInspector

EXIT_OK = 0
EXIT_JOB_FAILED = 1
EXIT_REMOTE_ERROR = 2
EXIT_CANCELLED = 130


def _parse_headers(raw_headers: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in raw_headers:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"header must look like 'Name: value', got '{raw}'")
        headers[name.strip()] = value.strip()
    return headers


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export a table to object storage through a remote extract job."
    )
    parser.add_argument("--scope", required=True, help="Project/scope that owns the export job.")
    parser.add_argument(
        "--table",
        required=True,
        help="Source table as project:dataset.table.",
    )
    parser.add_argument(
        "--destination",
        action="append",
        required=True,
        help="Destination URI (repeatable, order is preserved).",
    )
    parser.add_argument(
        "--await",
        dest="await_completion",
        action="store_true",
        help="Block until the job reaches a terminal status.",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Remote job service base URL (default: JOBKEEPER_REMOTE_BASE_URL).",
    )
    parser.add_argument(
        "--header",
        action="append",
        default=[],
        help="Extra request header as 'Name: value' (repeatable).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        action="append",
        default=None,
        help="Poll interval seconds; repeat to build a backoff schedule.",
    )
    parser.add_argument(
        "--check-source",
        action="store_true",
        help="Fail before submitting when the source table does not exist.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run against an in-memory service instead of the remote one.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def _build_service(args: argparse.Namespace, config: CoordinatorConfig) -> RemoteJobService:
    base_url = args.base_url or config.remote_base_url
    if args.dry_run or config.dry_run:
        return InMemoryRemoteJobService()
    if not base_url:
        raise ValueError("remote base URL is required (use --base-url or JOBKEEPER_REMOTE_BASE_URL)")
    return HttpRemoteJobService(
        base_url,
        headers=_parse_headers(args.header),
        request_timeout_seconds=config.request_timeout_seconds,
    )


def _print_handle(handle: JobHandle) -> None:
    payload = {
        "scope": handle.identity.scope,
        "job_id": handle.identity.job_id,
        "status": handle.status.value,
    }
    if handle.error_result:
        payload["error"] = handle.error_result.model_dump()
    print(json.dumps(payload, ensure_ascii=True, indent=2))


def run(argv: list[str] | None = None, environ: dict[str, str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = CoordinatorConfig.from_env(environ if environ is not None else os.environ)
    if args.poll_interval:
        config = config.model_copy(
            update={
                "poll": PollPolicy(
                    interval_schedule_seconds=args.poll_interval,
                    max_transient_retries=config.poll.max_transient_retries,
                )
            }
        )

    try:
        source = TableReference.parse(args.table)
        service = _build_service(args, config)
    except ValueError as exc:
        print(f"Invalid arguments: {exc}")
        return EXIT_REMOTE_ERROR

    if args.check_source:
        try:
            exists = TableInspector(service).table_exists(source)
        except RemoteServiceError as exc:
            print(f"Source table lookup failed: {exc}")
            return EXIT_REMOTE_ERROR
        if not exists:
            print(f"Source table does not exist: {source}")
            return EXIT_REMOTE_ERROR

    audit_logger = JsonlAuditLogger(config.audit_log_path) if config.audit_log_path else None
    orchestrator = ExportOrchestrator(service, config, audit_logger=audit_logger)
    cancel_event = threading.Event()

    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="jobkeeper-export") as executor:
        future = executor.submit(
            orchestrator.export_to_storage,
            args.scope,
            source,
            args.destination,
            args.await_completion,
            cancel_event=cancel_event,
        )
        try:
            handle = _wait_for(future, cancel_event)
        except JobCancelledError as exc:
            print(f"Cancelled: {exc}")
            return EXIT_CANCELLED
        except JobFailedError as exc:
            print(f"Export job failed: {exc}")
            _print_handle(exc.handle)
            return EXIT_JOB_FAILED
        except (InvalidArgumentError, IntegrityError, RemoteServiceError) as exc:
            print(f"Export failed: {exc}")
            return EXIT_REMOTE_ERROR

    _print_handle(handle)
    return EXIT_OK


def _wait_for(future: Future[JobHandle], cancel_event: threading.Event) -> JobHandle:
    while True:
        try:
            return future.result(timeout=0.5)
        except TimeoutError:
            continue
        except KeyboardInterrupt:
            cancel_event.set()
            return future.result()


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
