"""Command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import base64
import mimetypes
import sys
from pathlib import Path
from typing import Sequence

from facility_audit.app import AppContext, get_app_context
from facility_audit.domain.models import ResponseStatus
from facility_audit.export import default_export_name, write_csv
from facility_audit.logging_utils import configure_logging
from facility_audit.reporting import generate_report, summarize_facility
from facility_audit.scoring import classify
from facility_audit.session import UnknownQuestionError
from facility_audit.storage.apps_script import APPS_SCRIPT_SOURCE
from facility_audit.storage.facade import RecordNotFoundError


def _parse_pairs(values: Sequence[str] | None, label: str) -> list[tuple[str, str]]:
    pairs = []
    for item in values or ():
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"{label} must look like QUESTION_ID=VALUE: {item!r}")
        pairs.append((key.strip(), value.strip()))
    return pairs


async def _cmd_records(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.refresh:
        await ctx.store.load_all()
    for record in ctx.store.records(args.facility):
        created = record.created_at().strftime("%Y-%m-%d %H:%M")
        print(
            f"{record.id}\t{created}\t{record.facility_name}\t{record.location}\t"
            f"{record.auditor_name}\t{record.overall_score}%\t"
            f"{classify(record.overall_score).value}"
        )
    return 0


async def _cmd_summary(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.refresh:
        await ctx.store.load_all()
    summary = summarize_facility(ctx.store, args.facility or ctx.facilities[0])
    print(f"Facility: {summary.facility_name}")
    print(f"Rounds: {summary.completed_rounds}")
    print(f"Compliance: {summary.average_score}% ({summary.rating.value})")
    print("Trend: " + ", ".join(str(point.score) for point in summary.trend))
    for record in summary.recent:
        print(f"  {record.location} - {record.auditor_name}: {record.overall_score}%")
    return 0


async def _cmd_export(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.refresh:
        await ctx.store.load_all()
    records = ctx.store.records(args.facility)
    target = write_csv(records, args.output or default_export_name())
    print(f"Exported {len(records)} records to {target}")
    return 0


async def _cmd_endpoint(ctx: AppContext, args: argparse.Namespace) -> int:
    if args.clear:
        ctx.store.set_endpoint(None)
    elif args.url:
        ctx.store.set_endpoint(args.url)
    print(ctx.store.endpoint or "(no remote endpoint; local cache only)")
    return 0


async def _cmd_report(ctx: AppContext, args: argparse.Namespace) -> int:
    record = await generate_report(ctx.store, ctx.ai, ctx.catalog, args.record_id)
    print(record.ai_analysis)
    return 0


async def _cmd_script(ctx: AppContext, args: argparse.Namespace) -> int:
    print(APPS_SCRIPT_SOURCE)
    return 0


async def _cmd_record(ctx: AppContext, args: argparse.Namespace) -> int:
    session = ctx.new_session(args.facility)
    session.auditor_name = args.auditor
    session.location = args.location
    if not session.begin():
        print("error: auditor and location are required", file=sys.stderr)
        return 2

    for question_id, value in _parse_pairs(args.answer, "--answer"):
        session.update_response(question_id, status=ResponseStatus.parse(value))
    for question_id, value in _parse_pairs(args.comment, "--comment"):
        session.update_response(question_id, comment=value)
    for question_id, value in _parse_pairs(args.image, "--image"):
        image_path = Path(value)
        await session.attach_image(question_id, _encode_image(image_path))

    record = await session.finish()
    print(f"{record.id}\t{record.overall_score}%\t{classify(record.overall_score).value}")
    return 0


def _encode_image(path: Path) -> str:
    mime = mimetypes.guess_type(path.name)[0] or "image/jpeg"
    data = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{data}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="facility-audit",
        description="F880 infection control rounds: records, scores, exports and AI reports.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    sub = parser.add_subparsers(dest="command", required=True)

    records = sub.add_parser("records", help="List completed rounds, newest first")
    records.add_argument("--facility")
    records.add_argument("--refresh", action="store_true", help="Reload from the remote store")
    records.set_defaults(handler=_cmd_records)

    summary = sub.add_parser("summary", help="Facility compliance overview")
    summary.add_argument("--facility")
    summary.add_argument("--refresh", action="store_true")
    summary.set_defaults(handler=_cmd_summary)

    export = sub.add_parser("export", help="Write rounds to CSV")
    export.add_argument("--output")
    export.add_argument("--facility")
    export.add_argument("--refresh", action="store_true")
    export.set_defaults(handler=_cmd_export)

    endpoint = sub.add_parser("endpoint", help="Show or set the remote store URL")
    endpoint.add_argument("url", nargs="?")
    endpoint.add_argument("--clear", action="store_true")
    endpoint.set_defaults(handler=_cmd_endpoint)

    report = sub.add_parser("report", help="Generate the AI summary for a round")
    report.add_argument("record_id")
    report.set_defaults(handler=_cmd_report)

    script = sub.add_parser("script", help="Print the spreadsheet web app source")
    script.set_defaults(handler=_cmd_script)

    record = sub.add_parser("record", help="Record a round non-interactively")
    record.add_argument("--facility")
    record.add_argument("--auditor", required=True)
    record.add_argument("--location", required=True)
    record.add_argument("--answer", action="append", metavar="QID=pass|fail|na")
    record.add_argument("--comment", action="append", metavar="QID=TEXT")
    record.add_argument("--image", action="append", metavar="QID=PATH")
    record.set_defaults(handler=_cmd_record)

    return parser


async def _run(ctx: AppContext, args: argparse.Namespace) -> int:
    try:
        return await args.handler(ctx, args)
    finally:
        # Let background replication finish before the event loop closes.
        await ctx.store.flush()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    try:
        ctx = get_app_context()
        return asyncio.run(_run(ctx, args))
    except (RecordNotFoundError, UnknownQuestionError) as exc:
        print(f"error: not found: {exc}", file=sys.stderr)
        return 1
    except (ValueError, OSError, RuntimeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
