import argparse
import asyncio
import logging
import sys

from pydantic import ValidationError

from core.config import settings
from core.models import ScanRequest, ScanResult
from pipeline import exports
from pipeline.orchestrator import Orchestrator
from policy.policy_engine import ScanPolicy

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _policy(args) -> ScanPolicy:
    return ScanPolicy(
        concurrency=args.concurrency,
        connect_timeout_s=args.connect_timeout,
        read_timeout_s=args.read_timeout,
        deadline_s=args.deadline,
        banner_bytes=args.banner_bytes,
    )


def cmd_scan(args) -> int:
    try:
        request = ScanRequest(target=args.target, start=args.start, end=args.end)
        policy = _policy(args)
    except (ValidationError, ValueError) as exc:
        print(f"invalid scan request: {exc}", file=sys.stderr)
        return 2

    orch = Orchestrator(policy=policy, geoip_enabled=False if args.no_geoip else None)
    result = asyncio.run(orch.scan(request))
    if args.sort:
        result = ScanResult(target=result.target, geoip=result.geoip, ports=tuple(result.sorted_ports()))
    sys.stdout.write(exports.render(result, args.format))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Concurrent TCP port scanner with banner capture")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=settings.log_level,
        help="logging level (default from LOG_LEVEL)",
    )
    sub = parser.add_subparsers()

    p_scan = sub.add_parser("scan", help="scan an inclusive port range on one target")
    p_scan.add_argument("target")
    p_scan.add_argument("--start", type=int, default=1)
    p_scan.add_argument("--end", type=int, default=1024)
    p_scan.add_argument("--concurrency", type=int, default=settings.scan_concurrency)
    p_scan.add_argument("--connect-timeout", type=float, default=settings.connect_timeout_s, help="seconds")
    p_scan.add_argument("--read-timeout", type=float, default=settings.read_timeout_s, help="seconds")
    p_scan.add_argument("--deadline", type=float, default=settings.scan_deadline_s, help="overall scan bound, seconds")
    p_scan.add_argument("--banner-bytes", type=int, default=settings.banner_bytes)
    p_scan.add_argument("--no-geoip", action="store_true", default=False, help="skip geoip enrichment")
    p_scan.add_argument("--format", choices=exports.FORMATS, default="json")
    p_scan.add_argument("--sort", action="store_true", default=False, help="order ports by number instead of discovery")
    p_scan.set_defaults(func=cmd_scan)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, stream=sys.stderr)
    if hasattr(args, "func"):
        return args.func(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
