import argparse
import json
import re
import sys
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from auctionpay.core.config import settings
from auctionpay.core.logging_config import configure_logging
from auctionpay.schemas.calculation import CalculationRequest, CalculationResultRead, VerificationRead
from auctionpay.services import calculations as calculations_service
from auctionpay.services import checksum as checksum_service
from auctionpay.services import verification as verification_service
from auctionpay.services.audit import MemoryAuditSink
from auctionpay.services.errors import CalculationError
from auctionpay.services.money import MoneyConfig


SAFE_JSON_FILENAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*\.json$")


def _normalize_json_filename(raw_path: str) -> str:
    raw = (raw_path or "").strip()
    if not raw:
        raise SystemExit("Path is required")
    if Path(raw).name != raw:
        raise SystemExit("Only JSON file names are allowed (no directories)")
    if not SAFE_JSON_FILENAME_RE.fullmatch(raw):
        raise SystemExit("Invalid JSON file name")
    return raw


def _resolve_json_path(raw_path: str) -> Path:
    raw = _normalize_json_filename(raw_path)
    resolved = (Path.cwd().resolve() / raw).resolve(strict=False)
    if not resolved.is_file():
        raise SystemExit(f"Input file not found: {resolved}")
    return resolved


def _load_json(raw_path: str) -> Any:
    path = _resolve_json_path(raw_path)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid JSON in {path.name}: {exc}") from exc


def calculate(raw_path: str, *, dry_run: bool = False) -> int:
    try:
        request = CalculationRequest.model_validate(_load_json(raw_path))
    except ValidationError as exc:
        raise SystemExit(f"Invalid calculation input: {exc}") from exc
    inputs = request.to_inputs()
    errors = calculations_service.validate_calculation_inputs(inputs)
    if errors:
        for message in errors:
            print(message, file=sys.stderr)
        return 2
    try:
        result = calculations_service.compute(
            inputs,
            config=MoneyConfig.from_settings(),
            audit_sink=MemoryAuditSink() if dry_run else None,
        )
    except CalculationError as exc:
        print(f"{exc.code}: {exc.message}", file=sys.stderr)
        return 1
    print(CalculationResultRead.from_result(result).model_dump_json(indent=2))
    return 0


def verify(raw_path: str) -> int:
    try:
        payload = CalculationResultRead.model_validate(_load_json(raw_path))
    except ValidationError as exc:
        raise SystemExit(f"Invalid calculation result: {exc}") from exc
    result = payload.to_result()
    outcome = verification_service.verify(result, tolerance=settings.verification_tolerance)
    report = VerificationRead.from_outcome(outcome, checksum_valid=checksum_service.checksum_matches(result))
    print(report.model_dump_json(indent=2))
    return 0 if report.accurate and report.checksum_valid else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Invoice totals utilities")
    subparsers = parser.add_subparsers(dest="command")

    calc_cmd = subparsers.add_parser("calculate", help="Compute totals for a JSON calculation request")
    calc_cmd.add_argument("input", help="Input JSON file name in the current directory")
    calc_cmd.add_argument("--dry-run", action="store_true", help="Do not write the audit event to the audit log")

    verify_cmd = subparsers.add_parser("verify", help="Re-verify a serialized calculation result")
    verify_cmd.add_argument("input", help="Result JSON file name in the current directory")
    return parser


def _run_cli_command(args: argparse.Namespace) -> int | None:
    if args.command == "calculate":
        return calculate(args.input, dry_run=bool(args.dry_run))
    if args.command == "verify":
        return verify(args.input)
    return None


def main(argv: Sequence[str] | None = None) -> int:
    configure_logging(settings.log_json)
    parser = _build_parser()
    args = parser.parse_args(argv)
    exit_code = _run_cli_command(args)
    if exit_code is None:
        parser.print_help()
        return 2
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
