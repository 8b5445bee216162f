from __future__ import annotations

import argparse
import json
import logging
from typing import Optional, Sequence

from routecalc.cli.run_emu import load_effective_config, run_emu
from routecalc.cli.validate import validate_config
from routecalc.eval.summarize import summarize_runs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="routecalc", description="Distance-vector and link-state routing simulator")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity.",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Run a routing experiment")
    p_run.add_argument("--config", required=True)

    p_validate = sub.add_parser("validate", help="Validate a config file")
    p_validate.add_argument("--config", required=True)

    p_summary = sub.add_parser("summarize", help="Summarize run results into CSV")
    p_summary.add_argument("--runs", required=True, help="Directory containing run folders")
    p_summary.add_argument("--out", required=True, help="Output CSV path")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "run":
        result = run_emu(args.config)
        print(json.dumps(result, indent=2, ensure_ascii=False, sort_keys=True))
        return 0 if result["converged"] else 1

    if args.cmd == "validate":
        errors = validate_config(load_effective_config(args.config))
        if errors:
            print(json.dumps({"ok": False, "errors": errors}, ensure_ascii=False, indent=2))
            return 1
        print(json.dumps({"ok": True}, ensure_ascii=False, indent=2))
        return 0

    if args.cmd == "summarize":
        rows = summarize_runs(args.runs, args.out)
        print(json.dumps({"runs": rows, "out": args.out}, ensure_ascii=False, indent=2))
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main())
