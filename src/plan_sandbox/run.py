# run.py
# Entry point. Argument parsing and wiring only — no logic lives here.
#
#   plan-sandbox run    plans/PLAN-0001.json
#   plan-sandbox hash   plans/PLAN-0001.json
#   plan-sandbox attest plans/PLAN-0001.json
#
# Exit code 0 on success, 1 on any fatal condition (one line on stderr),
# 2 on usage errors.

import argparse
import sys
from pathlib import Path

from plan_sandbox import display
from plan_sandbox.attestation import attest_plan_file, compute_expected_hash
from plan_sandbox.config import RunnerConfig
from plan_sandbox.loader import read_plan_document
from plan_sandbox.pipeline import FATAL_ERRORS, PlanRunner


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plan-sandbox",
        description="Verify attested plans and execute them in a local sandbox.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Verify a plan's attestation and execute its steps.")
    run_p.add_argument("plan", help="Path to the plan JSON file.")
    run_p.add_argument("--home", type=Path, help="Workspace root (default: $PLAN_SANDBOX_HOME or cwd).")
    run_p.add_argument(
        "--strict-integrity",
        action="store_true",
        default=None,
        help="Fail the run when required artifacts are missing.",
    )
    run_p.add_argument("--quiet", action="store_true", help="Only print the completion line.")

    hash_p = sub.add_parser("hash", help="Print the canonical plan digest.")
    hash_p.add_argument("plan", help="Path to the plan JSON file.")

    attest_p = sub.add_parser("attest", help="Write the canonical digest into attestation.plan_hash.")
    attest_p.add_argument("plan", help="Path to the plan JSON file.")

    return parser


def _cmd_run(args: argparse.Namespace) -> None:
    config = RunnerConfig.from_env()
    if args.home is not None:
        config = config.model_copy(update={"home": args.home})
    if args.strict_integrity is not None:
        config = config.model_copy(update={"strict_integrity": args.strict_integrity})
    display.set_quiet(args.quiet)

    runner = PlanRunner.from_config(config)
    result = runner.run(args.plan)

    display.completed(result, str(config.audit_log_path))
    if args.quiet:
        print(f"Completed: {result.plan_id}")


def _cmd_hash(args: argparse.Namespace) -> None:
    print(compute_expected_hash(read_plan_document(args.plan)))


def _cmd_attest(args: argparse.Namespace) -> None:
    print(f"updated plan_hash: {attest_plan_file(args.plan)}")


COMMANDS = {
    "run":    _cmd_run,
    "hash":   _cmd_hash,
    "attest": _cmd_attest,
}


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        COMMANDS[args.command](args)
    except FATAL_ERRORS as exc:
        display.halt(str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
