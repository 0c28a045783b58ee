"""
Command-line driver.

``cekit [solve] FILE...`` prints the firing components of the merged
structure, ``cekit go FILE...`` simulates it and ``cekit validate GLOB...``
checks many files at once. Exit status is 0 on success and 1 on a fatal error.
"""

from __future__ import annotations

import argparse
import glob
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .CES.api import CEStructure, validate_files
from .CES.config import RunConfig
from .CES.exceptions import CESError
from .CES.SAT.search import DeadlockReport
from .CES.utils import format_marking, parse_marking
from .version import __version__

logger = logging.getLogger("cekit")

COMMANDS = ("solve", "go", "validate")
_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


# --------------------------------------------------------------------------- #
# Logging
# --------------------------------------------------------------------------- #


def setup_logging(
    verbosity: int = 0, log_file: Optional[Path] = None, file_level: int = 1
) -> None:
    """
    Configure the ``cekit`` logger.

    :param verbosity: 0 warnings, 1 info, 2 or more debug on the console.
    :param log_file: Optional file receiving records as well.
    :param file_level: 1 info, 2 or more debug in the file.
    """
    root = logging.getLogger("cekit")
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    levels = [logging.WARNING, logging.INFO, logging.DEBUG]
    console_level = levels[min(max(verbosity, 0), 2)]

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    root.addHandler(console)
    level = console_level

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        fh_level = logging.DEBUG if file_level > 1 else logging.INFO
        fh.setLevel(fh_level)
        fh.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        root.addHandler(fh)
        level = min(level, fh_level)
    root.setLevel(level)


def _log_file(args: argparse.Namespace) -> Optional[Path]:
    if not args.log:
        return None
    if args.command == "validate":
        stem = "cekit-validation"
    else:
        stem = Path(args.paths[0]).stem
    return Path(args.log_dir or ".") / f"{stem}.log"


# --------------------------------------------------------------------------- #
# Parser
# --------------------------------------------------------------------------- #


def _common() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(add_help=False)
    p.add_argument(
        "-v", "--verbose", action="count", default=0, help="More console output (repeatable)"
    )
    p.add_argument(
        "--log", action="count", default=0, help="Also log to a file; repeat for debug records"
    )
    p.add_argument("--log-dir", type=str, default=None, help="Directory of the log file")
    return p


def _solver_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("paths", nargs="+", help="Structure files (merged into one structure)")
    p.add_argument(
        "--sat-encoding",
        type=str,
        default=None,
        metavar="{port-link,fork-join}",
        help="SAT encoding (aliases PL, FJ); default port-link",
    )
    p.add_argument("--sat-search", choices=["min", "all"], default=None, help="SAT search mode")
    p.add_argument("--timeout", type=float, default=None, help="SAT timeout in seconds")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cekit", description="Analyse and simulate cause-effect structures"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")
    common = _common()

    solve = sub.add_parser("solve", parents=[common], help="Print firing components (default)")
    _solver_options(solve)

    go = sub.add_parser("go", parents=[common], help="Simulate a structure")
    _solver_options(go)
    go.add_argument(
        "--from",
        dest="starts",
        action="append",
        default=None,
        metavar="MARKING",
        help="Start marking, e.g. 'a:6 b:4 p' (repeatable)",
    )
    go.add_argument(
        "--goal",
        dest="goals",
        action="append",
        default=None,
        metavar="THRESHOLD",
        help="Goal threshold (repeatable, any one suffices)",
    )
    go.add_argument("--semantics", choices=["seq", "par", "max"], default=None)
    go.add_argument("--max-steps", type=int, default=None)
    go.add_argument("--num-passes", type=int, default=None)
    go.add_argument("--seed", type=int, default=None)
    go.add_argument("--policy", choices=["priority", "random"], default=None)
    go.add_argument("--workers", type=int, default=None)
    go.add_argument(
        "--exhaustive", action="store_true", help="Explore every branch instead of running passes"
    )

    val = sub.add_parser("validate", parents=[common], help="Validate many structure files")
    val.add_argument("patterns", nargs="+", help="Glob patterns or directories")
    val.add_argument("--abort", action="store_true", help="Stop at the first invalid file")
    val.add_argument(
        "--syntax", action="store_true", help="Only parse; skip weighting and coherence checks"
    )
    val.add_argument("--recursive", action="store_true", help="Let '**' (and directories) recurse")
    return parser


def _normalize_argv(argv: Sequence[str]) -> List[str]:
    """Move the subcommand to the front, defaulting to ``solve``."""
    argv = list(argv)
    for i, tok in enumerate(argv):
        if tok in COMMANDS:
            return [tok] + argv[:i] + argv[i + 1 :]
        if not tok.startswith("-"):
            break
    if not argv or argv[0] in ("-h", "--help", "--version"):
        return argv
    return ["solve"] + argv


def _config(args: argparse.Namespace) -> RunConfig:
    return RunConfig().with_overrides(
        encoding=args.sat_encoding,
        search=args.sat_search,
        timeout=args.timeout,
        semantics=getattr(args, "semantics", None),
        max_steps=getattr(args, "max_steps", None),
        num_passes=getattr(args, "num_passes", None),
        seed=getattr(args, "seed", None),
        policy=getattr(args, "policy", None),
        workers=getattr(args, "workers", None),
        exhaustive=getattr(args, "exhaustive", None) or None,
        verbosity=args.verbose,
    )


def selector_warnings(args: argparse.Namespace, config: RunConfig) -> List[str]:
    """Settings accepted by the parser but without effect in this mode."""
    out: List[str] = []
    if args.command != "go":
        return out
    if config.exhaustive:
        for flag, value in (
            ("--num-passes", args.num_passes),
            ("--seed", args.seed),
            ("--policy", args.policy),
            ("--workers", args.workers),
        ):
            if value is not None:
                out.append(f"{flag} is ignored with --exhaustive")
        return out
    if config.policy == "priority":
        if args.seed is not None:
            out.append("--seed has no effect with the priority policy")
        if config.num_passes > 1:
            out.append("--num-passes > 1 repeats identical passes under the priority policy")
    if args.workers is not None and config.num_passes == 1:
        out.append("--workers has no effect with a single pass")
    return out


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


def _thresholds(texts: Optional[List[str]]) -> Optional[List[Dict[str, int]]]:
    if not texts:
        return None
    return [parse_marking(t) or {} for t in texts]


def cmd_solve(args: argparse.Namespace, config: RunConfig) -> int:
    ces = CEStructure.from_files(args.paths)
    result = ces.solve(config)
    if isinstance(result, DeadlockReport):
        print(result)
        return 0
    print(
        f"{ces.name}: {len(result)} firing components "
        f"({config.encoding}, {config.search})"
    )
    for i, fc in enumerate(result):
        text = fc.describe() if config.verbosity else str(fc)
        print(f"  [{i}] {text}")
    if result.uncovered:
        print(f"  dots outside every component: {' '.join(result.uncovered)}")
    return 0


def cmd_go(args: argparse.Namespace, config: RunConfig) -> int:
    ces = CEStructure.from_files(args.paths)
    starts = _thresholds(args.starts) or ces.starts or [{}]
    goals = _thresholds(args.goals)
    result = ces.solve(config)
    if isinstance(result, DeadlockReport):
        print(result)

    if config.exhaustive:
        for start in starts:
            reach = ces.explore(start, goals, config)
            print(f"from {format_marking(start)}:")
            print(
                f"  {len(reach)} reachable markings, goal "
                f"{'reachable' if reach.goal_reachable else 'not reached'}, "
                f"{len(reach.deadlocks)} dead markings"
                + (" (truncated)" if reach.truncated else "")
            )
            for m in reach.deadlocks:
                print(f"  dead: {m}")
        return 0

    if config.num_passes == 1:
        system = ces.transition_system(config)
        for start in starts:
            halt = ces.go(start, goals, config)
            print(f"from {format_marking(start)}:")
            if halt.trace is not None:
                for line in halt.trace.describe(system):
                    print(f"  {line}")
            print(f"  {halt}")
        return 0

    summary = ces.sample(starts, goals, config)
    print(summary.describe())
    return 0


def _expand(patterns: Sequence[str], recursive: bool) -> List[str]:
    out: List[str] = []
    for pat in patterns:
        if os.path.isdir(pat):
            pat = os.path.join(pat, "**", "*.ces") if recursive else os.path.join(pat, "*.ces")
        matches = sorted(glob.glob(pat, recursive=recursive))
        if not matches:
            logger.warning("No files match %s", pat)
        out.extend(m for m in matches if m not in out)
    return out


def cmd_validate(args: argparse.Namespace, config: RunConfig) -> int:
    paths = _expand(args.patterns, args.recursive)
    diagnostics = validate_files(paths, abort=args.abort, syntax_only=args.syntax)
    for d in diagnostics:
        print(d)
    bad = sum(1 for d in diagnostics if not d.ok)
    print(f"{len(diagnostics)} files checked, {bad} invalid")
    return 0


_HANDLERS = {"solve": cmd_solve, "go": cmd_go, "validate": cmd_validate}


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))
    if args.command is None:
        parser.print_help()
        return 1
    setup_logging(args.verbose, _log_file(args), args.log)

    try:
        if args.command == "validate":
            config = RunConfig(verbosity=args.verbose)
        else:
            config = _config(args)
        for msg in selector_warnings(args, config):
            logger.warning(msg)
        return _HANDLERS[args.command](args, config)
    except (CESError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
