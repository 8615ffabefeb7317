"""CLI entry point for zfs-snapshot-cleaner."""
from __future__ import annotations

import argparse
import sys

from zsc.config import ConfigError, load_defaults, load_exclusions, resolve_config
from zsc.executor import ExecutorError, LocalExecutor

VERSION = "0.7.2"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zsc",
        description="ZFS Snapshot Cleaner: delete old snapshots in bounded batches",
    )
    # Value flags default to None so a --config file can fill them in.
    parser.add_argument("-p", "--pool",
                        help="The pool you want to clean (required)")
    parser.add_argument("-d", "--date",
                        help="Cutoff date, YYYY-mm-dd-HHMM-ss. Default: 30 days ago")
    parser.add_argument("-e", "--exclude-file",
                        help="File listing snapshots to keep, one per line")
    parser.add_argument("-l", "--label",
                        help="Only clean snapshots with this label")
    parser.add_argument("-i", "--per-iteration", metavar="N",
                        help="Number of snapshots to delete per batch (default: 100)")
    parser.add_argument("-n", "--dry-run", action="store_true", default=None,
                        help="Show what would happen without deleting anything")
    parser.add_argument("-f", "--no-confirm", action="store_true", default=None,
                        help="Do not prompt before deleting. Used primarily for cron")
    parser.add_argument("-s", "--show-queued", action="store_true", default=None,
                        help="Show snapshots that will be removed")
    parser.add_argument("-x", "--show-excluded", action="store_true", default=None,
                        help="Show snapshots that will be excluded")
    parser.add_argument("-c", "--show-config", action="store_true",
                        help="Display every resolved configuration option")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Echo every zfs command before running it")
    parser.add_argument("--config", metavar="PATH",
                        help="YAML file with default values for the options above")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def cmd_clean(args, executor=None, confirm=None) -> int:
    from zsc.cleaner import run_clean
    try:
        defaults = load_defaults(args.config) if args.config else {}
        config = resolve_config(
            pool=args.pool,
            date=args.date,
            exclude_file=args.exclude_file,
            label=args.label,
            per_iteration=args.per_iteration,
            dry_run=args.dry_run,
            no_confirm=args.no_confirm,
            show_queued=args.show_queued,
            show_excluded=args.show_excluded,
            show_config=args.show_config,
            verbose=args.verbose,
            defaults=defaults,
        )
        excluded_names = load_exclusions(config)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    if executor is None:
        executor = LocalExecutor(verbose=config.verbose)

    kwargs = {} if confirm is None else {"confirm": confirm}
    try:
        outcome = run_clean(config, executor, excluded_names, **kwargs)
    except ExecutorError as e:
        print(f"Error listing snapshots: {e}", file=sys.stderr)
        return 1
    return outcome.exit_code


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)
    sys.exit(cmd_clean(args))


if __name__ == "__main__":
    main()
