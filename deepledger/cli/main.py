# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for DeepLedger.

Every operation is a subcommand of `deepledger`. Global options (--config,
--log-level, --dry-run, --seed) come from a parent parser shared by all
subcommands.

Usage:
    deepledger build --corpus glove.50d.txt
    deepledger lookup --config configs/ledger.yaml --token Paris --token 1999
    deepledger activations --kind sigmoid --fan-in 300 --fan-out 100 --input 0,1,-1
    deepledger info
"""

import argparse
import sys

from deepledger.cli.commands import (
    handle_activations,
    handle_build,
    handle_info,
    handle_lookup,
)
from deepledger.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    """Parent parser with the options every subcommand inherits."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level. Overrides global.log_level from --config (default: INFO).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Report what would happen without building anything.",
    )
    parent.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Override the random seed (takes precedence over config).",
    )
    return parent


def _add_corpus_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--corpus",
        type=str,
        default=None,
        help="Raw corpus file; overrides ledger.corpus_path from the config.",
    )


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    """Register subcommands and their specific options."""
    build = subparsers.add_parser(
        "build", parents=[parent], help="Build a ledger from its corpus or snapshot."
    )
    _add_corpus_argument(build)
    build.add_argument(
        "--export",
        type=str,
        default=None,
        help="Also write a plain-text export of the ledger to this path.",
    )
    build.add_argument(
        "--no-snapshot",
        action="store_true",
        default=False,
        dest="no_snapshot",
        help="Ignore any existing snapshot and do not write one.",
    )
    build.set_defaults(func=handle_build)

    lookup = subparsers.add_parser(
        "lookup", parents=[parent], help="Resolve tokens to ledger ids and vectors."
    )
    _add_corpus_argument(lookup)
    lookup.add_argument(
        "--token",
        action="append",
        default=[],
        dest="tokens",
        help="Token to resolve. Repeat for several tokens.",
    )
    lookup.set_defaults(func=handle_lookup)

    activations = subparsers.add_parser(
        "activations", parents=[parent], help="Show activation init ranges and values."
    )
    activations.add_argument("--kind", type=str, default=None, help="Activation name.")
    activations.add_argument("--fan-in", type=int, default=None, dest="fan_in")
    activations.add_argument("--fan-out", type=int, default=None, dest="fan_out")
    activations.add_argument(
        "--input",
        type=str,
        default=None,
        help="Comma-separated vector to run through forward() and derivative().",
    )
    activations.set_defaults(func=handle_activations)

    info = subparsers.add_parser(
        "info", parents=[parent], help="Display environment and registry info."
    )
    info.set_defaults(func=handle_info)


def main() -> None:
    """
    Console-script entrypoint.

    Parses the command line, dispatches to the subcommand handler and exits
    with its return code. No subcommand prints help and exits USER_ERROR.
    """
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="deepledger",
        description="DeepLedger: activation functions and cached word-vector ledgers.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)

    args = root_parser.parse_args()

    if getattr(args, "func", None) is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
