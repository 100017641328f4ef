# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the DeepLedger CLI.

Each handler loads config, bootstraps, does its work and returns an exit
code. Results are reported through the structured logger, never print().
"""

import argparse
import logging
from pathlib import Path
from typing import Callable

from deepledger.cli.exit_codes import (
    CONFIG_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    USER_ERROR,
    VALIDATION_ERROR,
)
from deepledger.config.exceptions import ConfigError
from deepledger.config.loader import load_config
from deepledger.config.schema import DeepLedgerConfig, LedgerConfig
from deepledger.logging.logger import get_logger, set_package_level
from deepledger.runtime.bootstrap import bootstrap, set_deterministic_seed

LedgerAction = Callable[[argparse.Namespace, LedgerConfig, logging.Logger], int]


def _load_and_bootstrap(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, DeepLedgerConfig | None, logging.Logger]:
    """
    Shared setup: load the config (if any) and bootstrap.

    Returns (exit_code, config, logger). A non-SUCCESS exit code means the
    caller should stop and return it.
    """
    logger = get_logger(f"deepledger.cli.{command_name}", log_level=args.log_level)

    config = None
    if args.config is not None:
        try:
            config = load_config(Path(args.config))
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger

    if config is not None:
        bootstrap(config.global_config)
        if args.log_level is not None:
            # An explicit --log-level wins over the config.
            set_package_level(args.log_level)
    else:
        logger.debug(
            "No config provided, running with defaults",
            extra={"command": command_name},
        )

    if args.seed is not None:
        set_deterministic_seed(args.seed)

    return SUCCESS, config, logger


def _resolve_ledger_config(
    args: argparse.Namespace,
    config: DeepLedgerConfig | None,
) -> LedgerConfig | None:
    """Ledger section from the config, with --corpus taking precedence."""
    corpus = getattr(args, "corpus", None)
    if config is not None and config.ledger is not None:
        if corpus is None:
            return config.ledger
        return config.ledger.model_copy(update={"corpus_path": corpus})
    if corpus is not None:
        return LedgerConfig(config_version="cli", corpus_path=corpus)
    return None


def _run_ledger_command(args: argparse.Namespace, command_name: str, action: LedgerAction) -> int:
    """Common error mapping for commands that need a ledger."""
    from deepledger.ledger.exceptions import LedgerError, NotFoundError, ParseError

    exit_code, config, logger = _load_and_bootstrap(args, command_name)
    if exit_code != SUCCESS:
        return exit_code

    ledger_config = _resolve_ledger_config(args, config)
    if ledger_config is None:
        logger.error(
            "No corpus given; pass --corpus or a config with a ledger section",
            extra={"command": command_name},
        )
        return USER_ERROR

    try:
        return action(args, ledger_config, logger)
    except NotFoundError as err:
        logger.error("Corpus not found", extra={"command": command_name, "error": str(err)})
        return USER_ERROR
    except ParseError as err:
        logger.error(
            "Corpus parse error",
            extra={"command": command_name, "line": err.line_number, "error": str(err)},
        )
        return VALIDATION_ERROR
    except (LedgerError, KeyError, ImportError, ValueError) as err:
        logger.error(
            "Ledger command failed",
            extra={"command": command_name, "error": str(err)},
            exc_info=True,
        )
        return RUNTIME_ERROR


def _build(args: argparse.Namespace, ledger_config: LedgerConfig, logger: logging.Logger) -> int:
    from deepledger.ledger.builder import read_ledger_from_config, snapshot_path_for

    corpus_path = Path(ledger_config.corpus_path)
    if args.no_snapshot:
        ledger_config = ledger_config.model_copy(update={"use_snapshot": False})

    if args.dry_run:
        snapshot_path = snapshot_path_for(corpus_path, ledger_config.snapshot_suffix)
        logger.info(
            "Dry run, would build ledger",
            extra={
                "corpus": str(corpus_path),
                "snapshot": str(snapshot_path),
                "snapshot_hit": ledger_config.use_snapshot and snapshot_path.is_file(),
            },
        )
        return SUCCESS

    model = read_ledger_from_config(ledger_config)

    export_path = args.export or ledger_config.export_path
    if export_path is not None and not model.save_as_text_file(Path(export_path)):
        return RUNTIME_ERROR

    logger.info(
        "Ledger ready",
        extra={
            "size": model.size,
            "dimension": model.dimension,
            "unknown_id": model.unknown_id,
            "pad_id": model.pad_id,
        },
    )
    return SUCCESS


def _lookup(args: argparse.Namespace, ledger_config: LedgerConfig, logger: logging.Logger) -> int:
    from deepledger.ledger.builder import read_ledger_from_config

    if not args.tokens:
        logger.error("Nothing to look up; pass one or more --token values")
        return USER_ERROR

    model = read_ledger_from_config(ledger_config)
    for token in args.tokens:
        token_id = model.index_of(token)
        logger.info(
            "Token resolved",
            extra={
                "token": token,
                "id": token_id,
                "unknown": token_id == model.unknown_id,
                "vector": model.vector_at(token_id).tolist(),
            },
        )
    return SUCCESS


def handle_build(args: argparse.Namespace) -> int:
    """Build the ledger from its corpus, or load it from the snapshot."""
    return _run_ledger_command(args, "build", _build)


def handle_lookup(args: argparse.Namespace) -> int:
    """Resolve tokens against a ledger and log their ids and vectors."""
    return _run_ledger_command(args, "lookup", _lookup)


def handle_activations(args: argparse.Namespace) -> int:
    """Log init ranges (and optionally f(x) and its Jacobian) for activations."""
    from deepledger.activation.core import (
        Activation,
        derivative,
        forward,
        get_activation,
        initialize,
    )

    exit_code, config, logger = _load_and_bootstrap(args, "activations")
    if exit_code != SUCCESS:
        return exit_code

    activation_config = config.activation if config is not None else None
    fan_in, fan_out = 1, 1
    if activation_config is not None:
        fan_in, fan_out = activation_config.fan_in, activation_config.fan_out
    if args.fan_in is not None:
        fan_in = args.fan_in
    if args.fan_out is not None:
        fan_out = args.fan_out

    try:
        if args.kind is not None:
            kinds = [get_activation(args.kind)]
        elif activation_config is not None:
            kinds = [activation_config.kind]
        else:
            kinds = list(Activation)

        x = None
        if args.input is not None:
            x = [float(v) for v in args.input.split(",") if v.strip()]
    except (KeyError, ValueError) as err:
        logger.error("Invalid activation arguments", extra={"error": str(err)})
        return USER_ERROR

    try:
        for kind in kinds:
            low, high = initialize(kind, fan_in, fan_out)
            extra: dict[str, object] = {
                "kind": kind.value,
                "fan_in": fan_in,
                "fan_out": fan_out,
                "low": low,
                "high": high,
            }
            if x is not None:
                fx = forward(kind, x)
                extra["forward"] = fx.tolist()
                extra["derivative"] = derivative(kind, fx).tolist()
            logger.info("Activation", extra=extra)
        return SUCCESS
    except ValueError as err:
        logger.error("Activation evaluation failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_info(args: argparse.Namespace) -> int:
    """Log environment info and the available activations and shape functions."""
    from deepledger.activation.core import list_activation_types
    from deepledger.ledger.shapes import list_shape_functions
    from deepledger.runtime.environment import get_system_info

    exit_code, config, logger = _load_and_bootstrap(args, "info")
    if exit_code != SUCCESS:
        return exit_code

    info = get_system_info()
    logger.info(
        "DeepLedger environment",
        extra={
            "python_version": info.python_version,
            "platform": info.platform,
            "architecture": info.architecture,
            "torch_version": info.torch_version,
            "torch_threads": info.torch_threads,
            "activations": list_activation_types(),
            "shape_functions": list_shape_functions(),
            "config": args.config,
        },
    )
    return SUCCESS
