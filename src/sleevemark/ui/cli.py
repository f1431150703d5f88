from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from sleevemark.app import (
    mark_sleeves,
    reset_marks,
    reset_transferred_parameters,
    transfer_parameters,
)
from sleevemark.config import (
    ConfigurationError,
    configure_logging,
    get_storage_config,
    load_mark_settings,
    load_transfer_configuration,
    save_mark_settings,
)
from sleevemark.domain.marking import MarkRequest
from sleevemark.domain.model import Category, MarkingMode, MarkPrefixSettings, SleeveScope

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from sleevemark.domain.model import TransferResult

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mark sleeves and transfer their parameters")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log at DEBUG level",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    mark = subparsers.add_parser("mark", help="Prefix and number sleeve marks")
    mark.add_argument(
        "--mode",
        choices=[mode.value for mode in MarkingMode],
        default=MarkingMode.FULL.value,
        help="What to write (default: %(default)s)",
    )
    mark.add_argument(
        "--category",
        action="append",
        default=None,
        help="Category to mark (repeatable; defaults to every category with clash zones)",
    )
    mark.add_argument(
        "--selected-only",
        action="store_true",
        help="Only mark categories whose remark flag is set",
    )
    mark.add_argument("--project-prefix", type=str, help="Prefix placed before every mark")
    mark.add_argument(
        "--discipline-prefix",
        action="append",
        default=[],
        metavar="CATEGORY=PREFIX",
        help="Override the default prefix of a category for this run (repeatable)",
    )
    mark.add_argument(
        "--remark-all",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Rewrite marks that are already set",
    )
    mark.add_argument("--level", type=str, help="Only mark sleeves on this level")
    mark.add_argument(
        "--continue-from",
        type=str,
        metavar="SCOPE",
        help="Continue numbering after the series of another level or scope",
    )
    mark.add_argument("--settings", type=str, help="Path to the mark settings JSON file")

    transfer = subparsers.add_parser("transfer", help="Transfer snapshot parameters to sleeves")
    transfer.add_argument("--config", type=str, help="Path to the transfer configuration JSON")
    transfer.add_argument(
        "--element",
        action="append",
        type=int,
        default=None,
        help="Target element id (repeatable; defaults to every sleeve)",
    )

    reset = subparsers.add_parser("reset-marks", help="Clear sleeve marks and counters")
    reset.add_argument("--level", type=str, help="Level whose marks are cleared")
    reset.add_argument(
        "--element",
        action="append",
        type=int,
        default=None,
        help="Element id to clear (repeatable)",
    )
    reset.add_argument(
        "--category",
        action="append",
        default=None,
        help="Only clear sleeves of this category (repeatable)",
    )
    reset.add_argument(
        "--project-wide",
        action="store_true",
        help="Allow clearing every mark in the project",
    )
    reset.add_argument(
        "--keep-counters",
        action="store_true",
        help="Keep numbering counters so new numbers continue after the cleared ones",
    )
    reset.add_argument("--settings", type=str, help="Path to the mark settings JSON file")

    reset_parameters = subparsers.add_parser(
        "reset-parameters",
        help="Clear parameters written by a previous transfer",
    )
    reset_parameters.add_argument("--config", type=str, help="Path to the transfer configuration")
    reset_parameters.add_argument(
        "--element",
        action="append",
        type=int,
        default=None,
        help="Target element id (repeatable; defaults to every sleeve)",
    )

    init_settings = subparsers.add_parser("init-settings", help="Write default mark settings")
    init_settings.add_argument("--settings", type=str, help="Where to write the settings file")
    init_settings.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing settings file",
    )

    return parser.parse_args(list(argv))


def _parse_categories(values: Sequence[str] | None) -> frozenset[Category] | None:
    if values is None:
        return None
    return frozenset(Category.parse(value) for value in values)


def _parse_discipline_prefixes(values: Sequence[str]) -> dict[Category, str]:
    prefixes: dict[Category, str] = {}
    for value in values:
        label, separator, prefix = value.partition("=")
        if not separator:
            raise ValueError(f"Expected CATEGORY=PREFIX, got {value!r}")
        prefixes[Category.parse(label)] = prefix.strip()
    return prefixes


def _optional_path(value: str | None) -> Path | None:
    return Path(value) if value is not None else None


def _build_mark_request(args: argparse.Namespace) -> MarkRequest:
    return MarkRequest(
        settings=load_mark_settings(_optional_path(args.settings)),
        mode=MarkingMode(args.mode),
        categories=_parse_categories(args.category),
        selected_only=args.selected_only,
        project_prefix=args.project_prefix,
        discipline_prefixes=_parse_discipline_prefixes(args.discipline_prefix),
        remark_all=args.remark_all,
        continue_from_scope=args.continue_from,
        scope=SleeveScope(level_name=args.level),
    )


def _build_reset_scope(args: argparse.Namespace) -> SleeveScope:
    return SleeveScope(
        level_name=args.level,
        element_ids=frozenset(args.element) if args.element else None,
        categories=_parse_categories(args.category),
    )


def _report_transfer(label: str, result: TransferResult) -> None:
    for warning in result.warnings:
        log.warning("%s: %s", label, warning)
    for error in result.errors:
        log.error("%s: %s", label, error)
    if not result.success:
        raise RuntimeError(f"{label} failed: {result.message}")
    log.info("%s: %s", label, result.message)


def _init_settings(args: argparse.Namespace) -> None:
    path = _optional_path(args.settings) or get_storage_config().mark_settings_path()
    if path.exists() and not args.force:
        raise ValueError(f"{path} already exists; pass --force to overwrite it")
    written = save_mark_settings(MarkPrefixSettings(), path)
    log.info("Wrote default mark settings to %s", written)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        mark_request = _build_mark_request(parsed_args) if parsed_args.command == "mark" else None
        reset_scope = (
            _build_reset_scope(parsed_args) if parsed_args.command == "reset-marks" else None
        )
        reset_settings = (
            load_mark_settings(_optional_path(parsed_args.settings))
            if reset_scope is not None
            else None
        )
        transfer_config = (
            load_transfer_configuration(_optional_path(parsed_args.config))
            if parsed_args.command in {"transfer", "reset-parameters"}
            else None
        )
    except ConfigurationError as exc:
        log.exception("Invalid configuration in %s", exc.source or "the environment")
        sys.exit(2)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if mark_request is not None:
            mark_sleeves(mark_request)
        elif reset_scope is not None:
            reset_marks(
                reset_scope,
                project_wide=parsed_args.project_wide,
                reset_counters=not parsed_args.keep_counters,
                known_prefixes=reset_settings.known_prefixes() if reset_settings else (),
            )
        elif parsed_args.command == "transfer":
            result = transfer_parameters(parsed_args.element, config=transfer_config)
            _report_transfer("Parameter transfer", result)
        elif parsed_args.command == "reset-parameters":
            result = reset_transferred_parameters(parsed_args.element, config=transfer_config)
            _report_transfer("Parameter reset", result)
        elif parsed_args.command == "init-settings":
            _init_settings(parsed_args)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except (ValueError, ConfigurationError):
        log.exception("Invalid request")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
