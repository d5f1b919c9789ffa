from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from typing import Callable

from title_automation.application.app import WorkerApp, load_config_from_env
from title_automation.config.logging_setup import configure_logging, with_title_label
from title_automation.config.settings_store import SettingsStore
from title_automation.domain.models.app_config import AppConfig
from title_automation.domain.models.results import RemovalStatus
from title_automation.domain.services.cache_locator import locate_cached_artifact
from title_automation.domain.services.tmp_workspace import clean_tmp

EXIT_OK = 0
EXIT_FAILURE = 1

_log = logging.getLogger("title_automation.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="title_automation",
        description="Managed title decommission and upload confirmation tooling.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    _ = commands.add_parser("worker", help="Run the scheduled removal queue worker")

    remove = commands.add_parser("remove", help="Remove every remote entry of a managed title")
    _ = remove.add_argument("folders", nargs="+", metavar="FOLDER")
    _ = remove.add_argument(
        "--queue",
        action="store_true",
        help="Drop a trigger in the removal queue instead of running now",
    )

    confirm = commands.add_parser("confirm-upload", help="Wait for a version to appear remotely")
    _ = confirm.add_argument("folder", metavar="FOLDER")
    _ = confirm.add_argument("--version", required=True)

    finalize = commands.add_parser(
        "finalize-upload", help="Confirm an uploaded version, then retire older ones"
    )
    _ = finalize.add_argument("folder", metavar="FOLDER")
    _ = finalize.add_argument("--version", required=True)
    _ = finalize.add_argument(
        "--app-id",
        default="",
        help="Remote id of the new upload, deleted when it cannot be confirmed",
    )

    lookup = commands.add_parser("cache-lookup", help="Print the cached artifact path of a title")
    _ = lookup.add_argument("folder", metavar="FOLDER")

    tmp = commands.add_parser("clean-tmp", help="Delete the temp workspace of a label")
    _ = tmp.add_argument("label", metavar="LABEL")

    config_set = commands.add_parser("config-set", help="Update a value in settings.ini")
    _ = config_set.add_argument("key", metavar="KEY")
    _ = config_set.add_argument("value", metavar="VALUE")

    return parser


def _cmd_worker(app: WorkerApp, _args: argparse.Namespace) -> int:
    return app.run()


def _cmd_remove(app: WorkerApp, args: argparse.Namespace) -> int:
    folders = [str(name).strip() for name in args.folders if str(name).strip()]
    if args.queue:
        for folder in folders:
            print(app.enqueue_removal(folder))
        return EXIT_OK

    app.ensure_layout()
    remove = with_title_label(app.build_remove_automation())
    exit_code = EXIT_OK
    for folder in folders:
        outcome = remove(folder)
        print(f"{folder}: {outcome.status.value} (deleted: {len(outcome.deleted_ids)}, failed: {len(outcome.failed_ids)})")
        if outcome.status is not RemovalStatus.SUCCEEDED:
            exit_code = EXIT_FAILURE
    return exit_code


def _cmd_confirm_upload(app: WorkerApp, args: argparse.Namespace) -> int:
    try:
        results = app.load_title(args.folder)
        token = app.token_provider.get_token()
    except Exception as exc:
        _log.error("Cannot confirm upload for %s: %s", args.folder, exc)
        return EXIT_FAILURE

    confirmation = app.build_confirm_upload()(results.tracking_id, args.version, token)
    for entry in confirmation.entries:
        print(f"{entry.id}\t{entry.primary_bundle_version}\t{entry.display_name}")
    return EXIT_FAILURE if confirmation.timed_out else EXIT_OK


def _cmd_finalize_upload(app: WorkerApp, args: argparse.Namespace) -> int:
    try:
        results = app.load_title(args.folder).with_actual_version(args.version)
    except Exception as exc:
        _log.error("Cannot finalize upload for %s: %s", args.folder, exc)
        return EXIT_FAILURE

    app.ensure_layout()
    outcome = app.build_finalize_upload()(results, args.app_id)
    if outcome.skipped:
        print(f"{args.folder}: skipped (title is busy)")
        return EXIT_FAILURE
    print(
        f"{args.folder}: confirmed: {outcome.confirmed} "
        f"(unassigned: {len(outcome.unassigned_ids)}, pruned: {len(outcome.pruned_ids)})"
    )
    return EXIT_OK if outcome.confirmed else EXIT_FAILURE


def _cmd_cache_lookup(app: WorkerApp, args: argparse.Namespace) -> int:
    try:
        results = app.load_title(args.folder)
    except Exception as exc:
        _log.error("Cannot read metadata for %s: %s", args.folder, exc)
        return EXIT_FAILURE

    cached = locate_cached_artifact(results, app.config.paths.layout)
    if cached is None:
        print(f"{results.display_name} {results.version_expected} is not cached")
        return EXIT_FAILURE
    print(cached)
    return EXIT_OK


def _cmd_clean_tmp(app: WorkerApp, args: argparse.Namespace) -> int:
    return EXIT_OK if clean_tmp(args.label, app.config.paths.layout) else EXIT_FAILURE


def _cmd_config_set(config: AppConfig, args: argparse.Namespace) -> int:
    store = SettingsStore(config.paths.settings_path)
    try:
        store.set(args.key, args.value)
    except (KeyError, ValueError) as exc:
        _log.error("Setting not updated: %s", exc)
        return EXIT_FAILURE
    store.save()
    _log.info("Updated %s in %s", args.key.upper(), config.paths.settings_path)
    return EXIT_OK


_APP_COMMANDS: dict[str, Callable[[WorkerApp, argparse.Namespace], int]] = {
    "worker": _cmd_worker,
    "remove": _cmd_remove,
    "confirm-upload": _cmd_confirm_upload,
    "finalize-upload": _cmd_finalize_upload,
    "cache-lookup": _cmd_cache_lookup,
    "clean-tmp": _cmd_clean_tmp,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config_from_env()
    configure_logging(config.user.log_level, config.paths.logs_dir / "app_errors.log")

    if args.command == "config-set":
        return _cmd_config_set(config, args)
    return _APP_COMMANDS[args.command](WorkerApp(config), args)
