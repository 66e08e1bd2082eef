"""Command line interface.

Usage::

    flagplane list [-prefix P] [-scope S]
    flagplane set -name N [-value V] [-comment C] [-scope S]
    flagplane delete -name N [-scope S]
    flagplane init [-create]
    flagplane import [-scope S] < flags.json
    flagplane info
    flagplane serve
    flagplane watch

Every command exits 0 on success and 1 on failure.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import IO, Any

from flagplane.config import Settings, get_settings
from flagplane.errors import FlagplaneError, ValidationError, WatcherStartError
from flagplane.models import Feature
from flagplane.services.distribution import DistributionCoordinator
from flagplane.services.importer import BulkImporter
from flagplane.services.mutations import MutationService
from flagplane.services.repository import RepositoryManager
from flagplane.store import FeatureStore, build_store

logger = logging.getLogger(__name__)

LIST_COLUMNS = ("Name", "Type", "Value", "Comment", "Scope", "Updated By")


def _display_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return "" if value is None else str(value)


def render_features(features: list[Feature]) -> str:
    """Render features as an aligned text table."""
    rows = [
        (
            f.key,
            f.feature_type.value if f.feature_type else "",
            _display_value(f.value),
            f.comment,
            f.scope,
            f.updated_by,
        )
        for f in features
    ]
    widths = [max(len(str(cell)) for cell in column) for column in zip(LIST_COLUMNS, *rows)]
    lines = ["  ".join(cell.ljust(w) for cell, w in zip(row, widths)).rstrip() for row in [LIST_COLUMNS, *rows]]
    return "\n".join(lines)


def render_config(settings: Settings) -> str:
    """Render the effective configuration."""
    described = settings.describe()
    width = max(len(k) for k in described)
    return "\n".join(f"{key.ljust(width)}  {_display_value(value)}" for key, value in described.items())


class Controller:
    """Maps commands onto services and errors onto exit codes."""

    def __init__(
        self,
        settings: Settings,
        store: FeatureStore,
        stdin: IO[bytes] | None = None,
        stdout: IO[str] | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.mutations = MutationService(settings, store)
        self.stdin = stdin
        self.stdout = stdout or sys.stdout

    def _say(self, text: str) -> None:
        print(text, file=self.stdout)

    def list(self, args: argparse.Namespace) -> int:
        try:
            features = self.mutations.list_features(args.prefix or "", args.scope or "")
        except FlagplaneError as e:
            logger.error(f"{e}")
            return 1

        if not features:
            logger.info(f"no feature flags found in namespace: {self.store.namespace}")
            return 1

        self._say(render_features(features))
        return 0

    def set(self, args: argparse.Namespace) -> int:
        try:
            feature = self.mutations.builder.parse(
                args.name, args.value, args.comment or "", args.scope or ""
            )
        except ValidationError as e:
            logger.error(f"parse error: {e}")
            return 1

        try:
            self.mutations.set_feature(feature)
        except FlagplaneError as e:
            logger.error(f"set error: {e}")
            return 1
        return 0

    def delete(self, args: argparse.Namespace) -> int:
        try:
            self.mutations.delete_feature(args.name, args.scope or "")
        except FlagplaneError as e:
            logger.error(f"{e}")
            return 1
        return 0

    def init(self, args: argparse.Namespace) -> int:
        try:
            RepositoryManager(self.settings, self.store).init(create=args.create)
        except FlagplaneError as e:
            logger.error(f"{e}")
            return 1
        return 0

    def import_(self, args: argparse.Namespace) -> int:
        stream = self.stdin or sys.stdin.buffer
        try:
            imported = BulkImporter(self.mutations).import_stream(stream, scope=args.scope or "")
        except FlagplaneError as e:
            logger.error(f"{e}")
            return 1
        logger.info(f"imported {len(imported)} flags")
        return 0

    def info(self, args: argparse.Namespace) -> int:
        self._say(render_config(self.settings))
        return 0

    def serve(self, args: argparse.Namespace) -> int:
        try:
            DistributionCoordinator(self.settings, self.store).serve()
        except WatcherStartError as e:
            logger.critical(f"could not start watcher: {e}")
            return 1
        return 0

    def watch(self, args: argparse.Namespace) -> int:
        try:
            DistributionCoordinator(self.settings, self.store).watch()
        except KeyboardInterrupt:
            return 0
        except FlagplaneError as e:
            logger.error(f"{e}")
            return 1
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flagplane", description="Feature flag control plane")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List feature flags")
    list_parser.add_argument("-prefix", "--prefix", default="", help="Key prefix filter")
    list_parser.add_argument("-scope", "--scope", default="", help="Scope filter")

    set_parser = subparsers.add_parser("set", help="Create or update a feature flag")
    set_parser.add_argument("-name", "--name", default="", help="Flag name")
    set_parser.add_argument(
        "-value", "--value", default="", help="[0.0-1.0], [true|false] or a string"
    )
    set_parser.add_argument("-comment", "--comment", default="", help="Change comment")
    set_parser.add_argument("-scope", "--scope", default="", help="Flag scope")

    delete_parser = subparsers.add_parser("delete", help="Delete a feature flag")
    delete_parser.add_argument("-name", "--name", default="", help="Flag name")
    delete_parser.add_argument("-scope", "--scope", default="", help="Flag scope")

    init_parser = subparsers.add_parser("init", help="Scaffold config and provision the repository")
    init_parser.add_argument(
        "-create", "--create", action="store_true", help="Create a new repository instead of cloning"
    )

    import_parser = subparsers.add_parser("import", help="Import a JSON object of flags from stdin")
    import_parser.add_argument("-scope", "--scope", default="", help="Scope for all imported flags")

    subparsers.add_parser("info", help="Show the effective configuration")
    subparsers.add_parser("serve", help="Serve flag snapshots over HTTP")
    subparsers.add_parser("watch", help="Watch the namespace for changes")

    return parser


COMMANDS = {
    "list": Controller.list,
    "set": Controller.set,
    "delete": Controller.delete,
    "init": Controller.init,
    "import": Controller.import_,
    "info": Controller.info,
    "serve": Controller.serve,
    "watch": Controller.watch,
}


def main(
    argv: list[str] | None = None,
    settings: Settings | None = None,
    store: FeatureStore | None = None,
    stdin: IO[bytes] | None = None,
    stdout: IO[str] | None = None,
) -> int:
    """Parse ``argv`` and run the command, returning its exit code."""
    args = build_parser().parse_args(argv)

    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    controller = Controller(settings, store or build_store(settings), stdin=stdin, stdout=stdout)
    return COMMANDS[args.command](controller, args)


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
