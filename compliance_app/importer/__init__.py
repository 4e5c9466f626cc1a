"""
Compliance import engine.

Registers the ``flask importer`` CLI group (or a disabled stand-in) and keeps
the importer state inside ``app.extensions['importer']``.
"""

from __future__ import annotations

from flask import Flask

from compliance_app.utils.importer import is_importer_enabled

from .cli import get_disabled_importer_group, importer_cli
from .contracts import CONTRACTS
from .errors import (
    DuplicateError,
    ImporterError,
    PersistenceError,
    ResolutionError,
    RowError,
    ValidationError,
)
from .pipeline import (
    BatchReport,
    ImportBatchService,
    ImportCoordinator,
    ImportOptions,
    ReportGenerator,
    StatusEngine,
    SyncReconciler,
    WorkbookImporter,
    refresh_certificate_statuses,
)

IMPORTER_EXTENSION_KEY = "importer"

__all__ = [
    "init_importer",
    "IMPORTER_EXTENSION_KEY",
    "BatchReport",
    "DuplicateError",
    "ImportBatchService",
    "ImportCoordinator",
    "ImportOptions",
    "ImporterError",
    "PersistenceError",
    "ReportGenerator",
    "ResolutionError",
    "RowError",
    "StatusEngine",
    "SyncReconciler",
    "ValidationError",
    "WorkbookImporter",
    "refresh_certificate_statuses",
]


def _extension_state(app: Flask) -> dict:
    return app.extensions.setdefault(IMPORTER_EXTENSION_KEY, {"enabled": False, "subjects": (), "provider_code": None})


def _set_cli(app: Flask, enabled: bool) -> None:
    # init_importer may run more than once per app (tests toggle the flag)
    app.cli.commands.pop(importer_cli.name, None)
    app.cli.add_command(importer_cli if enabled else get_disabled_importer_group())


def init_importer(app: Flask) -> None:
    """
    Mount the importer CLI based on ``IMPORTER_ENABLED`` and record the
    importer state on the app.
    """
    enabled = is_importer_enabled(app)
    state = _extension_state(app)
    state["enabled"] = enabled

    if not enabled:
        state["subjects"] = ()
        _set_cli(app, enabled=False)
        app.logger.info("Importer disabled (IMPORTER_ENABLED=false); registered placeholder CLI group.")
        return

    state["subjects"] = tuple(CONTRACTS)
    state["provider_code"] = app.config.get("IMPORTER_CERTIFICATE_PROVIDER_CODE")
    _set_cli(app, enabled=True)
    app.logger.info("Importer enabled for subjects: %s", ", ".join(state["subjects"]))
