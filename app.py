# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import event

# .env must be loaded before config classes read os.environ
load_dotenv()

from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from compliance_app.importer import init_importer  # noqa: E402
from compliance_app.models import db  # noqa: E402
from compliance_app.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

CONFIG_BY_ENV = {
    "production": (ProductionConfig, ProductionMonitoringConfig),
    "testing": (TestingConfig, TestingMonitoringConfig),
    "development": (DevelopmentConfig, DevelopmentMonitoringConfig),
}


def _sqlite_pragmas(*, foreign_keys: bool):
    """Connection hook: WAL journal and a busy timeout so CLI runs can overlap."""

    def on_connect(dbapi_connection, connection_record):  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=5000")
            if foreign_keys:
                cursor.execute("PRAGMA foreign_keys=ON")
        finally:
            cursor.close()

    return on_connect


flask_env = os.environ.get("FLASK_ENV", "development")
validate_and_exit(flask_env)

app = Flask(__name__)
for config_object in CONFIG_BY_ENV.get(flask_env, CONFIG_BY_ENV["development"]):
    app.config.from_object(config_object)

db.init_app(app)
setup_logging(app)
init_importer(app)

with app.app_context():
    if db.engine.url.get_backend_name() == "sqlite":
        event.listen(db.engine, "connect", _sqlite_pragmas(foreign_keys=not app.testing))
    if not app.testing:
        db.create_all()
        logger.debug("Schema ensured on %s", db.engine.url.render_as_string(hide_password=True))
