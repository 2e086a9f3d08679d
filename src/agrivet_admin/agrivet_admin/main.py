from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .common.web import EXTENSION_KEY, AdminJSONProvider
from .container import Container, build_container
from .core.constants import DEFAULT_SESSION_DAYS, MAX_UPLOAD_BYTES
from .dashboard.controller import register as register_dashboard
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables
from .database.connection import DBConfig
from .leave.controller import register as register_leave
from .marketing.controller import register as register_marketing
from .permissions.controller import register as register_permissions
from .sales.controller import register as register_sales
from .staff.controller import register as register_staff
from .users.controller import register as register_users

REPO_ROOT = Path(__file__).resolve().parents[3]


def _configure_logging(app: Flask, level_name: str) -> None:
    level = logging.getLevelName(str(level_name).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    app.logger.setLevel(level)


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the admin API.

    ``container`` replaces the MySQL-backed services (tests pass one built
    from in-memory fakes); schema bootstrapping is skipped in that case.
    """
    load_dotenv(override=False)
    app = Flask(__name__)
    app.json = AdminJSONProvider(app)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES)) + 64 * 1024
    app.permanent_session_lifetime = timedelta(days=int(getattr(settings, "SESSION_DAYS", DEFAULT_SESSION_DAYS)))

    _configure_logging(app, getattr(settings, "LOG_LEVEL", "INFO"))
    app.logger.info("settings=%s db=%s", settings_module, DBConfig.from_dict(db_config).describe())

    if container is None:
        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            apply_schema(db_config, schema_path=REPO_ROOT / "database" / "schema.sql")
            app.logger.info("schema ready (tables=%s)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            apply_seed_sql(db_config, seed_path=REPO_ROOT / "database" / "seed.sql")
            ensure_demo_users(db_config)
            app.logger.info("demo seed ready")

        container = build_container(db_config=db_config, settings=settings)

    app.extensions[EXTENSION_KEY] = container

    register_users(app, container)
    register_permissions(app, container)
    register_staff(app, container)
    register_attendance(app, container)
    register_leave(app, container)
    register_sales(app, container)
    register_marketing(app, container)
    register_dashboard(app, container)

    return app
