from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.logging import configure_logging
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_demo_data, list_tables
from .notifications.log_handler import NotificationLogHandler
from .notifications.telegram import TelegramNotifier
from .approval.controller import register as register_approval
from .emails.controller import register as register_emails
from .tasks.controller import register as register_tasks

logger = logging.getLogger(__name__)


def _notification_handler(settings) -> Optional[logging.Handler]:
    if not getattr(settings, "TELEGRAM_DEBUG", False):
        return None
    token = getattr(settings, "TELEGRAM_BOT_TOKEN", "")
    chat_id = getattr(settings, "TELEGRAM_CHAT_ID", "")
    if not token or not chat_id:
        return None
    return NotificationLogHandler(TelegramNotifier(token, chat_id))


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__, template_folder="../../../templates")

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["INTERNAL_API_KEY"] = getattr(settings, "INTERNAL_API_KEY", "")
    app.config["COMPANY_ID"] = int(getattr(settings, "COMPANY_ID", 1))

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"), extra_handler=_notification_handler(settings))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )

        if bool(getattr(settings, "AUTO_INIT_DB", False)):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(db_config, schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(db_config)))
        if bool(getattr(settings, "AUTO_SEED_DB", False)):
            ensure_demo_data(db_config)
            logger.info("demo seed ready")

        container = build_container(db_config=db_config, settings=settings)

    register_approval(app, container)
    register_emails(app, container)
    register_tasks(app, container)

    return app
