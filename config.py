"""
config.py
Application settings read from CHARITY_* environment variables (and an optional .env).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from models import Currency

logger = logging.getLogger(__name__)

DEFAULT_DB_FILE = Path(__file__).with_name("charity.db")


@dataclass(frozen=True)
class AppConfig:
    db_file: Path = DEFAULT_DB_FILE
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    page_size: int = 10
    default_admin_username: str = "admin"
    default_admin_password: str = "admin123"
    organisation_name: str = "Association"
    display_currency: Currency = Currency.EUR


def _int_setting(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", key, raw, default)
        return default


def load_config(env: Mapping[str, str] | None = None, dotenv_path: Path | None = None) -> AppConfig:
    """
    Build the configuration. When ``env`` is None the process environment is
    used, after loading ``.env`` from the working directory if present.
    """
    if env is None:
        load_dotenv(dotenv_path=dotenv_path or Path.cwd() / ".env")
        env = os.environ

    defaults = AppConfig()
    return AppConfig(
        db_file=Path(env.get("CHARITY_DB_FILE") or defaults.db_file),
        log_level=(env.get("CHARITY_LOG_LEVEL") or defaults.log_level).upper(),
        log_dir=Path(env.get("CHARITY_LOG_DIR") or defaults.log_dir),
        page_size=max(1, _int_setting(env, "CHARITY_PAGE_SIZE", defaults.page_size)),
        default_admin_username=env.get("CHARITY_ADMIN_USERNAME") or defaults.default_admin_username,
        default_admin_password=env.get("CHARITY_ADMIN_PASSWORD") or defaults.default_admin_password,
        organisation_name=env.get("CHARITY_ORGANISATION") or defaults.organisation_name,
        display_currency=Currency.parse(env.get("CHARITY_DISPLAY_CURRENCY") or defaults.display_currency.value),
    )
