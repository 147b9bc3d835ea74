"""
config.py - environment configuration and logging setup

Settings come from environment variables. On Streamlit Cloud, app.py copies
the app's secrets into the environment before anything here is read.
"""

import logging
import os
from dataclasses import dataclass

_default_data_file = os.path.join(os.path.dirname(__file__), "..", "data", "ridesplit_data.json")

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


@dataclass
class Settings:
    google_sheet_id: str = ""
    service_account_json: str = ""
    service_account_file: str = ""
    data_file: str = _default_data_file
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            google_sheet_id=(os.getenv("GOOGLE_SHEET_ID") or "").strip(),
            service_account_json=(os.getenv("GOOGLE_SERVICE_ACCOUNT_JSON") or "").strip(),
            service_account_file=(os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE") or "").strip(),
            data_file=(os.getenv("RIDESPLIT_DATA_FILE") or "").strip() or _default_data_file,
            log_level=(os.getenv("RIDESPLIT_LOG_LEVEL") or "INFO").strip().upper(),
        )


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach one stream handler to the package logger (idempotent)."""
    logger = logging.getLogger("ridesplit")
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, level, logging.INFO))
    return logger
