"""Print the effective runtime and logging configuration as JSON.

Credentials in ``DATABASE_URL`` are masked before printing.
"""

import dataclasses
import json
import logging
import os
import sys
from urllib.parse import urlsplit, urlunsplit

from dotenv import load_dotenv

from helpdesk.core.settings import get_settings


def _mask_dsn(dsn: str) -> str:
    parts = urlsplit(dsn)
    if parts.password is None:
        return dsn
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


def get_log_config():
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    return {
        "log_dir": os.path.abspath(os.getenv("LOG_DIR", "logs")),
        "log_level": logging.getLevelName(log_level),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
        "retention_days": int(os.getenv("LOG_RETENTION_DAYS", "7")),
        "rotate_utc": os.getenv("LOG_ROTATE_UTC", "false").lower() == "true",
    }


def get_config():
    settings = dataclasses.asdict(get_settings())
    settings["database_url"] = _mask_dsn(settings["database_url"])
    return {"settings": settings, "logging": get_log_config()}


def main():
    load_dotenv()
    sys.stdout.write(json.dumps(get_config(), indent=2) + "\n")


if __name__ == "__main__":
    main()
