"""Environment configuration for the pediatric ward manager."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

load_dotenv(override=True)

# Remote document store (optional). Without both values the app runs local-only.
DATA_API_URL = os.getenv("DATA_API_URL")
DATA_API_KEY = os.getenv("DATA_API_KEY")
DATA_API_SOURCE = os.getenv("DATA_API_SOURCE", "Cluster0")
DATA_API_DATABASE = os.getenv("DATA_API_DATABASE", "upa_pediatrica")
DATA_API_TIMEOUT = float(os.getenv("DATA_API_TIMEOUT", "10"))

# Local storage
STORAGE_DIR = Path(os.getenv("WARD_STORAGE_DIR", Path(__file__).parent / "data"))
EXPORT_DIR = Path(os.getenv("WARD_EXPORT_DIR", "."))

# Ward
WARD_CAPACITY = int(os.getenv("WARD_CAPACITY", "12"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")


def setup_logging(level: str | None = None) -> None:
    """Route log records through rich so they share the console with the app."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
