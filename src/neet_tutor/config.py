"""Environment-driven settings.

Variables (a .env file in the working directory is loaded first):
    SUPABASE_URL, SUPABASE_KEY  remote store credentials; leave blank to run offline
    NEET_TUTOR_DATA_DIR         directory for subjects.json / chapters.json
    LOG_LEVEL                   DEBUG, INFO, WARNING, ...
    LOG_FORMAT                  "text" or "json"
"""
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

DEFAULT_DATA_DIR = str(Path.home() / ".neet_tutor" / "data")


@dataclass
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    data_dir: str = DEFAULT_DATA_DIR
    log_level: str = "INFO"
    log_format: str = "text"

    @property
    def remote_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_settings(env_file: str | None = None) -> Settings:
    """Read settings from the environment, after merging in a .env file."""
    load_dotenv(env_file or find_dotenv(usecwd=True))
    return Settings(
        supabase_url=os.environ.get("SUPABASE_URL", "").strip(),
        supabase_key=os.environ.get("SUPABASE_KEY", "").strip(),
        data_dir=os.environ.get("NEET_TUTOR_DATA_DIR", DEFAULT_DATA_DIR),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        log_format=os.environ.get("LOG_FORMAT", "text"),
    )
