"""Summary: Application configuration for semesterplan.

Importance: Centralizes environment, .env, and config defaults for consistent behavior.
Alternatives: Use a dedicated settings library like Pydantic Settings.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Summary: Holds configuration values for storage, import and API settings.

    Importance: Ensures all services derive settings from a single source of truth.
    Alternatives: Store settings in a shared config file and parse at startup.
    """

    db_path: str
    api_host: str
    api_port: int
    reference_timezone: str
    correlation_property: str
    max_upload_bytes: int
    token_secret: str
    default_user_name: str
    default_user_email: str
    log_level: str

    @staticmethod
    def from_env() -> "AppConfig":
        """Summary: Build configuration from defaults, .env, and environment.

        Importance: Keeps all variables defined in config defaults while allowing overrides.
        Alternatives: Parse only environment variables without a defaults file.
        """

        defaults = load_defaults(Path("config") / "defaults.json")
        load_dotenv(Path(".env"))
        return AppConfig(
            db_path=os.getenv("SEMESTERPLAN_DB_PATH", defaults["db_path"]),
            api_host=os.getenv("SEMESTERPLAN_API_HOST", defaults["api_host"]),
            api_port=int(os.getenv("SEMESTERPLAN_API_PORT", defaults["api_port"])),
            reference_timezone=os.getenv(
                "SEMESTERPLAN_REFERENCE_TIMEZONE", defaults["reference_timezone"]
            ),
            correlation_property=os.getenv(
                "SEMESTERPLAN_CORRELATION_PROPERTY", defaults["correlation_property"]
            ),
            max_upload_bytes=int(
                os.getenv("SEMESTERPLAN_MAX_UPLOAD_BYTES", defaults["max_upload_bytes"])
            ),
            token_secret=os.getenv("SEMESTERPLAN_TOKEN_SECRET", defaults["token_secret"]),
            default_user_name=os.getenv(
                "SEMESTERPLAN_DEFAULT_USER_NAME", defaults["default_user_name"]
            ),
            default_user_email=os.getenv(
                "SEMESTERPLAN_DEFAULT_USER_EMAIL", defaults["default_user_email"]
            ),
            log_level=os.getenv("SEMESTERPLAN_LOG_LEVEL", defaults["log_level"]),
        )


def load_defaults(path: Path) -> dict[str, str]:
    """Summary: Load configuration defaults from JSON.

    Importance: Ensures all variables exist in a single config file.
    Alternatives: Inline defaults in the AppConfig initializer.
    """

    if not path.exists():
        raise FileNotFoundError(f"Defaults file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


def load_dotenv(path: Path) -> None:
    """Summary: Load key-value pairs from a .env file into the environment.

    Importance: Keeps secrets out of code while supporting local workflows.
    Alternatives: Use python-dotenv or OS-specific secret stores.
    """

    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        os.environ.setdefault(key.removeprefix("export ").strip(), value)
