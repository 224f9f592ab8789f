"""Runtime configuration — env-driven.

Reads from a .env file and CARFORGE_* environment variables. Library
classes take explicit arguments; only the CLI and ``DagService`` read this.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from carforge.models.dag import DuplicatePolicy, UnreadablePolicy


class CarforgeConfig(BaseSettings):
    """Configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export CARFORGE_LOG_LEVEL=DEBUG
        export CARFORGE_CID_VERSION=0
        export CARFORGE_DUPLICATE_POLICY=error

    Or via .env file::

        CARFORGE_SORT_ENTRIES=true
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CARFORGE_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"

    # DAG layout
    cid_version: int = Field(default=1, ge=0, le=1)  # directory nodes only
    hash_function: str = "sha2-256"
    sort_entries: bool = False

    # Import policies
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.LAST_WINS
    unreadable_policy: UnreadablePolicy = UnreadablePolicy.ERROR

    # CLI output
    output_path: Path = Path("build.car")


# Module-level instance for the CLI; import as `from carforge.config import config`
config = CarforgeConfig()
