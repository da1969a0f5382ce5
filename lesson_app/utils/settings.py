"""Runtime settings resolved from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Mapping

from lesson_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT

_DEFAULT_PROGRESS_DIR = Path.home() / ".lesson_app" / "progress"


@dataclass(slots=True)
class AppSettings:
    """Host, port, storage location and log level for one process."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    progress_dir: Path = _DEFAULT_PROGRESS_DIR
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppSettings":
        env = os.environ if environ is None else environ
        raw_port = env.get("LESSON_APP_PORT")
        try:
            port = int(raw_port) if raw_port else DEFAULT_PORT
        except ValueError as exc:
            raise ValueError(f"LESSON_APP_PORT must be an integer, got {raw_port!r}") from exc
        raw_dir = env.get("LESSON_APP_PROGRESS_DIR")
        return cls(
            host=env.get("LESSON_APP_HOST") or DEFAULT_HOST,
            port=port,
            progress_dir=Path(raw_dir).expanduser() if raw_dir else _DEFAULT_PROGRESS_DIR,
            log_level=env.get("LESSON_APP_LOG_LEVEL") or "INFO",
        )
