from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    log_level: str
    default_timezone: str
    export_dir: Path

    def resolve_path(self, filename: str | Path) -> Path:
        """Relative export/import paths are taken from ``export_dir``."""
        path = Path(filename)
        return path if path.is_absolute() else self.export_dir / path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        log_level=os.getenv("CALDESK_LOG_LEVEL", "INFO").upper(),
        default_timezone=os.getenv("CALDESK_DEFAULT_TIMEZONE", "America/New_York"),
        export_dir=Path(os.getenv("CALDESK_EXPORT_DIR", Path.cwd())),
    )
