"""NAKEN store application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from common.config import AppConfig, load_env


@dataclass
class StoreConfig:
    """Filesystem layout plus integration settings for one store instance."""

    project_root: Path
    data_dir: Path
    uploads_dir: Path
    app: AppConfig
    testing: bool = False
    admin_rate_limit: int = 30
    otp_rate_limit: int = 5
    global_rate_limit: int = 1000

    @property
    def secret_key(self) -> str:
        return self.app.secret_key

    @property
    def database_url(self) -> str:
        return self.app.database_url

    @classmethod
    def load(cls, root: Optional[Path] = None) -> "StoreConfig":
        """Read ``.env`` and the environment, creating data and upload directories."""

        project_root = Path(root) if root else Path(__file__).resolve().parent
        load_dotenv(project_root / ".env")

        data_dir = Path(os.environ.get("STORE_DATA_DIR") or project_root / "data")
        uploads_dir = Path(os.environ.get("UPLOADS_PATH") or data_dir / "uploads")
        data_dir.mkdir(parents=True, exist_ok=True)
        uploads_dir.mkdir(parents=True, exist_ok=True)

        return cls(
            project_root=project_root,
            data_dir=data_dir,
            uploads_dir=uploads_dir,
            app=load_env(data_dir),
        )
