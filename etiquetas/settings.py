from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class ApiEndpoints:
    # Intermediario local (proxy) y API remota directa.
    proxy_save_url: str = ""
    proxy_list_url: str = ""
    save_url: str = ""
    list_url: str = ""

    @property
    def can_write(self) -> bool:
        return bool(self.proxy_save_url or self.save_url)

    @property
    def can_read(self) -> bool:
        return bool(self.proxy_list_url or self.list_url)


@dataclass(frozen=True)
class Settings:
    # App
    APP_NAME: str = os.environ.get("APP_NAME", "Etiquetas Inventario")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Storage
    INSTANCE_DIR: Path = Path(os.environ.get("INSTANCE_DIR", "instance")).resolve()
    DATABASE_URL: str = os.environ.get(
        "DATABASE_URL", f"sqlite:///{(Path('instance') / 'etiquetas.sqlite').as_posix()}"
    )

    # Excel import
    EXCEL_WORKSHEET_NAME: str = os.environ.get("EXCEL_WORKSHEET_NAME", "")
    DEFAULT_EMPRESA: str = os.environ.get("DEFAULT_EMPRESA", "Bioscientia")
    FUZZY_MIN_MATCHES: int = int(os.environ.get("FUZZY_MIN_MATCHES", "2"))
    FUZZY_TOKENS: int = int(os.environ.get("FUZZY_TOKENS", "3"))

    # Remote API. The proxy URLs point to the local intermediary; the API_* ones
    # are the direct fallback.
    PROXY_SAVE_URL: str = os.environ.get("PROXY_SAVE_URL", "")
    PROXY_LIST_URL: str = os.environ.get("PROXY_LIST_URL", "")
    API_SAVE_URL: str = os.environ.get("API_SAVE_URL", "")
    API_LIST_URL: str = os.environ.get("API_LIST_URL", "")
    SYNC_TIMEOUT_SECONDS: float = float(os.environ.get("SYNC_TIMEOUT_SECONDS", "30"))

    def __post_init__(self) -> None:
        db_url_env_set = os.environ.get("DATABASE_URL") is not None

        object.__setattr__(self, "INSTANCE_DIR", Path(self.INSTANCE_DIR).resolve())

        # Without an explicit DATABASE_URL the DB always lives inside INSTANCE_DIR.
        if not db_url_env_set:
            abs_db = (self.INSTANCE_DIR / "etiquetas.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        db = str(self.DATABASE_URL or "").strip()
        if not db:
            abs_db = (self.INSTANCE_DIR / "etiquetas.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        # sqlite:///instance/x.sqlite -> absolute path under the project root
        if db.startswith("sqlite:///") and not db.startswith("sqlite:////"):
            path_part = db[len("sqlite:///") :]
            if "?" in path_part:
                path_part = path_part.split("?", 1)[0]

            p = Path(path_part)
            if path_part and not p.is_absolute():
                project_root = Path(__file__).resolve().parents[1]
                abs_path = (project_root / p).resolve()
                object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_path.as_posix()}")

    def ensure_instance(self) -> None:
        self.INSTANCE_DIR.mkdir(parents=True, exist_ok=True)

    def endpoints(self) -> ApiEndpoints:
        return ApiEndpoints(
            proxy_save_url=self.PROXY_SAVE_URL.strip(),
            proxy_list_url=self.PROXY_LIST_URL.strip(),
            save_url=self.API_SAVE_URL.strip(),
            list_url=self.API_LIST_URL.strip(),
        )
