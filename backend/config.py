import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

BACKEND_DIR = Path(__file__).parent


def _origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = "super-secret-key"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 300
    data_dir: Path = BACKEND_DIR / "data"
    observer_queue_size: int = 100
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    frontend_dir: Optional[Path] = None
    log_level: str = "INFO"
    port: int = 5000

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        frontend_dir = os.getenv("FRONTEND_DIR", "").strip()
        return cls(
            jwt_secret=os.getenv("JWT_SECRET", "super-secret-key").strip(),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256").strip(),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "300")),
            data_dir=Path(os.getenv("DATA_DIR", str(BACKEND_DIR / "data"))),
            observer_queue_size=int(os.getenv("OBSERVER_QUEUE_SIZE", "100")),
            cors_origins=_origins(os.getenv("CORS_ORIGINS", "*")),
            admin_email=os.getenv("ADMIN_EMAIL") or None,
            admin_password=os.getenv("ADMIN_PASSWORD") or None,
            frontend_dir=Path(frontend_dir) if frontend_dir else None,
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
            port=int(os.getenv("PORT", "5000")),
        )
