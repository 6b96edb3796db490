import os
import tempfile
from dataclasses import dataclass

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_PATH = os.path.join(os.path.dirname(BASE_DIR), ".env")
DEFAULT_DATA_DIR = os.path.join(os.path.dirname(BASE_DIR), "data")


def load_env(path: str = ENV_PATH) -> None:
    """Load key=value pairs from a .env file into os.environ if not already set."""
    if not os.path.exists(path):
        return
    with open(path, "r", encoding="utf-8") as file:
        for line in file:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip())


def default_data_dir() -> str:
    # Serverless deployments only get a writable temp directory
    if os.environ.get("VERCEL"):
        return os.path.join(tempfile.gettempdir(), "pitch-booking")
    return DEFAULT_DATA_DIR


@dataclass
class Settings:
    store_backend: str
    data_dir: str
    db_host: str
    db_port: int
    db_name: str
    db_user: str
    db_password: str
    server_port: int
    cors_origin: str = "*"
    log_level: str = "INFO"

    @property
    def data_path(self) -> str:
        return os.path.join(self.data_dir, "database.json")

    @classmethod
    def from_env(cls) -> "Settings":
        load_env()
        return cls(
            store_backend=os.environ.get("STORE_BACKEND", "json").lower(),
            data_dir=os.environ.get("DATA_DIR") or default_data_dir(),
            db_host=os.environ.get("DB_HOST", "localhost"),
            db_port=int(os.environ.get("DB_PORT", "5432")),
            db_name=os.environ.get("DB_NAME", "pitch_booking"),
            db_user=os.environ.get("DB_USER", "postgres"),
            db_password=os.environ.get("DB_PASSWORD", "postgres"),
            server_port=int(os.environ.get("PORT") or os.environ.get("SERVER_PORT", "3001")),
            cors_origin=os.environ.get("CORS_ORIGIN", "*"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
