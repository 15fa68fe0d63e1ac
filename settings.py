import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_ENV_FILE = ".env"


class Settings(BaseSettings):
    # App Config
    app_name: str = "Vending Kiosk"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    # Security
    admin_pass: str = Field("000111", description="Shared admin PIN, ADMIN_PASS in the env file")

    # Filesystem
    data_dir: Path = Field(default=Path("assets/data"))
    env_file_path: Path = Field(default=Path(DEFAULT_ENV_FILE), description="Env file the admin PIN is written back to")

    @property
    def products_path(self) -> Path:
        return self.data_dir / "products.json"

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.json"

    model_config = {
        "env_file": DEFAULT_ENV_FILE,
        "extra": "ignore",
    }


def load_settings(**overrides) -> Settings:
    """
    Builds Settings reading the same env file the admin PIN is written back
    to, so a changed PIN survives a restart.
    """
    env_file = Path(overrides.pop("env_file_path", None) or os.environ.get("ENV_FILE_PATH", DEFAULT_ENV_FILE))
    return Settings(_env_file=env_file, env_file_path=env_file, **overrides)
