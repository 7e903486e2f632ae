from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path("data")
    admin_nick: str = "gluon"
    default_time_zone: str = "Europe/Berlin"
    delimiter: str = ","
    table_suffix: str = ".csv"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "PADDOCK_"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
