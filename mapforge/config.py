from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'


class Settings(BaseSettings):
    # ===== Storage =====
    storage_dir: str = Field(default='.mapforge', alias='MAPFORGE_STORAGE_DIR')

    # ===== Logging =====
    log_level: str = Field(default='INFO', alias='MAPFORGE_LOG_LEVEL')

    # ===== Server =====
    server_name: Optional[str] = Field(default=None, alias='MAPFORGE_SERVER_NAME')
    server_port: Optional[int] = Field(default=None, alias='MAPFORGE_SERVER_PORT')

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: str = 'INFO') -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
