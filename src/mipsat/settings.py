# mipsat/settings.py
"""
Process-wide settings, resolved once at import time.

params_encoding is the capability flag that selects how opaque
solver_specific_parameters blobs are decoded: "binary" (serialized
SatParameters bytes) or "text" (protobuf text format).
"""
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    params_encoding: Literal["binary", "text"] = "text"
    default_engine: str = "cp_sat"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="MIPSAT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
