"""Environment-based configuration for the extraction workbench."""
from __future__ import annotations

import tempfile
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROMPT = "Extrae la información clave del siguiente documento según el esquema JSON proporcionado."


class Settings(BaseSettings):
    """Workbench settings, loaded from ``EXTRACTOR_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="EXTRACTOR_", env_file=".env", extra="ignore")

    # Gemini
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("EXTRACTOR_GEMINI_API_KEY", "GEMINI_API_KEY"),
    )
    gemini_model: str = "gemini-2.5-flash"
    default_prompt: str = DEFAULT_PROMPT

    # Flatten policy per tabular export format
    csv_policy: Literal["join", "expand"] = "join"
    excel_policy: Literal["join", "expand"] = "expand"
    pdf_policy: Literal["join", "expand"] = "expand"
    export_dir: str = Field(default_factory=tempfile.gettempdir)

    log_level: str = "INFO"
    server_port: int = 7860


settings = Settings()
