"""
Configuration for capnpgen build glue.

Settings only affect writing and compiling schema files; the schema
compiler core never reads them. All settings can be given as environment
variables with the CAPNPGEN_ prefix, e.g. CAPNPGEN_OUTPUT_DIR=build/schema.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """capnpgen configuration."""

    # Where completed .capnp files are written
    output_dir: Path = Field(default=Path("."))

    # External schema compiler
    capnp_bin: str = Field(default="capnp")
    languages: list[str] = Field(
        default_factory=list,
        description="Plugins passed to `capnp compile -o`, e.g. c++ or rust",
    )
    src_prefix: Optional[Path] = Field(default=None)

    log_level: str = Field(default="INFO")

    model_config = {"env_prefix": "CAPNPGEN_"}


@lru_cache
def get_settings() -> Settings:
    """Get settings loaded from the environment (cached)."""
    return Settings()
