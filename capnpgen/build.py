"""
Build glue: write completed schema files and run the capnp compiler.

Example:
    >>> registry = get_registry()
    >>> path = build_file(registry, "demo.capnp", Settings(languages=["c++"]), compile=True)
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .config import Settings, get_settings
from .errors import SchemaCompileError
from .schema.registry import SchemaFileRegistry

logger = logging.getLogger(__name__)


def write_schema(path: str | Path, text: str) -> Path:
    """Write schema text to path, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info(f"Wrote schema {path} ({len(text)} bytes)")
    return path


def compile_command(path: Path, language: str, settings: Settings) -> list[str]:
    """Build the `capnp compile` command line for one output plugin."""
    output_dir = settings.output_dir
    src_prefix = settings.src_prefix if settings.src_prefix is not None else path.parent
    return [
        settings.capnp_bin,
        "compile",
        f"-o{language}:{output_dir}",
        f"--src-prefix={src_prefix}",
        str(path),
    ]


def compile_schema(path: str | Path, settings: Optional[Settings] = None) -> None:
    """Run `capnp compile` on a written schema once per configured language.

    Raises:
        SchemaCompileError: If the compiler is missing or rejects the file
    """
    settings = settings or get_settings()
    path = Path(path)
    if not settings.languages:
        logger.warning(f"No output languages configured; skipping compile of {path}")
        return

    for language in settings.languages:
        cmd = compile_command(path, language, settings)
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise SchemaCompileError(
                f"Schema compiler '{settings.capnp_bin}' not found", path=str(path)
            ) from e
        if result.returncode != 0:
            raise SchemaCompileError(
                f"capnp compile failed for {path} ({language}): {result.stderr.strip()}",
                path=str(path),
                stderr=result.stderr,
            )
        logger.info(f"Compiled {path} with -o{language}")


def build_file(
    registry: SchemaFileRegistry,
    name: str,
    settings: Optional[Settings] = None,
    compile: bool = False,
) -> Path:
    """Complete a registered file, write it under output_dir, optionally compile.

    Returns:
        Path of the written schema file
    """
    settings = settings or get_settings()
    text = registry.complete(name)
    path = write_schema(Path(settings.output_dir) / name, text)
    if compile:
        compile_schema(path, settings)
    return path
