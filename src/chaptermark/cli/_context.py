"""Runtime context for CLI commands.

Initialized once in the main callback and available to commands via ctx.obj.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from chaptermark.env_settings import EnvSettings


@dataclass
class RuntimeContext:
    """Typed runtime context available to all commands via ctx.obj.

    Example:
        @app.command()
        def my_command(ctx: typer.Context) -> None:
            runtime: RuntimeContext = ctx.obj
            convert(..., settings=runtime.settings)
    """

    settings: EnvSettings
    verbose: bool = False
    log_file: Path | None = None
