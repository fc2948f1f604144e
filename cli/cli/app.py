"""rulecheck CLI application -- Typer-based interface.

Provides the ``check`` command, which validates data files against Lua
check scripts, and the ``test`` command, which runs the self-tests of
those scripts.  Human-readable output goes to *stderr* via Rich; the
``--json`` summary goes to *stdout* so that pipelines can compose cleanly.
"""

from __future__ import annotations

import typer
from rich.console import Console

from rule_engine.config import LogLevel, Settings, load_settings
from rule_engine.telemetry import configure_logging

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="rulecheck",
    help="rulecheck - validate JSON, YAML and TOML data with Lua check scripts",
    no_args_is_help=True,
)
console = Console(stderr=True)

# Register the check and test commands.
from cli.commands.check import check_command  # noqa: E402
from cli.commands.test import test_command  # noqa: E402

app.command(name="check")(check_command)
app.command(name="test")(test_command)

# Mutable global options populated by the Typer callback.
_json_output: bool = False
_settings: Settings | None = None


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    json_mode: bool = typer.Option(
        False,
        "--json/--no-json",
        help="Emit the run summary as JSON to stdout instead of human-readable output.",
    ),
    log_level: LogLevel | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (DEBUG | INFO | WARNING | ERROR).",
        case_sensitive=False,
    ),
) -> None:
    """Global options applied to every command."""
    global _json_output, _settings  # noqa: PLW0603
    overrides: dict[str, object] = {}
    if log_level is not None:
        overrides["log_level"] = log_level

    try:
        settings = load_settings(**overrides)
    except ValueError as exc:
        console.print(f"[red]Invalid configuration: {exc}[/red]")
        raise typer.Exit(code=3) from exc

    configure_logging(settings.effective_log_level(), structured=settings.structured_logging)
    _json_output = json_mode
    _settings = settings


def get_settings() -> Settings:
    """Return the settings loaded by the global callback."""
    if _settings is None:
        return load_settings()
    return _settings
