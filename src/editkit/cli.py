"""CLI commands for extracting, previewing and applying model-described edits."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from .context_builder import ContextBuilder
from .memory.history import DEFAULT_MAX_PAIRS, ConversationHistory
from .models import ChatCompletionsClient, LLMClient, LLMClientError, RetryPolicy
from .orchestrator import Orchestrator, preview_changes
from .parsing.extractor import extract as extract_changes
from .structured import ApplyError, ApplyResult, Change, Diff
from .tools.applier import ChangeSetApplier
from .tools.patch import PatchEngine

APP_HELP = "Turn model responses into verified file edits."
DEFAULT_CONFIG_NAME = "editkit.yaml"

DEFAULT_CONFIG_TEMPLATE: Dict[str, Any] = {
    "project": {
        "repo_root": ".",
    },
    "models": {
        "default": "gpt-4o",
        "base_url": "https://api.openai.com/v1/chat/completions",
        "timeout": 120,
        "temperature": 0.1,
        "max_tokens": 4000,
        "max_attempts": 3,
        "retry_delay": 0.5,
    },
    "apply": {
        "auto_apply": True,
        "dry_run": False,
    },
    "context": {
        "files": [],
        "max_files": 20,
    },
    "history": {
        "max_pairs": DEFAULT_MAX_PAIRS,
    },
    "logging": {
        "level": "WARNING",
    },
}

app = typer.Typer(help=APP_HELP)


def _copy_config_template() -> Dict[str, Any]:
    """Return a deep copy of the default configuration template."""
    return copy.deepcopy(DEFAULT_CONFIG_TEMPLATE)


def _write_config(config_path: Path, config_data: Dict[str, Any]) -> None:
    """Persist configuration data to disk with stable formatting."""
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config_data, handle, sort_keys=False)


def load_config(config_path: Path) -> Dict[str, Any]:
    """Load YAML configuration from disk and return it as a dictionary."""
    if not config_path.exists():
        raise typer.BadParameter(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        typer.echo(f"Failed to parse config: {error}")
        raise typer.Exit(code=1) from error

    if not isinstance(data, dict):
        typer.echo("Configuration must be a mapping at the top level.")
        raise typer.Exit(code=1)

    return data


def _resolve_repo_root(config: Dict[str, Any], config_path: Path) -> Path:
    """Resolve the repository root from configuration."""
    project_cfg = config.get("project") or {}
    repo_root_path = Path(project_cfg.get("repo_root", "."))
    if not repo_root_path.is_absolute():
        repo_root_path = (config_path.parent / repo_root_path).resolve()
    return repo_root_path


def _configure_logging(level: str | int) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _build_client(config: Dict[str, Any]) -> LLMClient:
    """Create the chat completions client described by ``models`` config."""
    models_cfg = config.get("models") or {}
    client_kwargs: Dict[str, Any] = {"model": str(models_cfg.get("default", "gpt-4o"))}

    timeout_value = models_cfg.get("timeout")
    if isinstance(timeout_value, (int, float)) and timeout_value > 0:
        client_kwargs["timeout"] = float(timeout_value)
    temperature_value = models_cfg.get("temperature")
    if isinstance(temperature_value, (int, float)):
        client_kwargs["temperature"] = float(temperature_value)
    max_tokens_value = models_cfg.get("max_tokens")
    if isinstance(max_tokens_value, int) and max_tokens_value > 0:
        client_kwargs["max_tokens"] = max_tokens_value
    base_url_value = models_cfg.get("base_url")
    if isinstance(base_url_value, str) and base_url_value.strip():
        client_kwargs["base_url"] = base_url_value.strip()
    api_key_value = models_cfg.get("api_key")
    if isinstance(api_key_value, str) and api_key_value.strip():
        client_kwargs["api_key"] = api_key_value.strip()

    policy = RetryPolicy()
    max_attempts_value = models_cfg.get("max_attempts")
    if isinstance(max_attempts_value, int) and max_attempts_value > 0:
        policy.max_attempts = max_attempts_value
    retry_delay_value = models_cfg.get("retry_delay")
    if isinstance(retry_delay_value, (int, float)) and retry_delay_value >= 0:
        policy.base_delay = float(retry_delay_value)
    client_kwargs["retry_policy"] = policy

    try:
        return ChatCompletionsClient(**client_kwargs)
    except ValueError as error:
        if "api key" in str(error).lower():
            typer.echo("No API key given. Set OPENAI_API_KEY or models.api_key in the config.")
        else:
            typer.echo(f"Failed to initialise model client: {error}")
        raise typer.Exit(code=1)


def _read_response(source: str) -> str:
    """Read a response from ``source`` (a file path, or ``-`` for stdin)."""
    if source == "-":
        return typer.get_text_stream("stdin").read()
    path = Path(source)
    if not path.is_file():
        raise typer.BadParameter(f"Response file not found: {source}", param_hint="RESPONSE")
    return path.read_text(encoding="utf-8")


def _render_change(change: Change) -> None:
    if change.is_full_write:
        typer.echo(f"- {change.file} (write {len(change.replace)} chars)")
    else:
        typer.echo(
            f"- {change.file} (replace {len(change.search)} chars with {len(change.replace)} chars)"
        )


def _render_diff(diff: Diff) -> None:
    """Print a diff with the usual add/remove/hunk colours."""
    typer.secho(f"\n=== {diff.file} ===", bold=True)
    if diff.is_new_file:
        typer.secho("New file", fg=typer.colors.GREEN)
    if not diff.has_changes:
        typer.secho("No changes", fg=typer.colors.YELLOW)
        return
    for line in diff.patch.splitlines():
        if line.startswith("+++") or line.startswith("---"):
            typer.echo(line)
        elif line.startswith("+"):
            typer.secho(line, fg=typer.colors.GREEN)
        elif line.startswith("-"):
            typer.secho(line, fg=typer.colors.RED)
        elif line.startswith("@@"):
            typer.secho(line, fg=typer.colors.CYAN)
        else:
            typer.echo(line)


def _render_errors(errors: List[ApplyError], *, heading: str) -> None:
    if not errors:
        return
    typer.secho(heading, fg=typer.colors.RED)
    for entry in errors:
        typer.echo(f"  - {entry.file}: {entry.error} [{entry.reason}]")


def _render_apply_result(result: ApplyResult) -> None:
    for path in result.applied_files:
        typer.secho(f"Applied changes to {path}", fg=typer.colors.GREEN)
    _render_errors(result.errors, heading="Failed changes:")
    typer.echo(f"Applied {len(result.applied_files)} change(s); {len(result.errors)} failed.")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Configure logging before any command runs."""
    if verbose:
        _configure_logging(logging.DEBUG)


@app.command()
def init(
    config: str = typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the configuration file to create.",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing configuration."),
) -> None:
    """Write a default configuration file."""
    config_path = Path(config)
    if config_path.exists() and not force:
        typer.echo(f"Configuration already exists at {config_path}; use --force to overwrite.")
        raise typer.Exit(code=1)
    _write_config(config_path, _copy_config_template())
    typer.echo(f"Created configuration at {config_path}.")


@app.command()
def extract(
    response: str = typer.Argument(..., help="Response file to parse, or - for stdin."),
) -> None:
    """List the changes described by a model response."""
    changes = extract_changes(_read_response(response))
    if not changes:
        typer.echo("No changes found.")
        return
    typer.echo(f"Found {len(changes)} change(s):")
    for change in changes:
        _render_change(change)


@app.command()
def preview(
    response: str = typer.Argument(..., help="Response file to parse, or - for stdin."),
    root: Path = typer.Option(Path("."), "--root", "-r", help="Directory that change paths are relative to."),
) -> None:
    """Show the diffs a response would produce without writing anything."""
    changes = extract_changes(_read_response(response))
    if not changes:
        typer.echo("No changes found.")
        return
    diffs, errors = preview_changes(PatchEngine(root), changes)
    for diff in diffs:
        _render_diff(diff)
    _render_errors(errors, heading="Changes that would fail:")


@app.command()
def apply(
    response: str = typer.Argument(..., help="Response file to parse, or - for stdin."),
    root: Path = typer.Option(Path("."), "--root", "-r", help="Directory that change paths are relative to."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show diffs without applying them."),
) -> None:
    """Apply the changes described by a model response."""
    changes = extract_changes(_read_response(response))
    if not changes:
        typer.echo("No changes found.")
        return

    engine = PatchEngine(root)
    if dry_run:
        typer.secho("Dry run - changes would be:", fg=typer.colors.YELLOW)
        diffs, errors = preview_changes(engine, changes)
        for diff in diffs:
            _render_diff(diff)
        _render_errors(errors, heading="Changes that would fail:")
        return

    result = ChangeSetApplier(engine).apply(changes)
    _render_apply_result(result)
    if not result.ok:
        raise typer.Exit(code=1)


@app.command()
def ask(
    message: str = typer.Argument(..., help="Change request for the model."),
    config: str = typer.Option(
        DEFAULT_CONFIG_NAME,
        "--config",
        "-c",
        help="Path to the configuration file.",
    ),
    files: List[str] = typer.Option(
        None,
        "--file",
        "-f",
        help="File to include in the prompt context (repeatable).",
    ),
    dry_run: Optional[bool] = typer.Option(
        None,
        "--dry-run/--no-dry-run",
        help="Show diffs without applying them.",
    ),
    auto_apply: Optional[bool] = typer.Option(
        None,
        "--auto-apply/--no-auto-apply",
        help="Apply extracted changes automatically.",
    ),
) -> None:
    """Send a change request to the model and apply its edits."""
    config_path = Path(config)
    config_data = load_config(config_path) if config_path.exists() else _copy_config_template()

    log_level = (config_data.get("logging") or {}).get("level")
    if log_level:
        _configure_logging(log_level)

    repo_root = _resolve_repo_root(config_data, config_path)
    apply_cfg = config_data.get("apply") or {}
    history_cfg = config_data.get("history") or {}
    context_cfg = config_data.get("context") or {}

    context = ContextBuilder.from_config(config_data, repo_root=repo_root)
    requested = list(files or []) or [
        entry for entry in context_cfg.get("files") or [] if isinstance(entry, str)
    ]
    context.add_files(requested or context.detect_relevant_files())

    max_pairs = history_cfg.get("max_pairs")
    history = ConversationHistory(max_pairs if isinstance(max_pairs, int) and max_pairs > 0 else DEFAULT_MAX_PAIRS)

    orchestrator = Orchestrator(
        client=_build_client(config_data),
        context=context,
        history=history,
        auto_apply=bool(apply_cfg.get("auto_apply", True)) if auto_apply is None else auto_apply,
        dry_run=bool(apply_cfg.get("dry_run", False)) if dry_run is None else dry_run,
    )

    typer.echo(f"Context: {context.summary().total_files} file(s) loaded.")
    try:
        result = orchestrator.process_request(message)
    except LLMClientError as error:
        typer.echo(f"Model request failed: {error}")
        raise typer.Exit(code=1) from error

    if not result.changes:
        typer.echo(result.response)
        typer.echo("No changes found.")
        return

    for diff in result.diffs:
        _render_diff(diff)
    _render_errors(result.preview_errors, heading="Changes that would fail:")

    if result.apply_result is None:
        typer.echo("Changes were not applied.")
        return
    _render_apply_result(result.apply_result)
    if not result.apply_result.ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
