from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Final

import typer

from wcnt.diagnostics import DiagnosticEvent, build_diagnostic_event
from wcnt.engine import EXIT_ERRORS, RunConfig, RunConfigError, RunResult, run_wcnt
from wcnt.rules import RuleSetError

app = typer.Typer(help="Count warnings in log files and check them against Limits.toml files")

_DISTRIBUTION: Final[str] = "wcnt"
_LOG_FORMAT: Final[str] = "%(levelname)s %(name)s: %(message)s"
_ONLY_OPTION = typer.Option(
    None,
    "--only",
    help="Repeatable kind selector; other kinds are neither counted nor updated",
)


def _version_callback(value: bool) -> None:
    if not value:
        return
    try:
        typer.echo(f"wcnt {version(_DISTRIBUTION)}")
    except PackageNotFoundError:
        typer.echo("wcnt (not installed)")
    raise typer.Exit()


def _configure_logging(verbosity: int) -> None:
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=_LOG_FORMAT, stream=sys.stderr, force=True)


@app.command()
def check(
    start: Path = typer.Option(
        Path("."),
        "--start",
        help="Directory to search for log files and Limits.toml files",
        show_default=True,
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Settings file; defaults to Wcnt.toml inside the start directory",
    ),
    only: list[str] | None = _ONLY_OPTION,
    update_limits: bool = typer.Option(
        False,
        "--update-limits",
        help="Lower the limits of every kind without violations to the counts found",
    ),
    prune: bool = typer.Option(
        False,
        "--prune",
        help="Collapse per-category limits that all equal their `_` entry (needs --update-limits)",
    ),
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Repeat for more output"),
    jobs: int | None = typer.Option(None, "--jobs", "-j", min=1, help="Number of scan workers"),
    show_version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the version and exit",
    ),
) -> None:
    """Count warnings below the start directory and report limit violations."""
    del show_version
    if prune and not update_limits:
        raise typer.BadParameter("--prune requires --update-limits", param_hint="--prune")
    _configure_logging(verbose)

    try:
        run_config = RunConfig(
            start_dir=start,
            config_file=config,
            only_kinds=tuple(only) if only else None,
            update_limits=update_limits,
            prune=prune,
            verbosity=verbose,
            max_workers=jobs,
        )
        result = run_wcnt(run_config)
    except (RuleSetError, RunConfigError) as exc:
        _print_diagnostics((_config_failure_diagnostic(exc),))
        raise typer.Exit(code=EXIT_ERRORS) from exc
    except Exception as exc:  # pragma: no cover - defensive boundary path
        _print_diagnostics((_internal_failure_diagnostic(exc),))
        raise typer.Exit(code=EXIT_ERRORS) from exc

    _print_verdicts(result)
    _print_diagnostics(result.diagnostics)
    if result.violation_count:
        typer.echo(
            f"Found {result.violation_count} violations against specified limits.", err=True
        )
    for update in result.updates:
        typer.echo(f"Updating `{update.path}`")
    raise typer.Exit(code=result.exit_code)


def _config_failure_diagnostic(exc: RuleSetError | RunConfigError) -> DiagnosticEvent:
    detail = exc.detail
    source = getattr(detail, "source", None)
    return build_diagnostic_event(
        code="E_CLI_CONFIG_INVALID",
        message=detail.message,
        path=source if source is not None else "<cli>",
        witness={
            "error_code": detail.code,
            "witness": list(detail.witness) if detail.witness is not None else None,
        },
    )


def _internal_failure_diagnostic(exc: Exception) -> DiagnosticEvent:
    return build_diagnostic_event(
        code="E_CLI_INTERNAL",
        message=_exception_message(exc),
        path="<cli>",
        witness={"error_type": type(exc).__name__},
    )


def _exception_message(exc: Exception) -> str:
    message = str(exc).strip()
    if message:
        return message
    return type(exc).__name__


def _print_verdicts(result: RunResult) -> None:
    interner = result.interner
    very_verbose = result.config.is_very_verbose
    if very_verbose:
        for verdict in result.evaluation.non_violations:
            typer.echo(verdict.display(interner))
    for verdict in result.evaluation.violations:
        typer.echo(verdict.display(interner))
        if very_verbose:
            for identity in sorted(verdict.warnings, key=lambda item: item.sort_key(interner)):
                typer.echo(f"  => {identity.display(interner)}")


def _print_diagnostics(diagnostics: Sequence[DiagnosticEvent]) -> None:
    for event in diagnostics:
        location = f" path={event.path}" if event.path is not None else ""
        kind = f" kind={event.kind}" if event.kind is not None else ""
        typer.echo(
            "DIAG"
            f" severity={event.severity}"
            f" stage={event.stage}"
            f" code={event.code}"
            f"{location}{kind}"
            f" message={event.message}"
        )


def main() -> None:
    app()
