"""Typer application and CLI entry point for specsmith.

Commands:

* ``build`` -- write one OpenAPI document per version;
* ``versions`` -- list the versions found in the spec tree;
* ``show`` -- print a resolved operation (or its test examples);
* ``validate`` -- check each version's document against the OpenAPI 3.0
  meta-schema.

Every command reads its settings through
:func:`~specsmith.config.resolve_settings`, so ``--root``/``--config`` on the
root callback and the ``SPECSMITH_*`` environment variables apply everywhere.
Domain errors are reported on stderr and mapped to the exit codes in
:mod:`specsmith.exit_codes`.
"""

from __future__ import annotations

import logging
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import typer

from specsmith import __version__
from specsmith.exceptions import SchemaValidationError, SpecsmithError
from specsmith.exit_codes import EXIT_GENERIC_FAILURE, EXIT_SUCCESS
from specsmith.models import DRAFT, DocumentFormat, Settings

app = typer.Typer(
    name="specsmith",
    help="Compile a tree of YAML fragments into versioned OpenAPI documents.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specsmith {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    root: Optional[str] = typer.Option(
        None, "--root", "-r", help="Spec tree root (default: spec/api)."
    ),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Project config file (default: ./specsmith.json)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~specsmith.output.OutputManager`, configures
    logging and stores the settings overrides in ``ctx.obj``.
    """
    from specsmith.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Report a :class:`SpecsmithError` on stderr and exit with its code."""
    from specsmith.output import error

    try:
        yield
    except SpecsmithError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _settings(ctx: typer.Context, **overrides: Any) -> Settings:
    from specsmith.config import resolve_settings

    obj = ctx.obj or {}
    return resolve_settings(
        cli_root=obj.get("root"), config_path=obj.get("config"), **overrides
    )


def _index(settings: Settings):
    from specsmith.versions import VersionIndex, set_index

    index = VersionIndex.from_settings(settings)
    set_index(index)
    return index


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command()
def build(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Directory for the generated documents."
    ),
    fmt: Optional[DocumentFormat] = typer.Option(
        None, "--format", "-f", help="Document format.", case_sensitive=False
    ),
    api_versions: Optional[list[str]] = typer.Option(
        None, "--api-version", help="Version to build (repeatable; default: all)."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Fail instead of writing an invalid document."
    ),
) -> None:
    """Write ``<version>.json`` (or ``.yaml``) for each version."""
    from specsmith.output import info, success
    from specsmith.writer import write_documents

    with _reporting_errors():
        settings = _settings(
            ctx,
            cli_output_dir=output,
            cli_format=fmt.value if fmt is not None else None,
        )
        index = _index(settings)
        info(f"Compiling {settings.root} into {settings.output_dir}")
        written = write_documents(
            index,
            settings.output_dir,
            fmt=settings.output_format,
            versions=api_versions or None,
            legacy_prefixes=settings.legacy_prefixes,
            exclusions=settings.validation_exclusions,
            strict=strict,
        )
    for path in written:
        success(f"Wrote {path}")


@app.command()
def versions(ctx: typer.Context) -> None:
    """List every version in the spec tree, oldest first."""
    from specsmith.exceptions import EmptyVersionSetError
    from specsmith.output import print_table

    with _reporting_errors():
        index = _index(_settings(ctx))
        all_versions = index.versions()
        try:
            latest = index.latest()
        except EmptyVersionSetError:
            latest = None

    rows = [[v, "yes" if v == latest else ""] for v in all_versions]
    print_table(["version", "latest"], rows, title="API versions")


@app.command()
def show(
    ctx: typer.Context,
    operation: str = typer.Argument(
        ..., help="Operation, e.g. 'GET /widgets' or '/api/widgets/get'."
    ),
    api_version: Optional[str] = typer.Option(
        None, "--api-version", help="Version to resolve (default: draft)."
    ),
    examples: bool = typer.Option(
        False, "--examples", help="Print the test examples instead of the operation."
    ),
) -> None:
    """Print the Operation Object an operation resolves to for a version."""
    from specsmith.output import print_document
    from specsmith.template import OperationTemplate

    with _reporting_errors():
        settings = _settings(ctx)
        index = _index(settings)
        template = OperationTemplate.find(
            operation,
            api_version,
            index=index,
            legacy_prefixes=settings.legacy_prefixes,
        )
        if examples:
            data = template.examples()
        else:
            components = index.static_docs_for(api_version or DRAFT).get("components")
            data = template.to_operation(components)
    print_document(data)


@app.command()
def validate(
    ctx: typer.Context,
    api_versions: Optional[list[str]] = typer.Option(
        None, "--api-version", help="Version to validate (repeatable; default: all)."
    ),
) -> None:
    """Validate each version's document against the OpenAPI 3.0 meta-schema."""
    from specsmith.compiler.validation import validate_document
    from specsmith.output import success, warning
    from specsmith.writer import build_document

    with _reporting_errors():
        settings = _settings(ctx)
        index = _index(settings)
        violations: list[str] = []
        for version in api_versions or index.versions():
            document = build_document(index, version, legacy_prefixes=settings.legacy_prefixes)
            found = validate_document(document, settings.validation_exclusions)
            for violation in found:
                warning(f"{version}: {violation}")
            violations.extend(f"{version}: {v}" for v in found)
            if not found:
                success(f"{version}: valid")
        if violations:
            raise SchemaValidationError(violations)


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """Console-script entry point."""
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except SpecsmithError as exc:
        from specsmith.output import error

        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        from specsmith.output import error

        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
    sys.exit(EXIT_SUCCESS)
