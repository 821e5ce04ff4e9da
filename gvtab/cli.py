"""CLI interface for gvtab using Click."""

import logging

import click

from gvtab import __version__
from gvtab.config import ConfigFileError, build_config, load_env_config, load_file_config
from gvtab.editor import LaunchError
from gvtab.pipeline import open_paths
from gvtab.resolver import ResolutionError
from gvtab.types import ExitCode


class ResolutionFailed(click.ClickException):
    """The paths could not be turned into files to open."""

    exit_code = ExitCode.RESOLUTION_FAILURE


class DispatchFailed(click.ClickException):
    """Neither an existing server nor a new instance took the files."""

    exit_code = ExitCode.DISPATCH_FAILURE


class GvtabCommand(click.Command):
    """Command whose usage errors exit with EX_USAGE instead of click's 2."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as exc:
            exc.exit_code = ExitCode.USAGE
            raise


def _collect_explicit_args(ctx: click.Context, **kwargs: object) -> dict[str, object]:
    """Return only the kwargs whose values were explicitly set on the command line."""
    explicit: dict[str, object] = {}
    for param_name, value in kwargs.items():
        source = ctx.get_parameter_source(param_name)
        if source is click.core.ParameterSource.COMMANDLINE:
            explicit[param_name] = value
    return explicit


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(name)s: %(levelname)s: %(message)s")


@click.command(cls=GvtabCommand)
@click.version_option(version=__version__, prog_name="gvtab")
@click.argument("paths", nargs=-1, type=click.Path())
@click.option(
    "--max-files",
    type=click.IntRange(min=0),
    help="Most files a directory argument may expand to.  [default: 30]",
)
@click.option(
    "--max-size",
    type=click.IntRange(min=0),
    help="Most bytes a directory argument may expand to.  [default: 307200]",
)
@click.option(
    "--max-depth",
    type=click.IntRange(min=0),
    help="Deepest directory nesting allowed during expansion.  [default: 8]",
)
@click.option("--editor", help="Editor executable.  [default: gvim]")
@click.option("--server-name", help="Name of the reusable server.  [default: GVIM]")
@click.option(
    "--probe-timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds to wait when looking for a server.  [default: 0.5]",
)
@click.option(
    "--send-timeout",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds to wait for a server to accept the files.  [default: 2.0]",
)
@click.option("-v", "--verbose", count=True, help="Log progress to stderr (repeatable).")
@click.pass_context
def main(
    ctx,
    paths,
    max_files,
    max_size,
    max_depth,
    editor,
    server_name,
    probe_timeout,
    send_timeout,
    verbose,
):
    """Open PATHS in a shared gvim instance.

    Pass one or more files to open them in tabs of the running server, or
    start one if none is up. A single DIRECTORY is expanded recursively,
    within the configured limits.

    Exit status: 0 on success, 1 when the paths cannot be resolved, 2 when
    no editor instance took the files, 64 on a command-line usage error.
    """
    _configure_logging(verbose)

    cli_overrides = _collect_explicit_args(
        ctx,
        max_files=max_files,
        max_size=max_size,
        max_depth=max_depth,
        editor=editor,
        server_name=server_name,
        probe_timeout=probe_timeout,
        send_timeout=send_timeout,
    )

    try:
        file_config = load_file_config()
        env_config = load_env_config()
    except ConfigFileError as exc:
        raise click.ClickException(str(exc)) from None

    config = build_config(cli_overrides, file_config, env_config)
    editor_override = (ctx.obj or {}).get("editor")

    try:
        open_paths(config, tuple(paths), editor=editor_override)
    except ResolutionError as exc:
        raise ResolutionFailed(str(exc)) from None
    except LaunchError as exc:
        raise DispatchFailed(str(exc)) from None
    raise SystemExit(ExitCode.OK)
