"""Click CLI entry point with lazy-loaded subcommands."""

import logging
import os
import sys

# Fix Unicode output on Windows consoles (cp1253, cp1252, etc.)
if sys.platform == "win32" and not os.environ.get("PYTHONIOENCODING"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import click

from idxguard.config import Settings
from idxguard.exit_codes import check_runtime

# Lazy-loading command group: imports command modules only when invoked.
_COMMANDS = {
    "check":  ("idxguard.commands.cmd_check",  "check"),
    "audit":  ("idxguard.commands.cmd_audit",  "audit"),
    "doctor": ("idxguard.commands.cmd_doctor", "doctor"),
}


class LazyGroup(click.Group):
    """A Click group that lazy-loads command modules on first access."""

    def list_commands(self, ctx):
        return sorted(_COMMANDS.keys())

    def get_command(self, ctx, cmd_name):
        if cmd_name not in _COMMANDS:
            return None
        module_path, attr_name = _COMMANDS[cmd_name]
        import importlib
        mod = importlib.import_module(module_path)
        return getattr(mod, attr_name)


class _ClickEchoHandler(logging.Handler):
    """Send log records to stderr through click so CliRunner captures them."""

    def emit(self, record):
        try:
            click.echo(self.format(record), err=True)
        except Exception:
            self.handleError(record)


def configure_logging(debug: bool) -> None:
    """Install the single ``idxguard`` stderr handler (``DEBUG: ...`` lines)."""
    logger = logging.getLogger("idxguard")
    for handler in list(logger.handlers):
        if isinstance(handler, _ClickEchoHandler):
            logger.removeHandler(handler)
    handler = _ClickEchoHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)


@click.group(cls=LazyGroup)
@click.version_option(package_name="idxguard")
@click.option('--json', 'json_mode', is_flag=True, help='Output in JSON format')
@click.option('--debug', is_flag=True, default=False, help='Trace parsing decisions to stderr (env: DEBUG=1)')
@click.pass_context
def cli(ctx, json_mode, debug):
    """idxguard: find foreign key columns that lack an index."""
    check_runtime()
    settings = Settings.from_env().override(debug=debug or None)
    configure_logging(settings.debug)
    ctx.ensure_object(dict)
    ctx.obj['json'] = json_mode
    ctx.obj['settings'] = settings
