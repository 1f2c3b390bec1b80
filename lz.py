#!/usr/bin/env python3
"""
lz - Quick command aliases with interactive bindings
"""
import sys
from typing import List, Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.traceback import install

from config import Config
from store import CommandStore, SavedCommand, parse_tags
from history import CommandHistory, format_relative_time
from shell import AliasWriter, init_shell_rc, detect_shell
from executor import ShellExecutor
from bindings import parse, validate
from resolver import BindingResolver
from builder import CommandBuilder
from picker import (
    Terminal, Picker, PickerItem, Select, SelectWithExtra, Delete, Modify,
    prompt_input, truncate,
)
from interactive_helper import highlight_bindings
from logger import setup_logger
from exceptions import LaziestError, ConfigurationError, ParseError, ValidationError, StoreError
from constants import APP_NAME, APP_VERSION, APP_DESCRIPTION, RUN_SEPARATOR, COMMAND_ALIASES

# Install rich traceback handler
install(show_locals=True)

console = Console()
err_console = Console(stderr=True)
logger = setup_logger(APP_NAME)

LAST_COMMAND_WIDTH = 50


def _error(message: str):
    err_console.print(f"[red]Error: {escape(message)}[/red]")


def _warn(message: str):
    err_console.print(f"[yellow]Warning: {escape(message)}[/yellow]")


def _fail(message: str):
    _error(message)
    sys.exit(1)


def split_extra_args(args) -> Tuple[List[str], str]:
    """Split run arguments at --extra; everything after it is appended verbatim"""
    args = list(args)
    if '--extra' in args:
        index = args.index('--extra')
        return args[:index], " ".join(args[index + 1:])
    return args, ""


def _save_and_sync(ctx):
    """Persist the store and regenerate the alias file"""
    store = ctx.obj['store']
    store.save()
    try:
        ctx.obj['aliases'].update_aliases(store.commands)
    except StoreError as e:
        _warn(str(e))


def _history(ctx) -> Optional[CommandHistory]:
    config = ctx.obj['config']
    if not config.get('history.enabled', True):
        return None
    if 'history' not in ctx.obj:
        ctx.obj['history'] = CommandHistory(
            str(config.history_path),
            max_entries=config.get('history.max_entries'),
        )
    return ctx.obj['history']


def _record(ctx, command: str, name: str):
    history = _history(ctx)
    if history is None:
        return
    try:
        history.add_entry(command, name)
    except StoreError as e:
        _warn(str(e))


def _show_template(command: str):
    try:
        bindings = parse(command)
    except ParseError:
        bindings = []
    console.print(Text("  ") + highlight_bindings(command, bindings))


def _print_empty_store():
    console.print("No commands saved.")
    console.print()
    console.print("Get started:")
    console.print("  1. Run 'lz init' to set up shell integration")
    console.print("  2. Add commands with 'lz add \"<command>\"'")


def _apply_modify(ctx, outcome: Modify):
    store = ctx.obj['store']
    try:
        parse(outcome.new_command)
        store.update(outcome.name, outcome.new_name, outcome.new_command, parse_tags(outcome.new_tags))
    except (ParseError, ValidationError) as e:
        _error(str(e))
        return
    _save_and_sync(ctx)
    if outcome.new_name != outcome.name:
        console.print(f"Modified '{escape(outcome.name)}' -> '{escape(outcome.new_name)}'")
    else:
        console.print(f"Modified '{escape(outcome.new_name)}'")


def pick_saved_command(ctx, tags: List[str]) -> Optional[Tuple[SavedCommand, str]]:
    """
    Let the user pick a saved command.

    Delete and modify are handled in place and the picker comes back.
    Returns the chosen command with any extra arguments, or None.
    """
    store = ctx.obj['store']
    config = ctx.obj['config']
    prompt = f"Select command [{', '.join(tags)}]:" if tags else "Select command:"

    while True:
        commands = store.by_tags(tags) if tags else store.commands
        if not commands:
            if tags:
                console.print(f"No commands found with tag(s): {escape(', '.join(tags))}")
            else:
                console.print("No commands left.")
            return None

        items = [PickerItem(c.name, c.command, tuple(c.tags)) for c in commands]
        outcome = Picker(
            items, prompt, ctx.obj['terminal'],
            allow_delete=True, allow_modify=True, allow_extra=True,
            min_command_width=config.get('picker.min_command_width'),
        ).run()

        if isinstance(outcome, Delete):
            store.remove(outcome.name)
            _save_and_sync(ctx)
            console.print(f"Deleted '{escape(outcome.name)}'")
            continue
        if isinstance(outcome, Modify):
            _apply_modify(ctx, outcome)
            continue
        if isinstance(outcome, SelectWithExtra):
            return store.get(outcome.value), outcome.extra
        if isinstance(outcome, Select):
            return store.get(outcome.value), ""
        return None


def run_saved_command(ctx, saved: SavedCommand, extra: str = "", copy: bool = False):
    """Resolve bindings, then execute (or copy) and exit with the command's status"""
    resolver = BindingResolver(ctx.obj['terminal'])
    final_command = resolver.resolve_command(saved.command)
    if final_command is None:
        logger.info("Resolution cancelled by user")
        sys.exit(0)

    if extra:
        final_command = f"{final_command} {extra}"

    executor = ctx.obj['executor']
    if copy:
        executor.copy_command(final_command)
        return

    _record(ctx, final_command, saved.name)
    sys.exit(executor.run(final_command))


class AliasedGroup(click.Group):
    """Accepts short names such as 'ls' or 'r' for subcommands"""

    def get_command(self, ctx, cmd_name):
        return super().get_command(ctx, COMMAND_ALIASES.get(cmd_name, cmd_name))


@click.group(cls=AliasedGroup, invoke_without_command=True)
@click.version_option(APP_VERSION, '--version', prog_name='lz', message='%(prog)s version %(version)s')
@click.option('--config', '-c', help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, config, verbose, debug):
    """lz - Quick command aliases with interactive bindings"""

    # Ensure that ctx.obj exists and is a dict
    ctx.ensure_object(dict)

    # Setup logging level based on options
    log_level = 'DEBUG' if debug else ('INFO' if verbose else 'WARNING')
    setup_logger(APP_NAME, level=log_level)

    # Load configuration
    try:
        cfg = Config(config)
        if verbose:
            cfg.update_from_cli(**{'output.verbose': True})

        ctx.obj['config'] = cfg
        ctx.obj['debug'] = debug

        # Initialize components
        if 'terminal' not in ctx.obj:
            ctx.obj['terminal'] = Terminal(fallback_width=cfg.get('picker.fallback_width'))
        if 'executor' not in ctx.obj:
            ctx.obj['executor'] = ShellExecutor(console, cfg.get('shell.interpreter') or None)
        if 'store' not in ctx.obj:
            ctx.obj['store'] = CommandStore(str(cfg.commands_path))
        if 'aliases' not in ctx.obj:
            ctx.obj['aliases'] = AliasWriter(cfg.alias_path)

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        err_console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        sys.exit(1)
    except StoreError as e:
        logger.error(f"Store error: {e}")
        _fail(str(e))

    # If no subcommand, show the interactive list
    if ctx.invoked_subcommand is None:
        ctx.invoke(list_commands)


@cli.command('list')
@click.option('--tags', '-t', default='', help='Only commands with any of these comma-separated tags')
@click.pass_context
def list_commands(ctx, tags):
    """Interactive command picker"""
    store = ctx.obj['store']
    if not store.commands:
        _print_empty_store()
        return

    try:
        picked = pick_saved_command(ctx, parse_tags(tags or ''))
        if picked is None:
            return
        saved, extra = picked
        run_saved_command(ctx, saved, extra)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        console.print("\n[yellow]Cancelled[/yellow]")
    except LaziestError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        _fail(str(e))


@cli.command(context_settings={'ignore_unknown_options': True, 'allow_interspersed_args': False})
@click.option('--tags', '-t', default='', help='Pick among commands with these comma-separated tags')
@click.option('--copy', is_flag=True, help='Copy the resolved command instead of running it')
@click.argument('args', nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx, tags, copy, args):
    """Run a saved command: lz run NAME [--extra ARGS...] or lz run -t TAG"""
    store = ctx.obj['store']
    remaining, extra = split_extra_args(args)
    tag_list = parse_tags(tags or '')

    if not store.commands:
        _fail("No commands saved. Use 'lz add \"<command>\"' to add one.")

    try:
        if tag_list:
            matches = store.by_tags(tag_list)
            if not matches:
                _fail(f"No commands found with tag(s): {', '.join(tag_list)}")
            if len(matches) == 1:
                saved = matches[0]
            else:
                picked = pick_saved_command(ctx, tag_list)
                if picked is None:
                    sys.exit(0)
                saved, picked_extra = picked
                extra = " ".join(part for part in (extra, picked_extra) if part)
        elif remaining:
            if len(remaining) > 1:
                _fail(f"unexpected arguments: {' '.join(remaining[1:])} (use --extra to pass them on)")
            saved = store.get(remaining[0])
            if saved is None:
                _fail(f"command '{remaining[0]}' not found")
        else:
            _fail("name or -t <tag> required\nUsage: lz run <name>\n   or: lz run -t <tag>")

        run_saved_command(ctx, saved, extra, copy=copy)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        console.print("\n[yellow]Cancelled[/yellow]")
    except LaziestError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        _fail(str(e))


@cli.command()
@click.option('--clear', is_flag=True, help='Forget all recent commands')
@click.pass_context
def last(ctx, clear):
    """Pick and rerun a recent command"""
    history = _history(ctx)
    if clear:
        try:
            removed = history.clear() if history else 0
        except StoreError as e:
            _fail(str(e))
        console.print(f"Cleared {removed} recent commands.")
        return

    entries = history.get_recent() if history else []
    if not entries:
        console.print("No recent commands.")
        console.print("Run commands with 'lz' or 'lz run <name>' first.")
        return

    displays = [
        f"{truncate(e.command, LAST_COMMAND_WIDTH):<{LAST_COMMAND_WIDTH}}  {format_relative_time(e.ran_at)}"
        for e in entries
    ]
    outcome = Picker(displays, "Recent commands:", ctx.obj['terminal']).run()
    if not isinstance(outcome, Select):
        return

    entry = entries[outcome.index]
    try:
        _record(ctx, entry.command, entry.name)
        sys.exit(ctx.obj['executor'].run(entry.command))
    except LaziestError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        _fail(str(e))


@cli.command(context_settings={'ignore_unknown_options': True})
@click.argument('example', nargs=-1, required=True, type=click.UNPROCESSED)
@click.pass_context
def add(ctx, example):
    """Build a command interactively from an example"""
    store = ctx.obj['store']
    terminal = ctx.obj['terminal']
    example_command = " ".join(example)

    try:
        result = CommandBuilder(terminal, console).build(example_command)
        if result.cancelled:
            console.print("Cancelled.")
            return

        console.print(RUN_SEPARATOR)
        console.print("[bold]Generated command:[/bold]")
        _show_template(result.command)
        console.print()

        for binding in parse(result.command):
            for warning in validate(binding):
                _warn(warning)

        name = prompt_input("Command name: ", terminal=terminal).strip()
        if not name:
            console.print("Cancelled.")
            return
        tags = parse_tags(prompt_input("Tags (comma-separated, optional): ", terminal=terminal))

        store.add(name, result.command, tags)
        _save_and_sync(ctx)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        console.print("\n[yellow]Cancelled[/yellow]")
        return
    except LaziestError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        _fail(str(e))

    console.print(f"\nAdded '{escape(name)}': {escape(result.command)}", highlight=False)
    if tags:
        console.print(f"Tags: {escape(', '.join(tags))}")


@cli.command('add-raw', context_settings={'ignore_unknown_options': True})
@click.argument('name')
@click.argument('command', nargs=-1, type=click.UNPROCESSED)
@click.option('--tags', '-t', default='', help='Comma-separated tags')
@click.pass_context
def add_raw(ctx, name, command, tags):
    """Add a command written with binding syntax (or piped on stdin)"""
    store = ctx.obj['store']

    if command:
        command_text = " ".join(command)
    else:
        stdin = click.get_text_stream('stdin')
        if stdin.isatty():
            _fail("no command provided\nUsage: lz add-raw <name> <command> [-t <tags>]\n"
                  "   or: echo 'command' | lz add-raw <name> [-t <tags>]")
        command_text = stdin.read()

    command_text = command_text.strip()
    if not command_text:
        _fail("command cannot be empty")

    tag_list = parse_tags(tags or '')
    try:
        for binding in parse(command_text):
            for warning in validate(binding):
                _warn(warning)
        store.add(name, command_text, tag_list)
        _save_and_sync(ctx)
    except LaziestError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        _fail(str(e))

    console.print(f"Added '{escape(name)}': {escape(command_text)}", highlight=False)
    if tag_list:
        console.print(f"Tags: {escape(', '.join(tag_list))}")


@cli.command()
@click.argument('name')
@click.pass_context
def remove(ctx, name):
    """Remove a saved command"""
    try:
        ctx.obj['store'].remove(name)
        _save_and_sync(ctx)
    except LaziestError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        _fail(str(e))
    console.print(f"Removed '{escape(name)}'")


@cli.command()
@click.pass_context
def tags(ctx):
    """List all tags with command counts"""
    counts = ctx.obj['store'].tag_counts()
    if not counts:
        console.print("No tags defined. Add tags with: lz add-raw <name> <cmd> -t <tags>")
        return

    console.print("Tags:")
    console.print()
    for tag in sorted(counts):
        console.print(f"  {tag:<20} ({counts[tag]} commands)", highlight=False)


@cli.command()
@click.pass_context
def init(ctx):
    """One-time setup: add the alias source line to your shell rc files"""
    config = ctx.obj['config']
    try:
        updated, failures = init_shell_rc(alias_path=config.alias_path)
    except StoreError as e:
        _fail(str(e))
    for failure in failures:
        _warn(f"Could not update rc file for {failure}")

    try:
        ctx.obj['aliases'].update_aliases(ctx.obj['store'].commands)
    except StoreError as e:
        _warn(str(e))

    rc_file = f"~/.{detect_shell()}rc"
    if not updated:
        if failures:
            sys.exit(1)
        console.print("lz is already configured in your shell rc files.")
        console.print(f"If aliases aren't working, try: source {rc_file}")
        return

    console.print("Added source line to:")
    for path in updated:
        console.print(f"  - {path}")
    console.print()
    console.print(f"Run 'source {rc_file}' to activate.")


@cli.command()
@click.pass_context
def config_show(ctx):
    """Show current configuration"""
    config = ctx.obj['config']
    config_text = yaml.dump(config.config, default_flow_style=False, indent=2)

    console.print(Panel(
        escape(config_text),
        title=f"Configuration ({escape(config.config_file)})",
        expand=False
    ))


@cli.command()
@click.pass_context
def config_init(ctx):
    """Initialize default configuration file"""
    config = ctx.obj['config']
    try:
        config_path = config.create_default_config()
    except ConfigurationError as e:
        _fail(str(e))
    console.print(f"[green]Created default configuration at: {escape(config_path)}[/green]")
    console.print("Edit this file to customize your settings.")


@cli.command()
@click.option('--key', required=True, help='Configuration key (use dot notation, e.g., history.max_entries)')
@click.option('--value', required=True, help='Configuration value')
@click.pass_context
def config_set(ctx, key, value):
    """Set a configuration value"""
    config = ctx.obj['config']

    # Try to convert value to appropriate type
    if value.lower() in ('true', 'false'):
        value = value.lower() == 'true'
    elif value.isdigit():
        value = int(value)

    config.update_from_cli(**{key: value})
    try:
        config.save()
    except ConfigurationError as e:
        _fail(str(e))
    console.print(f"[green]Set {escape(key)} = {escape(str(value))}[/green]")


@cli.command('help')
@click.pass_context
def show_help(ctx):
    """Show this help message"""
    click.echo(ctx.parent.get_help())


@cli.command()
@click.pass_context
def version(ctx):
    """Show version information"""
    console.print(f"[bold blue]{APP_NAME}[/bold blue]")
    console.print(f"Version: {APP_VERSION}")
    console.print(f"Description: {APP_DESCRIPTION}")


if __name__ == '__main__':
    cli()
