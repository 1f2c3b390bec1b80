"""
Interactive command builder.

Walks the flags of an example command and asks, for each one, whether it
stays static or becomes a binding placeholder. Every placeholder it writes
parses back to the same binding.
"""

import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from logger import get_logger
from flags import Flag, StaticText, extract, extract_segments
from bindings import FLAG_ONLY_RE
from picker import Terminal, pick_option, prompt_yes_no, prompt_input
from constants import BINDING_OPEN, BINDING_CLOSE, OPTIONAL_MARKER, CUSTOM_INPUT_MARKER


@dataclass
class BuildResult:
    """Outcome of an interactive build"""
    command: str = ""
    cancelled: bool = False


def _placeholder(body: str, optional: bool = False, flag: str = "") -> str:
    prefix = OPTIONAL_MARKER if optional else ""
    if flag:
        prefix += f"{flag}:"
    return f"{BINDING_OPEN}{prefix}{body}{BINDING_CLOSE}"


def render_boolean_flag(flag: str) -> str:
    """{%?--verbose%}"""
    return _placeholder(flag, optional=True)


def render_value_list(values: Sequence[str], allow_custom: bool = False,
                      optional: bool = False, flag: str = "") -> str:
    """{%[?][--flag:][a,b,...]%}"""
    items = list(values)
    if allow_custom:
        items.append(CUSTOM_INPUT_MARKER)
    return _placeholder(f"[{','.join(items)}]", optional, flag)


def render_directory(path: str, glob_filter: str = "", optional: bool = False, flag: str = "") -> str:
    """{%[?][--flag:]/abs/dir[:filter]%}"""
    body = f"{path}:{glob_filter}" if glob_filter else path
    return _placeholder(body, optional, flag)


def extract_directory(value: str) -> str:
    """Default base directory for a value: its parent folder if it looks like a file"""
    if not value:
        return "."
    head, tail = os.path.split(value)
    if "/" in value and "." in tail:
        return head or "/"
    return value


def value_problem(value: str, existing: Sequence[str]) -> Optional[str]:
    """Why a list value cannot be used, or None if it can"""
    if ',' in value:
        return "values cannot contain ','"
    if BINDING_CLOSE in value:
        return f"values cannot contain '{BINDING_CLOSE}'"
    if value in existing:
        return f"'{value}' is already in the list"
    return None


def path_problem(path: str, glob_filter: str) -> Optional[str]:
    """Why a directory or filter would not survive parsing, or None"""
    # The filter is split off at the last colon (a colon at index 1 is a drive letter)
    if ':' in glob_filter:
        return "the filter cannot contain ':'"
    if path.rfind(':') > 1:
        return "the directory cannot contain ':'"
    if BINDING_CLOSE in path or BINDING_CLOSE in glob_filter:
        return f"the directory and filter cannot contain '{BINDING_CLOSE}'"
    if path.startswith('['):
        return "the directory cannot start with '['"
    return None


class CommandBuilder:
    """Turns an example command into a stored template, one flag at a time"""

    def __init__(self, terminal: Optional[Terminal] = None, console: Optional[Console] = None):
        self.terminal = terminal or Terminal()
        self.console = console or self.terminal.console
        self.logger = get_logger(self.__class__.__name__)

    def build(self, example: str) -> BuildResult:
        segments = extract_segments(example)
        flags = [s for s in segments if isinstance(s, Flag)]
        if not flags:
            return BuildResult(command=example)

        base, _ = extract(example)
        self.console.print(f"\n[bold]Building command from:[/bold] {escape(example)}\n")
        self.console.print(f"[dim]Base command: {escape(base)}[/dim]")
        self.console.print(f"[dim]Found {len(flags)} flag(s) to configure[/dim]\n")

        parts: List[str] = []
        position = 0
        for segment in segments:
            if isinstance(segment, StaticText):
                parts.append(segment.text)
                continue

            position += 1
            header = f"[bold][{position}/{len(flags)}] Flag: {escape(segment.name)}"
            if segment.value:
                header += f" = {escape(segment.value)}"
            self.console.print(header + "[/bold]")

            rendered = self.process_flag(segment)
            if rendered is None:
                self.logger.info("Command building cancelled")
                return BuildResult(cancelled=True)
            if rendered:
                parts.append(rendered)
            self.console.print()

        return BuildResult(command=" ".join(parts))

    def process_flag(self, flag: Flag) -> Optional[str]:
        """Static text or placeholder for one flag; None when cancelled"""
        if not FLAG_ONLY_RE.match(flag.name):
            # e.g. "--name=value" in one token: no placeholder can carry it
            self.console.print("[dim]Kept static (flag name cannot be bound)[/dim]")
            return self._static(flag)
        if flag.is_boolean:
            return self._process_boolean(flag)
        return self._process_value(flag)

    def _static(self, flag: Flag) -> str:
        return f"{flag.name} {flag.value}" if flag.value else flag.name

    def _process_boolean(self, flag: Flag) -> Optional[str]:
        if not flag.value:
            options = [
                "Keep static (always include this flag)",
                "Make optional (choose to include or skip at runtime)",
            ]
            choice = pick_option("How should this flag behave?", options, self.terminal)
            if choice == -1:
                return None
            if choice == 1:
                return render_boolean_flag(flag.name)
            return flag.name

        options = [
            f"Keep static (always use {flag.value})",
            "Make dynamic (choose True/False at runtime)",
            "Make optional + dynamic (choose True/False or skip entirely)",
        ]
        choice = pick_option("How should this flag behave?", options, self.terminal)
        if choice == -1:
            return None
        if choice == 0:
            return self._static(flag)
        return render_value_list(["True", "False"], optional=choice == 2, flag=flag.name)

    def _process_value(self, flag: Flag) -> Optional[str]:
        options = [
            "Keep static (always use this value)",
            "Directory picker (browse and select a path)",
            "Value list (choose from predefined options)",
        ]
        choice = pick_option("How should this flag's value be set?", options, self.terminal)
        if choice == -1:
            return None
        if choice == 1:
            return self._build_directory(flag)
        if choice == 2:
            return self._build_value_list(flag)
        return self._static(flag)

    def _build_directory(self, flag: Flag) -> Optional[str]:
        default_dir = extract_directory(flag.value)
        while True:
            base_dir = prompt_input(f"Base directory [{default_dir}]: ", terminal=self.terminal).strip()
            base_dir = os.path.abspath(os.path.expanduser(base_dir or default_dir))
            glob_filter = prompt_input("Filter pattern (e.g., *.yaml, empty for all): ",
                                       terminal=self.terminal).strip()
            problem = path_problem(base_dir, glob_filter)
            if problem is None:
                break
            self.console.print(f"[yellow]Cannot use that: {escape(problem)}[/yellow]")

        if not os.path.isdir(base_dir):
            self.console.print(f"[yellow]Warning: directory '{escape(base_dir)}' does not exist[/yellow]")

        optional = prompt_yes_no("Make this flag optional?", self.terminal)
        if optional is None:
            return None
        return render_directory(base_dir, glob_filter, optional, flag.name)

    def _build_value_list(self, flag: Flag) -> Optional[str]:
        self.console.print("[dim]Enter values one per line. Empty line to finish.[/dim]")
        self.console.print(f"[dim]Tip: Add '{CUSTOM_INPUT_MARKER}' as the last value "
                           f"to allow custom input at runtime.[/dim]")
        if flag.value:
            self.console.print(f"[dim]Suggested: {escape(flag.value)}[/dim]")

        values: List[str] = []
        allow_custom = False
        while True:
            value = prompt_input("Value: ", terminal=self.terminal).strip()
            if not value:
                break
            if value == CUSTOM_INPUT_MARKER:
                allow_custom = True
                continue
            problem = value_problem(value, values)
            if problem:
                self.console.print(f"[yellow]Skipped: {escape(problem)}[/yellow]")
                continue
            values.append(value)

        if not values and not allow_custom:
            return self._static(flag)

        optional = prompt_yes_no("Make this flag optional?", self.terminal)
        if optional is None:
            return None
        return render_value_list(values, allow_custom, optional, flag.name)
