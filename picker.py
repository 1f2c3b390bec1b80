"""Interactive picker and inline text input with raw-mode keyboard navigation"""

import os
import sys
import tty
import termios
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from rich.console import Console
from rich.text import Text

from logger import get_logger
from exceptions import TerminalError
from constants import (
    KEY_UP, KEY_DOWN, KEY_ESC, KEY_CTRL_C, KEY_ENTER, KEY_BACKSPACE, CSI, MAX_CSI_LENGTH,
    ERASE_LINE, CURSOR_UP, ERASE_TO_END,
    DEFAULT_TERMINAL_WIDTH, MIN_COMMAND_WIDTH, SKIP_LABEL, CUSTOM_LABEL,
)


# Selection outcomes. Exactly one ends every picker session.

@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Select:
    value: str
    index: int = field(default=-1, compare=False)  # position in the item list


@dataclass(frozen=True)
class SelectWithExtra:
    value: str
    extra: str


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Custom:
    value: str


@dataclass(frozen=True)
class Delete:
    name: str


@dataclass(frozen=True)
class Modify:
    name: str
    new_name: str
    new_command: str
    new_tags: str  # comma-separated, as typed


Outcome = Union[Cancel, Select, SelectWithExtra, Skip, Custom, Delete, Modify]


def is_printable(key: str) -> bool:
    return len(key) == 1 and 32 <= ord(key) < 127


def is_csi_complete(sequence: str) -> bool:
    """A CSI sequence ends with a final byte in the range @ to ~"""
    body = sequence[len(CSI):]
    return bool(body) and 0x40 <= ord(body[-1]) <= 0x7e


class Terminal:
    """Owns the terminal for interactive sessions: raw mode, key input and redraws"""

    def __init__(self, console: Optional[Console] = None, stdin=None,
                 error_console: Optional[Console] = None,
                 fallback_width: int = DEFAULT_TERMINAL_WIDTH):
        self.console = console or Console(highlight=False)
        self.error_console = error_console or Console(stderr=True, highlight=False)
        self.stdin = stdin or sys.stdin
        self.fallback_width = fallback_width
        self.logger = get_logger(self.__class__.__name__)
        self._raw_depth = 0
        self._pending = ""

    def is_interactive(self) -> bool:
        try:
            return self.stdin.isatty()
        except (AttributeError, ValueError):
            return False

    @contextmanager
    def raw_mode(self):
        """
        Put the terminal in raw mode for the duration of the block.

        Prior settings are restored on every exit path. Nested use (a text
        prompt opened from inside a picker) reuses the active session.
        """
        if self._raw_depth:
            self._raw_depth += 1
            try:
                yield self
            finally:
                self._raw_depth -= 1
            return

        if not self.is_interactive():
            raise TerminalError("not a terminal")
        try:
            fd = self.stdin.fileno()
            old_settings = termios.tcgetattr(fd)
            tty.setraw(fd)
        except (termios.error, OSError, ValueError) as e:
            raise TerminalError(f"Failed to enable raw mode: {e}")

        self._raw_depth = 1
        try:
            yield self
        finally:
            self._raw_depth = 0
            self._pending = ""
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

    def read_key(self) -> str:
        """Block until the next key; arrow keys come back as one escape sequence"""
        if self._pending:
            key, self._pending = self._pending[0], self._pending[1:]
            return key

        # One read of up to 3 bytes: an arrow key arrives whole, a lone Esc alone
        fd = self.stdin.fileno()
        data = os.read(fd, 3)
        if not data:
            raise TerminalError("input stream closed")
        chunk = data.decode('utf-8', errors='ignore')
        if not chunk:
            return ""
        if chunk.startswith(CSI):
            return self._finish_csi(fd, chunk)
        if chunk.startswith(KEY_ESC):
            return chunk
        self._pending = chunk[1:]
        return chunk[0]

    def _finish_csi(self, fd: int, sequence: str) -> str:
        """Read the rest of a control sequence such as Ctrl+Up (ESC [ 1 ; 5 A)"""
        while not is_csi_complete(sequence) and len(sequence) < MAX_CSI_LENGTH:
            more = os.read(fd, 1)
            if not more:
                break
            sequence += more.decode('utf-8', errors='ignore')
        return sequence

    def width(self) -> int:
        try:
            columns = os.get_terminal_size(self.console.file.fileno()).columns
        except (OSError, ValueError, AttributeError):
            return self.fallback_width
        return columns if columns > 0 else self.fallback_width

    def write(self, text: str):
        self.console.file.write(text)
        self.console.file.flush()

    def print_line(self, line: Text, end: str = "\r\n"):
        self.console.print(line, end=end, soft_wrap=True)

    def erase_lines(self, count: int):
        """Clear the current line and the count - 1 lines above it"""
        if count <= 0:
            return
        parts = []
        for i in range(count):
            parts.append(ERASE_LINE)
            if i < count - 1:
                parts.append(CURSOR_UP)
        parts.append("\r")
        self.write("".join(parts))

    def report(self, message: str):
        self.logger.debug(message)
        self.error_console.print(Text(message, style="red"))


class TextInput:
    """Single-line input: printable ASCII, Backspace, Enter submits, Esc/Ctrl+C cancel"""

    def __init__(self, terminal: Terminal, prompt: str, initial: str = ""):
        self.terminal = terminal
        self.prompt = prompt
        self.initial = initial

    def run(self) -> str:
        """Return the typed text, or "" when cancelled or unavailable"""
        if not self.terminal.is_interactive():
            self.terminal.report("Cannot show input prompt: not a terminal")
            return ""
        try:
            with self.terminal.raw_mode():
                return self.read()
        except TerminalError as e:
            self.terminal.report(str(e))
            return ""

    def read(self) -> str:
        """Edit loop; the caller holds raw mode"""
        buffer = list(self.initial)
        self._redraw(buffer)
        while True:
            key = self.terminal.read_key()
            if key in (KEY_ESC, KEY_CTRL_C):
                self.terminal.write("\r\n")
                return ""
            if key in KEY_ENTER:
                self.terminal.write("\r\n")
                return "".join(buffer)
            if key in KEY_BACKSPACE:
                if buffer:
                    buffer.pop()
                    self._redraw(buffer)
            elif is_printable(key):
                buffer.append(key)
                self.terminal.write(key)

    def _redraw(self, buffer: List[str]):
        self.terminal.write("\r" + ERASE_TO_END + self.prompt + "".join(buffer))


@dataclass(frozen=True)
class PickerItem:
    """A selectable row; command and tags are only shown for saved commands"""
    name: str
    command: str = ""
    tags: Tuple[str, ...] = ()

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on name, then command, then tags"""
        if needle in self.name.lower():
            return True
        if needle in self.command.lower():
            return True
        return any(needle in tag.lower() for tag in self.tags)


class PickerState(Enum):
    BROWSING = "browsing"
    FILTER_EDITING = "filter_editing"
    CONFIRMING_DELETE = "confirming_delete"
    AWAITING_TEXT_INPUT = "awaiting_text_input"


_ITEM, _SKIP, _CUSTOM = "item", "skip", "custom"


def format_tags(tags: Sequence[str]) -> str:
    return f"[{', '.join(tags)}]" if tags else ""


def truncate(text: str, max_len: int) -> str:
    if max_len <= 3:
        return text[:max_len]
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + "..."


class Picker:
    """
    Interactive list picker.

    One session renders the list in place, reacts to keys and ends with
    exactly one Outcome. The same engine serves saved-command selection
    (delete/modify/extra), binding values (skip/custom) and fixed menus.
    """

    def __init__(self, items: Sequence[Union[PickerItem, str]], prompt: str,
                 terminal: Optional[Terminal] = None, *,
                 allow_skip: bool = False, allow_custom: bool = False,
                 allow_filter: bool = True, allow_delete: bool = False,
                 allow_modify: bool = False, allow_extra: bool = False,
                 min_command_width: int = MIN_COMMAND_WIDTH):
        self.items = [i if isinstance(i, PickerItem) else PickerItem(str(i)) for i in items]
        self.prompt = prompt
        self.terminal = terminal or Terminal()
        self.allow_skip = allow_skip
        self.allow_custom = allow_custom
        self.allow_filter = allow_filter
        self.allow_delete = allow_delete
        self.allow_modify = allow_modify
        self.allow_extra = allow_extra
        self.min_command_width = min_command_width
        self.logger = get_logger(self.__class__.__name__)

        self.rows: List[Tuple[str, PickerItem]] = []
        if allow_skip:
            self.rows.append((_SKIP, PickerItem(SKIP_LABEL)))
        self.rows.extend((_ITEM, item) for item in self.items)
        if allow_custom:
            self.rows.append((_CUSTOM, PickerItem(CUSTOM_LABEL)))

        self.state = PickerState.BROWSING
        self.selected = 0
        self.filter_text = ""
        self.visible = list(range(len(self.rows)))
        self._drawn_lines = 0
        self._resume_state = PickerState.BROWSING

        # Fixed for the whole session so columns don't shift while filtering
        self.show_columns = any(item.command or item.tags for item in self.items)
        self.name_width = max((len(item.name) for _, item in self.rows), default=0)
        self.tag_width = max((len(format_tags(item.tags)) for _, item in self.rows), default=0)

    # Session

    def run(self) -> Outcome:
        if not self.items and not self.allow_custom:
            return Cancel()

        if not self.terminal.is_interactive():
            self.terminal.report("Cannot show interactive picker: not a terminal")
            return Cancel()

        try:
            with self.terminal.raw_mode():
                if not self.items:
                    return self._custom_only()
                return self._loop()
        except TerminalError as e:
            self.terminal.report(str(e))
            return Cancel()

    def _loop(self) -> Outcome:
        self.render()
        while True:
            outcome = self.handle_key(self.terminal.read_key())
            if outcome is not None:
                self.terminal.erase_lines(self._drawn_lines)
                self._drawn_lines = 0
                self.logger.debug(f"Picker finished with {outcome}")
                return outcome

    def _custom_only(self) -> Outcome:
        self.state = PickerState.AWAITING_TEXT_INPUT
        value = TextInput(self.terminal, self.prompt + " ").read()
        if value:
            return Custom(value)
        return Skip() if self.allow_skip else Cancel()

    # Key handling

    def handle_key(self, key: str) -> Optional[Outcome]:
        """Apply one key; return an Outcome when the session is over"""
        if self.state is PickerState.CONFIRMING_DELETE:
            return self._handle_confirm_delete(key)
        if self.state is PickerState.FILTER_EDITING:
            return self._handle_filter(key)
        return self._handle_browsing(key)

    def _handle_browsing(self, key: str) -> Optional[Outcome]:
        if key in (KEY_UP, 'k', 'K'):
            self._move(-1)
        elif key in (KEY_DOWN, 'j', 'J'):
            self._move(1)
        elif key in KEY_ENTER:
            return self._choose_highlighted()
        elif key in ('e', 'E') and self.allow_extra:
            return self._prompt_extra()
        elif key in ('x', 'X') and self.allow_delete and self.highlighted_item():
            self.state = PickerState.CONFIRMING_DELETE
            self.render()
        elif key in ('m', 'M') and self.allow_modify:
            return self._prompt_modify()
        elif key in ('s', 'S') and self.allow_skip:
            return Skip()
        elif key in ('c', 'C') and self.allow_custom:
            return self._prompt_custom()
        elif key == '/' and self.allow_filter:
            self.state = PickerState.FILTER_EDITING
            self._set_filter("")
        elif key in ('q', KEY_ESC, KEY_CTRL_C):
            return Cancel()
        return None

    def _handle_filter(self, key: str) -> Optional[Outcome]:
        if key == KEY_ESC:
            self.state = PickerState.BROWSING
            self._set_filter("")
        elif key == KEY_CTRL_C:
            return Cancel()
        elif key in KEY_ENTER:
            return self._choose_highlighted()
        elif key in KEY_BACKSPACE:
            if self.filter_text:
                self._set_filter(self.filter_text[:-1])
        elif key == KEY_UP:
            self._move(-1)
        elif key == KEY_DOWN:
            self._move(1)
        elif is_printable(key):
            self._set_filter(self.filter_text + key)
        return None

    def _handle_confirm_delete(self, key: str) -> Optional[Outcome]:
        item = self.highlighted_item()
        if key in ('y', 'Y') and item:
            return Delete(item.name)
        self.state = PickerState.BROWSING
        self.render()
        return None

    # Selection helpers

    def highlighted_row(self) -> Optional[Tuple[str, PickerItem]]:
        if not self.visible:
            return None
        return self.rows[self.visible[self.selected]]

    def highlighted_item(self) -> Optional[PickerItem]:
        row = self.highlighted_row()
        if row and row[0] == _ITEM:
            return row[1]
        return None

    def _move(self, delta: int):
        if not self.visible:
            return
        target = min(max(self.selected + delta, 0), len(self.visible) - 1)
        if target != self.selected:
            self.selected = target
            self.render()

    def _set_filter(self, text: str):
        self.filter_text = text
        needle = text.lower()
        self.visible = [i for i, (_, item) in enumerate(self.rows) if not needle or item.matches(needle)]
        self.selected = 0
        self.render()

    def _choose_highlighted(self) -> Optional[Outcome]:
        row = self.highlighted_row()
        if row is None:
            return None  # nothing matches the filter
        kind, item = row
        if kind == _SKIP:
            return Skip()
        if kind == _CUSTOM:
            return self._prompt_custom()
        row_index = self.visible[self.selected]
        return Select(item.name, row_index - (1 if self.allow_skip else 0))

    # Text prompts

    def _ask(self, prompt: str, initial: str = "") -> str:
        self._resume_state = self.state
        self.state = PickerState.AWAITING_TEXT_INPUT
        self.terminal.erase_lines(self._drawn_lines)
        self._drawn_lines = 0
        return TextInput(self.terminal, prompt, initial).run()

    def _resume(self):
        self.state = self._resume_state
        # the answered prompt line plus the fresh line below it
        self._drawn_lines = 2
        self.render()

    def _prompt_extra(self) -> Optional[Outcome]:
        item = self.highlighted_item()
        if not item:
            return None
        extra = self._ask("Extra arguments: ")
        if not extra:
            self._resume()
            return None
        return SelectWithExtra(item.name, extra)

    def _prompt_custom(self) -> Optional[Outcome]:
        value = self._ask(self.prompt + " ")
        if not value:
            self._resume()
            return None
        return Custom(value)

    def _prompt_modify(self) -> Optional[Outcome]:
        item = self.highlighted_item()
        if not item:
            return None
        current_tags = ",".join(item.tags)
        new_name = self._ask("New name: ", item.name) or item.name
        new_command = self._ask("New command: ", item.command) or item.command
        new_tags = self._ask("New tags (comma-separated): ", current_tags) or current_tags
        return Modify(item.name, new_name, new_command, new_tags)

    # Rendering

    def render(self):
        """Redraw the whole picker in place of the previous frame"""
        lines = self.frame()
        self.terminal.erase_lines(self._drawn_lines)
        for line in lines[:-1]:
            self.terminal.print_line(line)
        self.terminal.print_line(lines[-1], end="")
        self._drawn_lines = len(lines)

    def frame(self) -> List[Text]:
        lines = [Text(self.prompt)]

        if not self.visible:
            lines.append(Text("  (no matches)", style="dim"))
        else:
            command_width = self._command_width()
            for position, row_index in enumerate(self.visible):
                _, item = self.rows[row_index]
                lines.append(self._row(item, position == self.selected, command_width))

        if self.state is PickerState.FILTER_EDITING:
            lines.append(Text(f"  /{self.filter_text}", style="cyan"))

        lines.append(self._help_line())
        return lines

    def _command_width(self) -> int:
        # prefix (4) + name + gap (2) + tags + gap (2) + safety margin (1)
        width = self.terminal.width() - 4 - self.name_width - 2 - self.tag_width - 2 - 1
        return max(width, self.min_command_width)

    def _row(self, item: PickerItem, highlighted: bool, command_width: int) -> Text:
        if self.show_columns:
            body = (f"{item.name:<{self.name_width}}  "
                    f"{format_tags(item.tags):<{self.tag_width}}  "
                    f"{truncate(item.command, command_width)}")
        else:
            body = item.name

        if highlighted:
            return Text("  ") + Text(f"> {body}", style="reverse")
        return Text(f"    {body}")

    def _help_line(self) -> Text:
        if self.state is PickerState.CONFIRMING_DELETE:
            item = self.highlighted_item()
            name = item.name if item else ""
            return Text(f"  Delete '{name}'? (y/n)", style="yellow")
        if self.state is PickerState.FILTER_EDITING:
            return Text("  [↑/↓] navigate  [Enter] select  [Esc] clear filter  [Ctrl+C] cancel", style="dim")

        parts = ["[↑/↓/j/k] navigate", "[Enter] select"]
        if self.allow_filter:
            parts.append("[/] filter")
        if self.allow_extra:
            parts.append("[e] extra")
        if self.allow_modify:
            parts.append("[m] modify")
        if self.allow_delete:
            parts.append("[x] delete")
        if self.allow_custom:
            parts.append("[c] custom")
        if self.allow_skip:
            parts.append("[s] skip")
        parts.append("[q/Esc] cancel")
        return Text("  " + "  ".join(parts), style="dim")


def pick_option(prompt: str, options: Sequence[str], terminal: Optional[Terminal] = None) -> int:
    """Fixed-choice menu; returns the chosen index or -1 when cancelled"""
    outcome = Picker(list(options), prompt, terminal, allow_filter=False).run()
    if isinstance(outcome, Select):
        return outcome.index
    return -1


def prompt_yes_no(prompt: str, terminal: Optional[Terminal] = None) -> Optional[bool]:
    """Yes/No menu; None when cancelled"""
    index = pick_option(prompt, ["Yes", "No"], terminal)
    if index == -1:
        return None
    return index == 0


def prompt_input(prompt: str, initial: str = "", terminal: Optional[Terminal] = None) -> str:
    """Standalone inline input; "" when cancelled"""
    return TextInput(terminal or Terminal(), prompt, initial).run()
