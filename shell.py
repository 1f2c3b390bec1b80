"""Shell integration: the generated alias file and the rc-file source line"""

import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from logger import get_logger
from exceptions import StoreError
from bindings import has_bindings
from config import get_config_dir
from constants import ALIAS_FILE, ALIAS_FILE_HEADER, SHELL_RC_FILES

logger = get_logger(__name__)


def detect_shell() -> str:
    """Detect the current shell"""
    shell = os.environ.get('SHELL', '')
    if 'zsh' in shell:
        return 'zsh'
    return 'bash'


def _shell_quote(command: str) -> str:
    return "'" + command.replace("'", "'\\''") + "'"


def generate_aliases(commands: Sequence) -> str:
    """
    Alias definitions for saved commands.

    A command with bindings needs interactive resolution, so its alias
    calls back into lz; any other command is aliased directly.
    """
    lines = [ALIAS_FILE_HEADER]
    for command in commands:
        if has_bindings(command.command):
            lines.append(f"alias {command.name}='lz run {command.name}'\n")
        else:
            lines.append(f"alias {command.name}={_shell_quote(command.command)}\n")
    return "".join(lines)


def source_line(alias_path: Path, home: Optional[Path] = None) -> str:
    """The line an rc file needs to load the alias file"""
    home = home or Path.home()
    try:
        shown = "$HOME/" + str(alias_path.relative_to(home))
    except ValueError:
        shown = str(alias_path)
    return f'[ -f "{shown}" ] && source "{shown}"'


class AliasWriter:
    """Keeps the alias file in step with the command store"""

    def __init__(self, alias_path: Optional[Path] = None):
        self.logger = get_logger(self.__class__.__name__)
        self.alias_path = Path(alias_path) if alias_path else get_config_dir() / ALIAS_FILE

    def update_aliases(self, commands: Sequence):
        try:
            self.alias_path.parent.mkdir(parents=True, exist_ok=True)
            self.alias_path.write_text(generate_aliases(commands))
            self.logger.debug(f"Wrote {len(commands)} aliases to {self.alias_path}")
        except OSError as e:
            self.logger.error(f"Failed to write alias file {self.alias_path}: {e}")
            raise StoreError(f"Cannot write alias file {self.alias_path}: {e}")

    def ensure_exists(self):
        if self.alias_path.exists():
            return
        try:
            self.alias_path.parent.mkdir(parents=True, exist_ok=True)
            self.alias_path.write_text(ALIAS_FILE_HEADER)
        except OSError as e:
            raise StoreError(f"Cannot create alias file {self.alias_path}: {e}")


def _has_source_line(rc_path: Path, alias_path: Path, home: Path) -> bool:
    marker = source_line(alias_path, home).split('"')[1]
    with open(rc_path, 'r', errors='replace') as f:
        return any(marker in line or '.config/laziest/aliases' in line for line in f)


def init_shell_rc(home: Optional[Path] = None,
                  alias_path: Optional[Path] = None) -> Tuple[List[Path], List[str]]:
    """
    Add the alias source line to existing ~/.bashrc and ~/.zshrc, once.

    Returns the rc files that were changed and a message per rc file that
    could not be read or written. Missing rc files are left alone.
    Also creates an empty alias file so the source line has something to load.
    """
    home = Path(home) if home else Path.home()
    writer = AliasWriter(alias_path)
    updated = []
    failures = []

    for shell_name, rc_name in SHELL_RC_FILES.items():
        rc_path = home / rc_name
        if not rc_path.exists():
            continue
        try:
            if _has_source_line(rc_path, writer.alias_path, home):
                logger.debug(f"{rc_path} already sources the alias file")
                continue
            with open(rc_path, 'a') as f:
                f.write(f"\n# lz aliases\n{source_line(writer.alias_path, home)}\n")
            updated.append(rc_path)
            logger.info(f"Added alias source line to {rc_path}")
        except OSError as e:
            logger.error(f"Failed to update {rc_path}: {e}")
            failures.append(f"{shell_name}: {e}")

    writer.ensure_exists()
    return updated, failures
