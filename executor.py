import os
import subprocess
from typing import Optional

from rich.console import Console
from rich.markup import escape

from logger import get_logger
from exceptions import CommandExecutionError
from constants import DEFAULT_SHELL, RUN_SEPARATOR

try:
    import pyperclip
    CLIPBOARD_AVAILABLE = True
except ImportError:
    CLIPBOARD_AVAILABLE = False


def default_interpreter(configured: Optional[str] = None) -> str:
    """Configured interpreter, else $SHELL, else /bin/sh"""
    return configured or os.environ.get('SHELL') or DEFAULT_SHELL


class ShellExecutor:
    """Runs a resolved command through one shell interpreter with inherited stdio"""

    def __init__(self, console: Optional[Console] = None, interpreter: Optional[str] = None):
        self.console = console or Console()
        self.interpreter = default_interpreter(interpreter)
        self.logger = get_logger(self.__class__.__name__)

    def run(self, command: str) -> int:
        """Execute command and return its exit code"""
        self.console.print(f"Running: {escape(command)}", highlight=False)
        self.console.print(RUN_SEPARATOR)
        self.logger.info(f"Executing with {self.interpreter}: {command}")

        try:
            result = subprocess.run([self.interpreter, '-c', command])
        except OSError as e:
            self.logger.error(f"OS error: {command} - {e}")
            raise CommandExecutionError(f"Error executing command: {e}")
        except KeyboardInterrupt:
            self.logger.info("Command interrupted by user")
            return 130

        if result.returncode != 0:
            self.logger.info(f"Command exited with code {result.returncode}")
        return result.returncode

    def copy_command(self, command: str) -> bool:
        """Copy command to clipboard"""
        if CLIPBOARD_AVAILABLE:
            try:
                pyperclip.copy(command)
                self.console.print("[green]✓ Command copied to clipboard[/green]")
                return True
            except pyperclip.PyperclipException as e:
                self.console.print(f"[red]Failed to copy to clipboard: {escape(str(e))}[/red]")
        else:
            self.console.print("[yellow]Clipboard functionality not available (install pyperclip)[/yellow]")
        self.console.print(f"[cyan]Command to copy:[/cyan] {escape(command)}")
        return False
