"""Pytest configuration and fixtures"""

import io
import os
import tempfile
from contextlib import contextmanager
from unittest.mock import Mock

import pytest
from rich.console import Console

from picker import Terminal
from exceptions import TerminalError
from store import CommandStore


class FakeTerminal(Terminal):
    """Terminal that replays scripted keys and records what was drawn"""

    def __init__(self, keys=(), width=80, interactive=True):
        self.output = io.StringIO()
        self.errors = io.StringIO()
        super().__init__(
            console=Console(file=self.output, width=200, color_system=None, highlight=False),
            error_console=Console(file=self.errors, width=200, color_system=None, highlight=False),
        )
        self.keys = list(keys)
        self.interactive = interactive
        self._width = width
        self.raw_sessions = 0
        self.raw_active = False
        self.reports = []

    def is_interactive(self):
        return self.interactive

    @contextmanager
    def raw_mode(self):
        nested = self.raw_active
        if not nested:
            self.raw_sessions += 1
            self.raw_active = True
        try:
            yield self
        finally:
            if not nested:
                self.raw_active = False

    def read_key(self):
        if not self.keys:
            raise TerminalError("no more scripted keys")
        return self.keys.pop(0)

    def width(self):
        return self._width

    def report(self, message):
        self.reports.append(message)

    def type_text(self, text):
        """Queue each character of text as a key"""
        self.keys.extend(text)


@pytest.fixture
def fake_terminal():
    """A scripted terminal; queue keys with .keys or .type_text()"""
    return FakeTerminal()


@pytest.fixture
def temp_config_file():
    """Create a temporary config file for testing"""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        f.write("""
shell:
  interpreter: /bin/bash
history:
  max_entries: 5
picker:
  min_command_width: 30
output:
  verbose: true
""")
        temp_path = f.name

    yield temp_path

    # Cleanup
    os.unlink(temp_path)


@pytest.fixture
def home_dir(tmp_path, monkeypatch):
    """Point HOME at an empty temporary directory"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv('HOME', str(home))
    return home


@pytest.fixture
def store(tmp_path):
    """Command store backed by a temporary file"""
    return CommandStore(str(tmp_path / "commands.json"))


@pytest.fixture
def config_dir_files(tmp_path):
    """A directory tree for directory bindings"""
    root = tmp_path / "configs"
    (root / "nested").mkdir(parents=True)
    (root / "a.yaml").write_text("a: 1\n")
    (root / "b.yaml").write_text("b: 2\n")
    (root / "notes.txt").write_text("notes\n")
    (root / "nested" / "c.yaml").write_text("c: 3\n")
    return root


@pytest.fixture
def mock_console():
    """Mock rich console for testing"""
    return Mock()


@pytest.fixture
def make_terminal():
    """Factory for scripted terminals: make_terminal(keys, width=80, interactive=True)"""
    return FakeTerminal
