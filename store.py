"""Saved commands, kept as a flat JSON file"""

import json
import re
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any, Optional
from dataclasses import dataclass, asdict, field

from logger import get_logger
from exceptions import StoreError, ValidationError
from config import get_config_dir
from constants import COMMANDS_FILE

_ALIAS_NAME_RE = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')
_TAG_RE = re.compile(r'^[A-Za-z0-9_]+$')


def is_valid_alias_name(name: str) -> bool:
    """Names become shell aliases: a letter or underscore, then letters, digits, underscores"""
    return bool(_ALIAS_NAME_RE.match(name))


def is_valid_tag(tag: str) -> bool:
    return bool(_TAG_RE.match(tag))


def parse_tags(text: str) -> List[str]:
    """Split a comma-separated tag string, dropping blanks"""
    return [t.strip() for t in text.split(',') if t.strip()]


def validate_tags(tags: List[str]):
    invalid = [t for t in tags if not is_valid_tag(t)]
    if invalid:
        raise ValidationError(
            f"invalid tag(s): {', '.join(invalid)} (use letters, numbers and underscores)"
        )


def validate_name(name: str):
    if not is_valid_alias_name(name):
        raise ValidationError(
            f"invalid alias name '{name}': it must start with a letter or underscore "
            f"and contain only letters, numbers and underscores"
        )


@dataclass
class SavedCommand:
    """A named command template"""
    name: str
    command: str
    tags: List[str] = field(default_factory=list)
    added_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = asdict(self)
        if not self.tags:
            del data['tags']
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SavedCommand':
        """Create from dictionary"""
        return cls(
            name=data['name'],
            command=data['command'],
            tags=list(data.get('tags') or []),
            added_at=data.get('added_at', ''),
        )


class CommandStore:
    """Loads, edits and saves the list of saved commands"""

    def __init__(self, path: Optional[str] = None):
        self.logger = get_logger(self.__class__.__name__)
        self.path = Path(path) if path else get_config_dir() / COMMANDS_FILE
        self.commands: List[SavedCommand] = []
        self.load()

    def load(self):
        """Read the store; a missing file is an empty store"""
        if not self.path.exists():
            self.logger.debug(f"Command store {self.path} does not exist, starting empty")
            self.commands = []
            return
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
            self.commands = [SavedCommand.from_dict(c) for c in data.get('commands', [])]
            self.logger.debug(f"Loaded {len(self.commands)} commands from {self.path}")
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Failed to load command store {self.path}: {e}")
            raise StoreError(f"Cannot read command store {self.path}: {e}")

    def save(self):
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump({'commands': [c.to_dict() for c in self.commands]}, f, indent=2)
            self.logger.debug(f"Saved {len(self.commands)} commands to {self.path}")
        except OSError as e:
            self.logger.error(f"Failed to save command store {self.path}: {e}")
            raise StoreError(f"Cannot write command store {self.path}: {e}")

    def get(self, name: str) -> Optional[SavedCommand]:
        for command in self.commands:
            if command.name == name:
                return command
        return None

    def add(self, name: str, command: str, tags: Optional[List[str]] = None) -> SavedCommand:
        """Add a command; the caller saves"""
        tags = tags or []
        validate_name(name)
        validate_tags(tags)
        if self.get(name):
            raise ValidationError(f"command '{name}' already exists")

        saved = SavedCommand(name=name, command=command, tags=tags,
                             added_at=datetime.now().isoformat())
        self.commands.append(saved)
        self.logger.info(f"Added command '{name}'")
        return saved

    def remove(self, name: str) -> SavedCommand:
        saved = self.get(name)
        if saved is None:
            raise ValidationError(f"command '{name}' not found")
        self.commands.remove(saved)
        self.logger.info(f"Removed command '{name}'")
        return saved

    def update(self, name: str, new_name: str, new_command: str, new_tags: List[str]) -> SavedCommand:
        """Rename and/or edit a command, keeping its position and added_at"""
        saved = self.get(name)
        if saved is None:
            raise ValidationError(f"command '{name}' not found")
        if new_name != name:
            validate_name(new_name)
            if self.get(new_name):
                raise ValidationError(f"command '{new_name}' already exists")
        validate_tags(new_tags)

        saved.name = new_name
        saved.command = new_command
        saved.tags = list(new_tags)
        self.logger.info(f"Updated command '{name}'")
        return saved

    def by_tags(self, tags: List[str]) -> List[SavedCommand]:
        """Commands carrying any of the tags, in tag order, each listed once"""
        matches = []
        seen = set()
        for tag in tags:
            for command in self.commands:
                if tag in command.tags and command.name not in seen:
                    seen.add(command.name)
                    matches.append(command)
        return matches

    def tag_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for command in self.commands:
            for tag in command.tags:
                counts[tag] = counts.get(tag, 0) + 1
        return counts
