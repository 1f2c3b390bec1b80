"""
Dynamic binding placeholders.

A stored command may contain placeholders resolved interactively at run time:

    {%/configs:*.yaml%}            pick a file under /configs matching *.yaml
    {%[dev,staging,prod]%}         pick one of the listed values
    {%[10,50,...]%}                ... also allows typing a custom value
    {%?--debug:[True,False]%}      ? makes it skippable, --debug: ties it to a flag
    {%?--verbose%}                 optional flag with no value

Bindings are returned in order of appearance and remember their offsets in
the parsed command so each one is resolved by position.
"""

import fnmatch
import os
import re
from dataclasses import dataclass
from typing import List, Tuple, Union

from logger import get_logger
from exceptions import ParseError, ResolutionError
from constants import BINDING_OPEN, CUSTOM_INPUT_MARKER, OPTIONAL_MARKER

logger = get_logger(__name__)

PLACEHOLDER_RE = re.compile(r'\{%(.*?)%\}')
FLAG_PREFIX_RE = re.compile(r'^(-{1,2}[\w-]+):\s*')
FLAG_ONLY_RE = re.compile(r'^-{1,2}[\w-]+$')
# A flag token immediately before a placeholder, e.g. "--config " or "--config="
PRECEDING_FLAG_RE = re.compile(r'(?:^|(?<=\s))(-{1,2}[\w-]+)(?:\s*=\s*|\s+)$')


@dataclass(frozen=True)
class Binding:
    """Fields shared by every binding kind"""
    placeholder: str  # exact "{%...%}" text
    start: int  # offset of the placeholder in the parsed command
    end: int
    optional: bool = False
    flag: str = ""  # explicit flag prefix, e.g. "--debug"


@dataclass(frozen=True)
class DirectoryBinding(Binding):
    """Pick a file below an absolute directory, optionally glob-filtered"""
    path: str = ""
    filter: str = ""


@dataclass(frozen=True)
class ValueListBinding(Binding):
    """Pick one of a fixed list of values, optionally allowing free text"""
    values: Tuple[str, ...] = ()
    allow_custom: bool = False


@dataclass(frozen=True)
class BooleanFlagBinding(Binding):
    """Include or leave out a flag that takes no value"""
    pass


AnyBinding = Union[DirectoryBinding, ValueListBinding, BooleanFlagBinding]


def has_bindings(command: str) -> bool:
    """Check if a command string contains any binding placeholders"""
    return BINDING_OPEN in command


def parse(command: str) -> List[AnyBinding]:
    """Extract all bindings from a command, in order of appearance"""
    bindings = []
    for match in PLACEHOLDER_RE.finditer(command):
        bindings.append(_parse_content(match.group(1), match.group(0), match.start(), match.end()))
    return bindings


def _parse_content(content: str, placeholder: str, start: int, end: int) -> AnyBinding:
    content = content.strip()
    if not content:
        raise ParseError(f"empty binding: {placeholder}", placeholder)

    optional = False
    if content.startswith(OPTIONAL_MARKER):
        optional = True
        content = content[len(OPTIONAL_MARKER):].strip()
        if not content:
            raise ParseError(f"empty binding after ?: {placeholder}", placeholder)

    if FLAG_ONLY_RE.match(content):
        return BooleanFlagBinding(placeholder=placeholder, start=start, end=end,
                                  optional=optional, flag=content)

    flag = ""
    match = FLAG_PREFIX_RE.match(content)
    if match:
        flag = match.group(1)
        content = content[match.end():].strip()
        if not content:
            raise ParseError(f"empty binding after flag: {placeholder}", placeholder)

    if content.startswith('['):
        if not content.endswith(']'):
            raise ParseError(f"unterminated value list: {placeholder}", placeholder)
        values, allow_custom = _parse_values(content[1:-1], placeholder)
        return ValueListBinding(placeholder=placeholder, start=start, end=end, optional=optional,
                                flag=flag, values=values, allow_custom=allow_custom)

    path, glob_filter = _split_path_filter(content)
    return DirectoryBinding(placeholder=placeholder, start=start, end=end, optional=optional,
                            flag=flag, path=_absolute(path), filter=glob_filter)


def _parse_values(inner: str, placeholder: str) -> Tuple[Tuple[str, ...], bool]:
    if not inner.strip():
        raise ParseError(f"value binding cannot be empty: {placeholder}", placeholder)

    allow_custom = False
    values: List[str] = []
    for raw in inner.split(','):
        value = raw.strip()
        if value == CUSTOM_INPUT_MARKER:
            allow_custom = True
        elif not value:
            raise ParseError(f"value binding contains empty value: {placeholder}", placeholder)
        elif value in values:
            raise ParseError(f"value binding contains duplicate value '{value}': {placeholder}", placeholder)
        else:
            values.append(value)

    if not values and not allow_custom:
        raise ParseError(f"value binding cannot be empty: {placeholder}", placeholder)
    return tuple(values), allow_custom


def _split_path_filter(content: str) -> Tuple[str, str]:
    # A colon at index 1 belongs to a drive letter (C:\...), not a filter
    last_colon = content.rfind(':')
    if last_colon > 1:
        return content[:last_colon], content[last_colon + 1:]
    return content, ""


def _absolute(path: str) -> str:
    return os.path.abspath(os.path.expanduser(path))


def validate(binding: AnyBinding) -> List[str]:
    """Return warnings (not errors) for problems that don't block adding a command"""
    warnings = []
    if isinstance(binding, DirectoryBinding):
        path = binding.path
        if not os.path.exists(path):
            warnings.append(f"directory '{path}' does not exist")
        elif not os.path.isdir(path):
            warnings.append(f"'{path}' is not a directory")
        elif not os.access(path, os.R_OK | os.X_OK):
            warnings.append(f"cannot access '{path}': permission denied")
    for warning in warnings:
        logger.debug(f"{binding.placeholder}: {warning}")
    return warnings


def list_files(binding: DirectoryBinding) -> List[str]:
    """
    List files below the binding's directory that match its filter.

    Walks recursively, skips symlinks, matches the filter against the file
    name and returns paths relative to the directory, sorted alphabetically.
    Raises ResolutionError when the directory is unusable or nothing matches.
    """
    root = binding.path
    if not os.path.exists(root):
        raise ResolutionError(f"directory '{root}' does not exist")
    if not os.path.isdir(root):
        raise ResolutionError(f"'{root}' is not a directory")
    if not os.access(root, os.R_OK | os.X_OK):
        raise ResolutionError(f"cannot access '{root}': permission denied")

    files = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            full_path = os.path.join(dirpath, filename)
            if os.path.islink(full_path):
                continue
            if binding.filter and not fnmatch.fnmatchcase(filename, binding.filter):
                continue
            files.append(os.path.relpath(full_path, root))

    if not files:
        if binding.filter:
            raise ResolutionError(f"no files found in '{root}' matching '{binding.filter}'")
        raise ResolutionError(f"no files found in '{root}'")

    files.sort()
    logger.debug(f"Found {len(files)} file(s) for {binding.placeholder}")
    return files


def absolute_path(binding: DirectoryBinding, relative_path: str) -> str:
    """Absolute path for a file picked relative to the binding's directory"""
    return os.path.join(binding.path, relative_path)


def associated_flag(command: str, binding: AnyBinding) -> str:
    """
    The flag a binding belongs to.

    An explicit flag prefix wins; otherwise the flag token written right before
    the placeholder ("--env {%...%}" or "--env={%...%}") is used, if any.
    """
    if binding.flag:
        return binding.flag
    match = PRECEDING_FLAG_RE.search(command[:binding.start])
    return match.group(1) if match else ""


def prompt_context(command: str, binding: AnyBinding) -> str:
    """Prompt line shown above the picker for a binding"""
    flag = associated_flag(command, binding)
    target = f" for {flag}" if flag else ""
    if isinstance(binding, DirectoryBinding):
        return f"Select file{target} [{binding.path}]:"
    if isinstance(binding, BooleanFlagBinding):
        return f"Include {binding.flag}?"
    return f"Select value{target}:"
