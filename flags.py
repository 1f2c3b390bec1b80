"""
Flag extraction from example command lines.

Splits a command on whitespace runs (no quote awareness: a quoted value with
spaces is split like any other text) and pairs each flag token with the value
token that follows it, keeping the original text offsets.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

_TOKEN_RE = re.compile(r'\S+')


@dataclass(frozen=True)
class Token:
    """A whitespace-delimited token and its span in the command"""
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class Flag:
    """A flag found in a command, with its value if one follows it"""
    name: str  # "--config", "-v"
    value: str  # "100", "/path/to/file", "" when no value follows
    is_boolean: bool  # no value, or a true/false value
    start: int  # offset of the flag name
    end: int  # offset after the value, or after the name when there is none


@dataclass(frozen=True)
class StaticText:
    """A run of non-flag tokens kept verbatim"""
    text: str
    start: int
    end: int


Segment = Union[StaticText, Flag]


def is_flag(text: str) -> bool:
    return text.startswith('-')


def is_boolean_value(text: str) -> bool:
    return text.lower() in ('true', 'false')


def tokenize(command: str) -> List[Token]:
    """Split a command into tokens, tracking positions"""
    return [Token(m.group(), m.start(), m.end()) for m in _TOKEN_RE.finditer(command)]


class TokenStream:
    """Cursor over a token list with one token of lookahead"""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def at_end(self) -> bool:
        return self.index >= len(self.tokens)

    def current(self) -> Token:
        return self.tokens[self.index]

    def peek(self) -> Optional[Token]:
        if self.index + 1 < len(self.tokens):
            return self.tokens[self.index + 1]
        return None

    def advance(self, count: int = 1):
        self.index += count


def _read_flag(stream: TokenStream) -> Flag:
    """Consume a flag token and, if the next token is not a flag, its value"""
    token = stream.current()
    following = stream.peek()
    if following is not None and not is_flag(following.text):
        stream.advance(2)
        return Flag(
            name=token.text,
            value=following.text,
            is_boolean=is_boolean_value(following.text),
            start=token.start,
            end=following.end,
        )
    stream.advance()
    return Flag(name=token.text, value="", is_boolean=True, start=token.start, end=token.end)


def extract_segments(command: str) -> List[Segment]:
    """Split a command into static text runs and flags, in original order"""
    stream = TokenStream(tokenize(command))
    segments: List[Segment] = []
    pending: List[Token] = []

    def flush():
        if pending:
            segments.append(StaticText(
                text=" ".join(t.text for t in pending),
                start=pending[0].start,
                end=pending[-1].end,
            ))
            pending.clear()

    while not stream.at_end():
        token = stream.current()
        if is_flag(token.text):
            flush()
            segments.append(_read_flag(stream))
        else:
            pending.append(token)
            stream.advance()
    flush()

    return segments


def extract(command: str) -> Tuple[str, List[Flag]]:
    """
    Extract flags from a command.

    Returns the base command (the tokens before the first flag) and the flags
    in order. Static tokens that appear after the first flag are not part of
    the base; use extract_segments() to keep them. A command without flags
    is returned unchanged as its own base.
    """
    segments = extract_segments(command)
    flags = [s for s in segments if isinstance(s, Flag)]
    if not flags:
        return command, []

    base_parts = []
    for segment in segments:
        if isinstance(segment, Flag):
            break
        base_parts.append(segment.text)
    return " ".join(base_parts).strip(), flags
