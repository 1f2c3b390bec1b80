"""
Binding resolution.

A stored template is resolved in one pass: every binding gets exactly one
decision (a value or a skip), collected left to right through the picker,
then applied right to left by offset so earlier positions stay valid.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from logger import get_logger
from exceptions import ResolutionError
from bindings import (
    AnyBinding, DirectoryBinding, ValueListBinding, BooleanFlagBinding,
    PRECEDING_FLAG_RE, parse, list_files, absolute_path, associated_flag, prompt_context,
)
from picker import Terminal, Picker, Select, Skip, Custom, prompt_yes_no

_WHITESPACE_RE = re.compile(r'\s+')


@dataclass(frozen=True)
class Decision:
    """What to do with one binding: substitute value, or skip when value is None"""
    binding: AnyBinding
    value: Optional[str] = None

    @property
    def skipped(self) -> bool:
        return self.value is None


def normalize(command: str) -> str:
    """Collapse whitespace runs to single spaces and trim"""
    return _WHITESPACE_RE.sub(' ', command).strip()


def _check_position(command: str, binding: AnyBinding):
    if command[binding.start:binding.end] != binding.placeholder:
        raise ResolutionError(
            f"binding {binding.placeholder} not found at offset {binding.start}"
        )


def _replacement(binding: AnyBinding, value: str) -> str:
    # A flag-only binding resolves to just the flag
    return " ".join(part for part in (binding.flag, value) if part)


def _removal_start(command: str, binding: AnyBinding) -> int:
    """Where the removed span starts: the preceding flag token if it belongs to the binding"""
    flag = associated_flag(command, binding)
    if flag:
        match = PRECEDING_FLAG_RE.search(command[:binding.start])
        if match and match.group(1) == flag:
            return match.start(1)
    return binding.start


def _apply(command: str, decision: Decision) -> str:
    binding = decision.binding
    if decision.skipped:
        start = _removal_start(command, binding)
        return command[:start] + command[binding.end:]
    return command[:binding.start] + _replacement(binding, decision.value) + command[binding.end:]


def resolve(command: str, binding: AnyBinding, value: str) -> str:
    """Substitute a chosen value for a binding at its position"""
    _check_position(command, binding)
    return normalize(_apply(command, Decision(binding, value)))


def remove(command: str, binding: AnyBinding) -> str:
    """Delete a skipped binding together with the flag written right before it"""
    _check_position(command, binding)
    return normalize(_apply(command, Decision(binding)))


def apply_decisions(command: str, decisions: Sequence[Decision]) -> str:
    """Apply one decision per binding of command and normalize the result once"""
    ordered = sorted(decisions, key=lambda d: d.binding.start, reverse=True)
    starts = [d.binding.start for d in ordered]
    if len(set(starts)) != len(starts):
        raise ResolutionError("more than one decision for the same binding")

    for decision in ordered:
        _check_position(command, decision.binding)
        command = _apply(command, decision)
    return normalize(command)


class BindingResolver:
    """Drives one picker session per binding and assembles the final command"""

    def __init__(self, terminal: Optional[Terminal] = None):
        self.terminal = terminal or Terminal()
        self.logger = get_logger(self.__class__.__name__)

    def resolve_command(self, template: str) -> Optional[str]:
        """
        Resolve every binding in template interactively.

        Returns the final command, or None if the user cancelled at any step;
        a cancel aborts the whole sequence. Raises ParseError for a malformed
        template and ResolutionError when a directory binding has nothing to offer.
        """
        bindings = parse(template)
        if not bindings:
            return template

        decisions: List[Decision] = []
        for binding in bindings:
            decision = self._decide(template, binding)
            if decision is None:
                self.logger.debug(f"Resolution cancelled at {binding.placeholder}")
                return None
            self.logger.debug(
                f"{binding.placeholder} -> {'skip' if decision.skipped else repr(decision.value)}"
            )
            decisions.append(decision)

        return apply_decisions(template, decisions)

    def _decide(self, template: str, binding: AnyBinding) -> Optional[Decision]:
        prompt = prompt_context(template, binding)

        if isinstance(binding, BooleanFlagBinding):
            include = prompt_yes_no(prompt, self.terminal)
            if include is None:
                return None
            return Decision(binding, "") if include else Decision(binding)

        if isinstance(binding, DirectoryBinding):
            files = list_files(binding)
            outcome = self._pick(files, prompt, binding.optional, False)
        elif isinstance(binding, ValueListBinding):
            outcome = self._pick(list(binding.values), prompt, binding.optional, binding.allow_custom)
        else:
            raise ResolutionError(f"unsupported binding: {binding.placeholder}")

        if isinstance(outcome, Skip):
            return Decision(binding)
        if isinstance(outcome, Custom):
            return Decision(binding, outcome.value)
        if isinstance(outcome, Select):
            if isinstance(binding, DirectoryBinding):
                return Decision(binding, absolute_path(binding, outcome.value))
            return Decision(binding, outcome.value)
        return None

    def _pick(self, values: List[str], prompt: str, allow_skip: bool, allow_custom: bool):
        picker = Picker(values, prompt, self.terminal,
                        allow_skip=allow_skip, allow_custom=allow_custom)
        return picker.run()
