"""
Helper methods for showing command templates.
"""

from typing import Sequence
from rich.text import Text
from bindings import AnyBinding


def highlight_bindings(command: str, bindings: Sequence[AnyBinding], base_style: str = "white") -> Text:
    """Highlight binding placeholders in a command string"""
    if not bindings:
        return Text(command, style=base_style)

    result = Text()
    last_end = 0

    for binding in bindings:
        if binding.start > last_end:
            result.append(command[last_end:binding.start], style=base_style)
        binding_style = "bold yellow" if binding.optional else "yellow"
        result.append(command[binding.start:binding.end], style=binding_style)
        last_end = binding.end

    # Add remaining text after the last binding
    if last_end < len(command):
        result.append(command[last_end:], style=base_style)

    return result
