"""Render documents through a ``%field.path`` template and print them."""

import logging
import re
import sys
from typing import TextIO

from logstasher.expression import ExpressionError, evaluate_expression

logger = logging.getLogger(__name__)

FORMAT_PATTERN = re.compile(r"%[A-Za-z0-9@_.-]+")

# ANSI color codes
GREEN = "\033[32m"
RESET = "\033[0m"


def template_fields(template: str) -> list[str]:
    """Distinct ``%field`` tokens in *template*, in order of first appearance."""
    return list(dict.fromkeys(FORMAT_PATTERN.findall(template)))


def render(template: str, document: dict) -> str:
    """Substitute every resolvable token; unresolvable tokens stay as written."""
    values = {}
    for token in template_fields(template):
        try:
            values[token] = evaluate_expression(document, token[1:])
        except ExpressionError as exc:
            logger.debug("Leaving %s unresolved: %s", token, exc)
            values[token] = token
    # Single pass, so a token that prefixes another (%a, %a.b) is never split.
    return FORMAT_PATTERN.sub(lambda m: values[m.group(0)], template)


def colorize(line: str, color: bool = True) -> str:
    if not color:
        return line
    return f"{GREEN}{line}{RESET}"


class ResultPrinter:
    """Writes one rendered line per document."""

    def __init__(self, template: str, color: bool = True, stream: TextIO | None = None):
        self._template = template
        self._color = color
        self._stream = stream
        self.printed = 0

    def __call__(self, document: dict) -> str:
        logger.debug("Result: %s", document)
        line = render(self._template, document)
        print(colorize(line, self._color), file=self._stream or sys.stdout, flush=True)
        self.printed += 1
        return line
