"""Text helpers for embedding content inside generated shell scripts."""
from __future__ import annotations

import base64
import shlex

# Characters an unquoted heredoc still interprets.
_HEREDOC_SPECIALS = ("\\", "$", "`")


def escape_heredoc(text: str) -> str:
    """Escape text for an unquoted heredoc so it arrives verbatim.

    Backslashes are escaped first so the escapes added for ``$`` and the
    backtick are not themselves doubled.
    """
    for char in _HEREDOC_SPECIALS:
        text = text.replace(char, f"\\{char}")
    return text


def choose_heredoc_delimiter(text: str, base: str) -> str:
    """Return a delimiter that does not appear as a line of ``text``."""
    lines = {line.strip() for line in text.splitlines()}
    candidate = base
    counter = 1
    while candidate in lines:
        counter += 1
        candidate = f"{base}_{counter}"
    return candidate


def quote(value: object) -> str:
    return shlex.quote(str(value))


def build_one_liner(script: str) -> str:
    """Wrap a script in a single decode-and-execute shell command."""
    encoded = base64.b64encode(script.encode("utf-8")).decode("ascii")
    return f'bash -c "$(echo {encoded} | base64 -d)"'
