"""Terminal output for ``--dry-run`` previews.

Generated artifacts carry app descriptions in any language, and legacy
Windows code pages cannot encode all of them. Such characters are escaped
in the preview instead of aborting it.
"""
from __future__ import annotations

import sys
from typing import Optional, TextIO


def write_artifact_text(text: str, stream: Optional[TextIO] = None) -> None:
    out = sys.stdout if stream is None else stream
    if not text.endswith("\n"):
        text = f"{text}\n"
    encoding = getattr(out, "encoding", None) or "utf-8"
    out.write(text.encode(encoding, errors="backslashreplace").decode(encoding))
    out.flush()
