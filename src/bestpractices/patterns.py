from __future__ import annotations

import re

# Comment markers shared by the line scanners.
CODE_COMMENT_PREFIXES: tuple[str, ...] = ("//", "/*", "*")
SECRET_COMMENT_PREFIXES: tuple[str, ...] = ("//", "/*", "*", "#")

BLOCK_COMMENT_END = "*/"
DOC_COMMENT_START = "/**"

LEADING_WS_RE = re.compile(r"^[ \t]*")


def is_comment_line(line: str, prefixes: tuple[str, ...] = CODE_COMMENT_PREFIXES) -> bool:
    return line.strip().startswith(prefixes)


def is_comment_marker(line: str) -> bool:
    """True when `line` is (the end of) a comment that can document the next line."""

    stripped = line.strip()
    return stripped.startswith(("//", "/*")) or stripped.endswith(BLOCK_COMMENT_END)


def opens_block_comment(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("/*") or DOC_COMMENT_START in stripped


def leading_whitespace(line: str) -> str:
    match = LEADING_WS_RE.match(line)
    return match.group(0) if match else ""
