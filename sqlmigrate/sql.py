"""Splitting of migration scripts into individual SQL statements.

DBAPI drivers differ on multi-statement strings (sqlite3 rejects them,
asyncpg rejects them in prepared mode), so scripts are executed one
statement at a time.
"""

import re

_DOLLAR_TAG = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)?\$")


def _skip_quoted(script: str, start: int) -> int:
    """Return the index just past the quoted literal opening at ``start``.

    A doubled quote character inside the literal is an escaped quote.
    """
    quote = script[start]
    i = start + 1
    while i < len(script):
        if script[i] == quote:
            if i + 1 < len(script) and script[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return len(script)


def split_statements(script: str) -> list[str]:
    """Split a script on semicolons that terminate statements.

    Semicolons inside quoted literals, quoted identifiers, comments and
    PostgreSQL dollar-quoted bodies do not split. Comments are dropped.
    Empty statements are discarded.

    Args:
        script: SQL text holding zero or more statements.

    Returns:
        The statements in order, without trailing semicolons.
    """
    statements: list[str] = []
    current: list[str] = []
    i = 0
    length = len(script)

    while i < length:
        ch = script[i]

        if ch in ("'", '"'):
            end = _skip_quoted(script, i)
            current.append(script[i:end])
            i = end
        elif script.startswith("--", i):
            newline = script.find("\n", i)
            i = length if newline == -1 else newline
        elif script.startswith("/*", i):
            close = script.find("*/", i + 2)
            current.append(" ")
            i = length if close == -1 else close + 2
        elif ch == "$" and _DOLLAR_TAG.match(script, i):
            tag = _DOLLAR_TAG.match(script, i).group(0)
            close = script.find(tag, i + len(tag))
            end = length if close == -1 else close + len(tag)
            current.append(script[i:end])
            i = end
        elif ch == ";":
            statements.append("".join(current))
            current = []
            i += 1
        else:
            current.append(ch)
            i += 1

    statements.append("".join(current))
    return [statement.strip() for statement in statements if statement.strip()]
