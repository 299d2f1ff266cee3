"""Splitting and syntax-checking SQL from fenced blocks.

Lesson snippets are written for the mysql command-line client, so the
splitter understands the client's conventions as well as plain SQL:

    mysql> DELIMITER //
    mysql> CREATE PROCEDURE p() BEGIN SELECT 1; END //
    mysql> DELIMITER ;
    mysql> SELECT * FROM t\\G
"""

import re
from dataclasses import dataclass
from pathlib import Path

import sqlglot
from sqlglot.errors import ParseError, SqlglotError

from .document import CodeBlock, Document
from .findings import Finding

PROMPT_RE = re.compile(r"^\s*(?:mysql|MariaDB \[[^\]]*\])>\s?|^\s*->\s?")
DELIMITER_RE = re.compile(r"^\s*delimiter\s+(\S+)\s*$", re.IGNORECASE)
# Server administration statements sqlglot has no grammar for.
ADMIN_STATEMENT_RE = re.compile(
    r"^\s*(?:change\s+(?:replication|master)\b|(?:start|stop)\s+(?:replica|slave|group_replication)\b"
    r"|reset\s+(?:master|replica|slave|binary\s+logs)\b|purge\s+(?:binary|master)\s+logs\b"
    r"|(?:install|uninstall)\s+(?:plugin|component)\b|flush\b|kill\b|xa\b)",
    re.IGNORECASE,
)


@dataclass
class Statement:
    """One SQL statement with comments and terminator removed."""

    text: str
    line: int  # 1-based, relative to the block content


def _strip_prompts(script: str) -> list[str]:
    return [PROMPT_RE.sub("", line, count=1) for line in script.splitlines()]


def split_statements(script: str) -> list[Statement]:
    """Split a client script into statements.

    Comments are dropped from the statement text. Quoted strings and
    identifiers are kept verbatim, including any delimiter inside them.
    """
    statements: list[Statement] = []
    delimiter = ";"
    buf: list[str] = []
    start_line: int | None = None

    def flush() -> None:
        nonlocal buf, start_line
        text = "".join(buf).strip()
        if text and start_line is not None:
            statements.append(Statement(text=text, line=start_line))
        buf = []
        start_line = None

    quote: str | None = None
    in_block_comment = False

    for line_no, line in enumerate(_strip_prompts(script), start=1):
        if quote is None and not in_block_comment and not "".join(buf).strip():
            match = DELIMITER_RE.match(line)
            if match:
                flush()
                delimiter = match.group(1)
                continue

        i = 0
        while i < len(line):
            ch = line[i]

            if in_block_comment:
                if line.startswith("*/", i):
                    in_block_comment = False
                    buf.append(" ")
                    i += 2
                else:
                    i += 1
                continue

            if quote is not None:
                buf.append(ch)
                if ch == "\\" and quote != "`" and i + 1 < len(line):
                    buf.append(line[i + 1])
                    i += 2
                    continue
                if ch == quote:
                    if line.startswith(quote, i + 1):
                        buf.append(quote)
                        i += 2
                        continue
                    quote = None
                i += 1
                continue

            if ch in ("'", '"', "`"):
                quote = ch
                if start_line is None:
                    start_line = line_no
                buf.append(ch)
                i += 1
                continue
            if line.startswith("/*", i):
                in_block_comment = True
                i += 2
                continue
            if ch == "#" or (line.startswith("--", i) and (i + 2 == len(line) or line[i + 2].isspace())):
                break
            if line.startswith(delimiter, i):
                flush()
                i += len(delimiter)
                continue
            if ch == "\\" and i + 1 < len(line) and line[i + 1] in "Gg":
                flush()
                i += 2
                continue

            if start_line is None and not ch.isspace():
                start_line = line_no
            buf.append(ch)
            i += 1

        buf.append("\n")

    flush()
    return statements


def parse_statement(statement: Statement, dialect: str = "mysql") -> None:
    """Parse a statement, raising sqlglot's error if it is not valid SQL.

    Replication and other administration statements that sqlglot cannot
    parse are accepted as they are.
    """
    try:
        sqlglot.parse(statement.text, read=dialect)
    except SqlglotError:
        if ADMIN_STATEMENT_RE.match(statement.text):
            return
        raise


def _error_detail(error: SqlglotError) -> tuple[int, str]:
    """Extract (line offset, description) from a sqlglot error."""
    if isinstance(error, ParseError) and error.errors:
        first = error.errors[0]
        line = first.get("line") or 1
        description = first.get("description") or str(error)
        return line - 1, description
    message = str(error).splitlines()[0] if str(error) else type(error).__name__
    return 0, message


def check_block_syntax(block: CodeBlock, path: Path, dialect: str = "mysql") -> list[Finding]:
    """Parse every statement of an SQL block."""
    if block.has_directive("skip"):
        return []

    findings = []
    for statement in split_statements(block.content):
        try:
            parse_statement(statement, dialect)
        except SqlglotError as e:
            offset, description = _error_detail(e)
            findings.append(
                Finding(
                    path=path,
                    line=block.start_line + statement.line + offset,
                    rule="sql-syntax",
                    message=f"Invalid {dialect} SQL: {description}",
                )
            )
    return findings


def check_sql(document: Document, dialect: str = "mysql") -> list[Finding]:
    """Syntax-check every SQL block in a document."""
    findings = []
    for block in document.sql_blocks():
        if not block.closed:
            continue
        findings.extend(check_block_syntax(block, document.path, dialect))
    return findings
