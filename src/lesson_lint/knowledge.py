"""Checks for <details>/<summary> knowledge-check blocks."""

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from .document import Document
from .findings import Finding

TAG_RE = re.compile(r"<(/?)(details|summary)\b[^>]*>", re.IGNORECASE)


@dataclass
class KnowledgeCheck:
    """A balanced <details> block."""

    start_line: int
    end_line: int
    question: str
    answer: str


def _tag_events(lines: list[str]) -> list[tuple[int, bool, str]]:
    """Return (line, is_closing, tag) for every details/summary tag."""
    events = []
    for line_no, line in enumerate(lines, start=1):
        for match in TAG_RE.finditer(line):
            events.append((line_no, bool(match.group(1)), match.group(2).lower()))
    return events


def _read_block(raw: str) -> tuple[str, str]:
    """Extract (question, answer) text from a raw <details> block."""
    soup = BeautifulSoup(raw, "html.parser")
    details = soup.find("details")
    if details is None:
        return "", ""
    summary = details.find("summary")
    question = summary.get_text(" ", strip=True) if summary else ""
    if summary is not None:
        summary.extract()
    answer = details.get_text(" ", strip=True)
    return question, answer


def find_knowledge_checks(document: Document) -> tuple[list[KnowledgeCheck], list[Finding]]:
    """Collect balanced knowledge checks and report tag mismatches.

    Tags are matched on the document with code blocks masked out, but the
    answer text is read from the original lines so code answers count.
    """
    findings: list[Finding] = []
    checks: list[KnowledgeCheck] = []
    open_details: list[int] = []

    def problem(line: int, message: str) -> None:
        findings.append(Finding(path=document.path, line=line, rule="knowledge-check", message=message))

    for line, closing, tag in _tag_events(document.masked_lines()):
        if tag != "details":
            continue
        if not closing:
            open_details.append(line)
            continue
        if not open_details:
            problem(line, "</details> without a matching <details>")
            continue
        start = open_details.pop()
        if open_details:
            # Nested blocks are checked through their outermost parent.
            continue
        raw = "\n".join(document.lines[start - 1 : line])
        question, answer = _read_block(raw)
        checks.append(KnowledgeCheck(start_line=start, end_line=line, question=question, answer=answer))

    for start in open_details:
        problem(start, "<details> is never closed")

    return checks, findings


def check_knowledge(document: Document) -> list[Finding]:
    """Every knowledge check needs a question and a non-empty answer."""
    checks, findings = find_knowledge_checks(document)
    for check in checks:
        if not check.question:
            findings.append(
                Finding(
                    path=document.path,
                    line=check.start_line,
                    rule="knowledge-check",
                    message="Knowledge check has no <summary> question",
                )
            )
        if not check.answer:
            findings.append(
                Finding(
                    path=document.path,
                    line=check.start_line,
                    rule="knowledge-check",
                    message="Knowledge check has an empty answer",
                )
            )
    return findings
