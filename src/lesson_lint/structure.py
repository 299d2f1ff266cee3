"""Lesson layout checks: title, required sections and their order."""

import re

from .document import Document
from .findings import Finding, Severity
from .knowledge import find_knowledge_checks

DEFAULT_SECTIONS = [
    "Why this matters",
    "Key Concepts",
    "Deep Dive",
    "Hands-On Practice",
    "Common Pitfalls",
    "Knowledge Check",
    "Further Reading",
]


def normalize_title(title: str) -> str:
    """Lowercase a heading and drop emoji, markup and punctuation.

    "🎯 Why This Matters!" and "why this matters" compare equal, as do
    "Hands-On Practice" and "Hands on practice".
    """
    text = re.sub(r"[^\w\s]", " ", title.lower()).replace("_", " ")
    return " ".join(text.split())


def _find_section(document: Document, name: str) -> int | None:
    """Index into the H2 list of the first heading matching a section name."""
    wanted = normalize_title(name)
    for index, heading in enumerate(document.sections(level=2)):
        if normalize_title(heading.title) == wanted:
            return index
    return None


def check_structure(document: Document, required_sections: list[str] | None = None) -> list[Finding]:
    """Check a lesson's title, sections and content."""
    required = DEFAULT_SECTIONS if required_sections is None else required_sections
    findings: list[Finding] = []

    def report(line: int, message: str, severity: Severity = Severity.ERROR, rule: str = "structure") -> None:
        findings.append(Finding(path=document.path, line=line, rule=rule, message=message, severity=severity))

    titles = [h for h in document.headings if h.level == 1]
    if not titles:
        report(1, "Lesson has no '# Title' heading")
    for extra in titles[1:]:
        report(extra.line, f"Lesson has more than one title: '{extra.title}'", Severity.WARNING)

    found: list[tuple[int, str]] = []
    for name in required:
        index = _find_section(document, name)
        if index is None:
            report(1, f"Missing section '## {name}'")
        else:
            found.append((index, name))

    # Sections that are present must keep the required relative order.
    sections = document.sections(level=2)
    for (prev_index, prev_name), (index, name) in zip(found, found[1:]):
        if index < prev_index:
            report(sections[index].line, f"Section '{name}' should come after '{prev_name}'", Severity.WARNING)

    for block in document.code_blocks:
        if not block.closed:
            report(block.start_line, "Code fence is never closed", rule="code-fence")

    if not document.sql_blocks():
        report(1, "Lesson has no SQL code blocks", Severity.WARNING)
    checks, _ = find_knowledge_checks(document)
    if not checks:
        report(1, "Lesson has no knowledge checks", Severity.WARNING)

    return findings
