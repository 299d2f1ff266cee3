"""Problem reports produced by the lesson checks."""

from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Finding:
    """A single problem found in a document."""

    path: Path
    line: int
    rule: str  # e.g. "link", "sql-syntax", "knowledge-check"
    message: str
    severity: Severity = Severity.ERROR

    def sort_key(self) -> tuple[str, int, str]:
        return (str(self.path), self.line, self.rule)

    def location(self, root: Path | None = None) -> str:
        path = self.path
        if root is not None:
            try:
                path = self.path.relative_to(root)
            except ValueError:
                pass
        return f"{path}:{self.line}"

    def to_dict(self, root: Path | None = None) -> dict[str, Any]:
        data = asdict(self)
        data["path"] = self.location(root).rsplit(":", 1)[0]
        data["severity"] = self.severity.value
        return data


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    return sorted(findings, key=Finding.sort_key)


def summarize(findings: Iterable[Finding]) -> dict[str, int]:
    """Count findings per severity."""
    counts = {severity.value: 0 for severity in Severity}
    for finding in findings:
        counts[finding.severity.value] += 1
    return counts


def findings_to_json(findings: Iterable[Finding], root: Path | None = None) -> dict[str, Any]:
    findings = sort_findings(findings)
    return {
        "summary": summarize(findings),
        "findings": [f.to_dict(root) for f in findings],
    }
