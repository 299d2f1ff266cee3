"""Running the static checks over a lesson project."""

from dataclasses import dataclass, field
from pathlib import Path

from .config import LintConfig
from .document import Document, discover_documents, is_excluded, parse_document
from .findings import Finding, sort_findings
from .knowledge import check_knowledge
from .links import DocumentIndex, ProgressCallback, check_external_links, check_links, find_orphans
from .sql import check_sql
from .structure import check_structure

CHECKS = ("links", "sql", "knowledge", "structure", "orphans")


@dataclass
class Project:
    """Every document under the root, plus which of them are lessons."""

    config: LintConfig
    index: DocumentIndex
    lessons: list[Document] = field(default_factory=list)

    def is_lesson(self, document: Document) -> bool:
        return any(document is lesson for lesson in self.lessons)


def load_project(config: LintConfig) -> Project:
    """Parse all Markdown documents under the project root.

    Lessons are the documents inside the lessons directory, minus README
    and index pages which only hold navigation.
    """
    documents = [parse_document(path) for path in discover_documents(config.root, config.exclude)]
    index = DocumentIndex(config.root, documents)

    lessons_dir = config.lessons_path.resolve()
    lessons = [
        doc
        for doc in documents
        if doc.path.resolve().is_relative_to(lessons_dir)
        and doc.path.stem.lower() not in ("readme", "index")
    ]
    return Project(config=config, index=index, lessons=lessons)


def select_documents(project: Project, paths: list[Path]) -> list[Document]:
    """Narrow the project to the given files and directories.

    With no paths, every document is selected.
    """
    if not paths:
        return list(project.index)

    selected: list[Document] = []
    for path in paths:
        path = path.resolve()
        if path.is_dir():
            candidates = discover_documents(path)
        elif path.exists():
            candidates = [path]
        else:
            raise FileNotFoundError(f"No such file or directory: {path}")
        for candidate in candidates:
            if is_excluded(candidate, project.config.root, project.config.exclude):
                continue
            document = project.index.get(candidate)
            if document is not None and all(document is not s for s in selected):
                selected.append(document)
    return selected


def run_checks(
    project: Project,
    documents: list[Document],
    only: list[str] | None = None,
    external: bool = False,
    progress_callback: ProgressCallback | None = None,
) -> list[Finding]:
    """Run the selected static checks and return sorted findings.

    Args:
        project: The loaded project.
        documents: Documents to report on.
        only: Subset of CHECKS to run (default: all).
        external: Also probe http(s) links over the network.
        progress_callback: Optional callback for external link progress.
    """
    enabled = set(only or CHECKS)
    config = project.config
    findings: list[Finding] = []

    for document in documents:
        lesson = project.is_lesson(document)
        if "links" in enabled:
            findings.extend(check_links(document, project.index))
        if "sql" in enabled:
            findings.extend(check_sql(document, config.dialect))
        if "knowledge" in enabled:
            findings.extend(check_knowledge(document))
        if "structure" in enabled and lesson:
            findings.extend(check_structure(document, config.required_sections))

    if "orphans" in enabled:
        lessons = [doc for doc in documents if project.is_lesson(doc)]
        findings.extend(find_orphans(lessons, project.index))

    if external:
        findings.extend(
            check_external_links(
                documents,
                timeout=config.external_links.timeout,
                workers=config.external_links.workers,
                ignore=config.external_links.ignore,
                progress_callback=progress_callback,
            )
        )

    return sort_findings(findings)
