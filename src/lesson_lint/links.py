"""Link checks: relative targets, heading anchors, orphans and external URLs."""

import fnmatch
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable
from urllib.parse import unquote

from .document import Document, Link, LessonError, parse_document
from .findings import Finding, Severity
from .utils import probe_url

IGNORED_SCHEMES = ("mailto:", "tel:", "ftp:", "data:", "javascript:")


class DocumentIndex:
    """All parsed documents under the project root, keyed by resolved path.

    Targets outside the index (excluded files, for example) are parsed on
    first use so their anchors can still be checked.
    """

    def __init__(self, root: Path, documents: list[Document]):
        self.root = root.resolve()
        self._documents = {doc.path.resolve(): doc for doc in documents}

    def __iter__(self):
        return iter(self._documents.values())

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, path: Path) -> Document | None:
        key = path.resolve()
        if key not in self._documents:
            if not key.is_file():
                return None
            try:
                self._documents[key] = parse_document(key)
            except LessonError:
                return None
        return self._documents[key]

    def resolve_target(self, document: Document, target: str) -> tuple[Path | None, str]:
        """Resolve a link target to (path, fragment).

        The path is None for same-document anchors like "#deep-dive".
        """
        path_part, _, fragment = target.partition("#")
        path_part = unquote(path_part.split("?", 1)[0])
        if not path_part:
            return None, unquote(fragment)
        if path_part.startswith("/"):
            resolved = self.root / path_part.lstrip("/")
        else:
            resolved = document.path.parent / path_part
        return resolved.resolve(), unquote(fragment)


def is_local(link: Link) -> bool:
    target = link.target.strip()
    if not target or link.is_external:
        return False
    if target.lower().startswith(IGNORED_SCHEMES) or "://" in target:
        return False
    return True


def _has_anchor(document: Document, fragment: str) -> bool:
    anchors = document.anchors()
    return fragment in anchors or fragment.lower() in anchors


def check_links(document: Document, index: DocumentIndex) -> list[Finding]:
    """Check every relative link and anchor in a document."""
    findings = []
    for link in document.links:
        if not is_local(link):
            continue
        resolved, fragment = index.resolve_target(document, link.target)
        kind = "Image" if link.is_image else "Link"

        if resolved is not None and not resolved.exists():
            findings.append(
                Finding(
                    path=document.path,
                    line=link.line,
                    rule="link",
                    message=f"{kind} target does not exist: {link.target}",
                )
            )
            continue

        if not fragment:
            continue
        if resolved is None:
            target_doc = document
        elif resolved.suffix.lower() == ".md":
            target_doc = index.get(resolved)
        else:
            continue
        if target_doc is not None and not _has_anchor(target_doc, fragment):
            findings.append(
                Finding(
                    path=document.path,
                    line=link.line,
                    rule="anchor",
                    message=f"No heading or anchor '#{fragment}' in {target_doc.path.name}",
                )
            )
    return findings


def find_orphans(lessons: list[Document], index: DocumentIndex) -> list[Finding]:
    """Lessons that no other document links to."""
    linked: set[Path] = set()
    for document in index:
        source = document.path.resolve()
        for link in document.links:
            if not is_local(link):
                continue
            resolved, _ = index.resolve_target(document, link.target)
            if resolved is not None and resolved != source:
                linked.add(resolved)

    return [
        Finding(
            path=lesson.path,
            line=1,
            rule="orphan",
            message="Lesson is not linked from any other document",
            severity=Severity.WARNING,
        )
        for lesson in lessons
        if lesson.path.resolve() not in linked
    ]


ProgressCallback = Callable[[int, int, str, bool], None]


def check_external_links(
    documents: list[Document],
    timeout: float = 10.0,
    workers: int = 20,
    ignore: list[str] | None = None,
    progress_callback: ProgressCallback | None = None,
) -> list[Finding]:
    """Probe every unique http(s) URL in parallel.

    Failures are warnings: remote sites come and go independently of the
    lessons.

    Args:
        documents: Documents whose external links should be checked.
        timeout: Seconds to wait for each request.
        workers: Number of concurrent requests.
        ignore: fnmatch patterns for URLs to skip.
        progress_callback: Optional callback(current, total, url, ok).
    """
    ignore = ignore or []
    occurrences: dict[str, list[tuple[Document, Link]]] = {}
    for document in documents:
        for link in document.links:
            if not link.is_external:
                continue
            if any(fnmatch.fnmatch(link.target, pattern) for pattern in ignore):
                continue
            occurrences.setdefault(link.target, []).append((document, link))

    urls = sorted(occurrences)
    if not urls:
        return []

    findings = []
    with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
        results = executor.map(lambda url: (url, probe_url(url, timeout)), urls)
        for i, (url, status) in enumerate(results, 1):
            ok = isinstance(status, int) and status < 400
            if progress_callback:
                progress_callback(i, len(urls), url, ok)
            if ok:
                continue
            detail = f"HTTP {status}" if isinstance(status, int) else status
            for document, link in occurrences[url]:
                findings.append(
                    Finding(
                        path=document.path,
                        line=link.line,
                        rule="external-link",
                        message=f"{url} is unreachable ({detail})",
                        severity=Severity.WARNING,
                    )
                )
    return findings
