"""Markdown document model for lesson files.

Parses just enough Markdown to check lessons: ATX headings (with GitHub
anchor slugs), fenced code blocks, links and images, and explicit HTML
anchors. Anything inside a code fence or an inline code span is ignored
when collecting headings and links.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from pathlib import Path

SQL_LANGUAGES = {"sql", "mysql"}
OUTPUT_LANGUAGES = {"", "text", "output", "result", "console"}

FENCE_OPEN_RE = re.compile(r"^(\s*)(`{3,}|~{3,})(.*)$")
HEADING_RE = re.compile(r"^ {0,3}(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
INLINE_CODE_RE = re.compile(r"(`+)(.+?)\1")
LINK_RE = re.compile(
    r"(!?)\[((?:[^\[\]]|\[[^\]]*\])*)\]"  # [text], one level of nested brackets
    r"\(\s*<?([^)\s>]+)>?(?:\s+[\"'(][^)]*[\"')])?\s*\)"  # (target "title")
)
REFERENCE_DEF_RE = re.compile(r"^ {0,3}\[([^\]]+)\]:\s*<?(\S+?)>?(?:\s+.*)?$")
HTML_LINK_RE = re.compile(r"<(a|img)\b[^>]*?\b(?:href|src)\s*=\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
HTML_ANCHOR_RE = re.compile(r"<[a-zA-Z][^>]*?\b(?:id|name)\s*=\s*[\"']([^\"']+)[\"']")
HTML_TAG_RE = re.compile(r"<[^>]+>")
DIRECTIVE_RE = re.compile(r"^\s*<!--\s*lesson-lint:\s*(.+?)\s*-->\s*$")


class LessonError(ValueError):
    """Raised when a document cannot be read."""


@dataclass
class Heading:
    level: int
    title: str
    line: int
    anchor: str = ""


@dataclass
class Link:
    text: str
    target: str
    line: int
    is_image: bool = False

    @property
    def is_external(self) -> bool:
        return self.target.startswith(("http://", "https://"))


@dataclass
class CodeBlock:
    """A fenced code block.

    start_line is the line of the opening fence (1-based); the first content
    line is start_line + 1.
    """

    info: str
    content: str
    start_line: int
    end_line: int
    closed: bool = True
    directives: set[str] = field(default_factory=set)

    @property
    def language(self) -> str:
        parts = self.info.split()
        return parts[0].lower().strip("{}.") if parts else ""

    @property
    def is_sql(self) -> bool:
        return self.language in SQL_LANGUAGES

    @property
    def looks_like_output(self) -> bool:
        if self.language not in OUTPUT_LANGUAGES:
            return False
        return any(
            line.lstrip().startswith("+-") or line.strip().lower().startswith("empty set")
            for line in self.content.splitlines()
        )

    def has_directive(self, name: str) -> bool:
        return name in self.directives


@dataclass
class Document:
    """A parsed Markdown document."""

    path: Path
    lines: list[str]
    title: str | None = None
    headings: list[Heading] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    html_anchors: set[str] = field(default_factory=set)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def sql_blocks(self) -> list[CodeBlock]:
        return [b for b in self.code_blocks if b.is_sql]

    def anchors(self) -> set[str]:
        return {h.anchor for h in self.headings} | self.html_anchors

    def sections(self, level: int = 2) -> list[Heading]:
        return [h for h in self.headings if h.level == level]

    def expected_output_for(self, block: CodeBlock) -> CodeBlock | None:
        """Return the output block that directly follows an SQL block."""
        try:
            index = self.code_blocks.index(block)
        except ValueError:
            return None
        if index + 1 >= len(self.code_blocks):
            return None
        candidate = self.code_blocks[index + 1]
        between = self.lines[block.end_line : candidate.start_line - 1]
        if any(line.strip() for line in between):
            return None
        return candidate if candidate.looks_like_output else None

    def masked_lines(self) -> list[str]:
        """Lines with code blocks and inline code blanked out, keeping line numbers."""
        masked = [_strip_inline_code(line) for line in self.lines]
        for block in self.code_blocks:
            for i in range(block.start_line - 1, block.end_line):
                masked[i] = ""
        return masked


def slugify(title: str) -> str:
    """GitHub-style heading anchor."""
    text = HTML_TAG_RE.sub("", title)
    text = LINK_RE.sub(lambda m: m.group(2), text)
    text = text.replace("`", "").replace("*", "")
    text = re.sub(r"[^\w\- ]", "", text.lower())
    return text.replace(" ", "-")


def _strip_inline_code(line: str) -> str:
    return INLINE_CODE_RE.sub(lambda m: " " * len(m.group(0)), line)


def _directives_above(lines: list[str], fence_index: int) -> set[str]:
    directives: set[str] = set()
    i = fence_index - 1
    while i >= 0:
        line = lines[i]
        if not line.strip():
            i -= 1
            continue
        match = DIRECTIVE_RE.match(line)
        if not match:
            break
        directives.update(d.lower() for d in re.split(r"[\s,]+", match.group(1)) if d)
        i -= 1
    return directives


def parse_markdown(text: str, path: Path) -> Document:
    """Parse Markdown text into a Document."""
    lines = text.splitlines()
    doc = Document(path=path, lines=lines)
    seen_slugs: dict[str, int] = {}

    i = 0
    while i < len(lines):
        line = lines[i]
        fence = FENCE_OPEN_RE.match(line)
        if fence and not (fence.group(2)[0] == "`" and "`" in fence.group(3)):
            indent, marker, info = fence.groups()
            close_re = re.compile(rf"^\s*{re.escape(marker[0])}{{{len(marker)},}}\s*$")
            body: list[str] = []
            j = i + 1
            closed = False
            while j < len(lines):
                if close_re.match(lines[j]):
                    closed = True
                    break
                body.append(lines[j][len(indent) :] if lines[j].startswith(indent) else lines[j].lstrip())
                j += 1
            doc.code_blocks.append(
                CodeBlock(
                    info=info.strip(),
                    content="\n".join(body),
                    start_line=i + 1,
                    end_line=j + 1 if closed else len(lines),
                    closed=closed,
                    directives=_directives_above(lines, i),
                )
            )
            i = j + 1
            continue

        heading = HEADING_RE.match(line)
        if heading:
            level = len(heading.group(1))
            title = heading.group(2).strip()
            slug = slugify(title)
            count = seen_slugs.get(slug, 0)
            seen_slugs[slug] = count + 1
            anchor = slug if count == 0 else f"{slug}-{count}"
            doc.headings.append(Heading(level=level, title=title, line=i + 1, anchor=anchor))
            if level == 1 and doc.title is None:
                doc.title = title

        scan = _strip_inline_code(line)
        for match in LINK_RE.finditer(scan):
            doc.links.append(
                Link(text=match.group(2), target=match.group(3), line=i + 1, is_image=bool(match.group(1)))
            )
        reference = REFERENCE_DEF_RE.match(scan)
        if reference:
            doc.links.append(Link(text=reference.group(1), target=reference.group(2), line=i + 1))
        for match in HTML_LINK_RE.finditer(scan):
            doc.links.append(
                Link(text="", target=match.group(2), line=i + 1, is_image=match.group(1).lower() == "img")
            )
        doc.html_anchors.update(HTML_ANCHOR_RE.findall(scan))
        i += 1

    return doc


def parse_document(path: Path) -> Document:
    """Read and parse a Markdown file."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LessonError(f"Cannot read {path}: {e}") from e
    return parse_markdown(text, path)


def is_excluded(path: Path, root: Path, exclude: list[str]) -> bool:
    try:
        relative = path.relative_to(root).as_posix()
    except ValueError:
        relative = path.as_posix()
    return any(fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(path.name, pattern) for pattern in exclude)


def discover_documents(root: Path, exclude: list[str] | None = None) -> list[Path]:
    """Find Markdown files under root, skipping hidden directories.

    Files are returned in sorted order (01-intro.md, 02-select.md, etc.).
    """
    exclude = exclude or []
    found = []
    for path in sorted(root.rglob("*.md")):
        relative_parts = path.relative_to(root).parts
        if any(part.startswith(".") for part in relative_parts[:-1]):
            continue
        if is_excluded(path, root, exclude):
            continue
        found.append(path)
    return found
