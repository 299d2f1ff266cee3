"""Command-line interface for the SQL lesson linter."""

import json
import sys
from pathlib import Path

import click

from .checks import CHECKS, Project, load_project, run_checks, select_documents
from .config import ConfigError, LintConfig, load_config
from .document import CodeBlock, Document, LessonError, parse_document, slugify
from .findings import Finding, Severity, findings_to_json, summarize
from .knowledge import find_knowledge_checks
from .paths import find_project_root
from .runner import BlockRun, RunnerError, SnippetRunner
from .structure import normalize_title


def _load(root: Path | None) -> tuple[LintConfig, Project]:
    project_root = (root or find_project_root()).resolve()
    try:
        config = load_config(project_root)
        project = load_project(config)
    except (ConfigError, LessonError) as e:
        raise click.ClickException(str(e)) from e
    return config, project


def _select(project: Project, paths: tuple[Path, ...]) -> list[Document]:
    try:
        return select_documents(project, list(paths))
    except FileNotFoundError as e:
        raise click.ClickException(str(e)) from e


def _relative(path: Path, root: Path) -> Path:
    try:
        return path.relative_to(root)
    except ValueError:
        return path


def _echo_finding(finding: Finding, root: Path) -> None:
    if finding.severity is Severity.ERROR:
        label = click.style("error", fg="red")
    else:
        label = click.style("warning", fg="yellow")
    message, *detail = finding.message.splitlines()
    click.echo(f"{finding.location(root)}  {label}  [{finding.rule}] {message}")
    for line in detail:
        click.echo(f"    {line}")


def _echo_summary(findings: list[Finding], documents: int) -> None:
    counts = summarize(findings)
    errors, warnings = counts[Severity.ERROR.value], counts[Severity.WARNING.value]
    if not errors and not warnings:
        click.echo(click.style(f"All {documents} documents OK.", fg="green"))
        return
    color = "red" if errors else "yellow"
    click.echo(click.style(f"{errors} error(s), {warnings} warning(s) in {documents} documents.", fg=color))


def _failed(findings: list[Finding], strict: bool) -> bool:
    counts = summarize(findings)
    return bool(counts[Severity.ERROR.value] or (strict and counts[Severity.WARNING.value]))


root_option = click.option(
    "--root",
    "-r",
    type=click.Path(path_type=Path, file_okay=False, exists=True),
    default=None,
    help="Project root (default: nearest directory with lesson-lint.toml, .git or pyproject.toml).",
)


@click.group()
@click.version_option()
def cli() -> None:
    """Lint and test Markdown SQL lessons.

    Checks navigation links, knowledge-check blocks, lesson structure and
    the syntax of fenced SQL, and runs the SQL against a disposable
    database to compare it with the output shown in the lesson.
    """
    pass


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path, exists=True))
@root_option
@click.option(
    "--only",
    "-k",
    type=click.Choice(CHECKS),
    multiple=True,
    help="Run only this check (repeatable).",
)
@click.option(
    "--external",
    "-e",
    is_flag=True,
    help="Also check http(s) links over the network.",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Treat warnings as failures.",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output findings as JSON.",
)
def check(
    paths: tuple[Path, ...],
    root: Path | None,
    only: tuple[str, ...],
    external: bool,
    strict: bool,
    output_json: bool,
) -> None:
    """Run static checks on lessons.

    PATHS limits the report to these files or directories (default: every
    Markdown document in the project). Links are always resolved against
    the whole project.
    """
    config, project = _load(root)
    documents = _select(project, paths)

    def progress(current: int, total: int, url: str, ok: bool) -> None:
        status = click.style("OK", fg="green") if ok else click.style("FAIL", fg="red")
        click.echo(f"  [{current}/{total}] {url} ... {status}", err=True)

    findings = run_checks(
        project,
        documents,
        only=list(only) or None,
        external=external,
        progress_callback=None if output_json else progress,
    )

    if output_json:
        print(json.dumps(findings_to_json(findings, config.root), indent=2))
    else:
        for finding in findings:
            _echo_finding(finding, config.root)
        if findings:
            click.echo()
        _echo_summary(findings, len(documents))

    if _failed(findings, strict):
        sys.exit(1)


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(path_type=Path, exists=True))
@root_option
@click.option(
    "--database-url",
    "-d",
    default=None,
    help="SQLAlchemy URL of the server to run against (e.g. mysql+pymysql://root@localhost:3306).",
)
@click.option(
    "--keep-database",
    is_flag=True,
    help="Keep scratch databases after the run for inspection.",
)
@click.option(
    "--show-output",
    "-s",
    is_flag=True,
    help="Print the result of every statement.",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output findings as JSON.",
)
def run(
    paths: tuple[Path, ...],
    root: Path | None,
    database_url: str | None,
    keep_database: bool,
    show_output: bool,
    output_json: bool,
) -> None:
    """Execute lesson SQL against a disposable database.

    Every document runs in its own scratch database. Result sets are
    compared with the expected-output block that follows an SQL block.
    Mark blocks with <!-- lesson-lint: no-run --> or
    <!-- lesson-lint: expect-error --> to change how they are run.
    """
    config, project = _load(root)
    url = database_url or config.database_url
    if not url:
        raise click.ClickException(
            "No database URL configured.\n"
            "Pass --database-url, set LESSON_LINT_DATABASE_URL, or add database_url to lesson-lint.toml."
        )

    documents = [doc for doc in _select(project, paths) if doc.sql_blocks()]
    try:
        runner = SnippetRunner(url, keep_database=keep_database)
    except RunnerError as e:
        raise click.ClickException(str(e)) from e

    def progress(block_run: BlockRun) -> None:
        block = block_run.block
        if block_run.skipped:
            status = click.style("SKIPPED", fg="cyan")
        elif block_run.failed and not block.has_directive("expect-error"):
            status = click.style("FAIL", fg="red")
        else:
            status = click.style("OK", fg="green")
        click.echo(f"  line {block.start_line}: {len(block_run.results)} statement(s) ... {status}")
        if show_output:
            for outcome in block_run.results:
                click.echo(f"    > {outcome.statement.text.splitlines()[0]}")
                for line in outcome.render().splitlines():
                    click.echo(f"    {line}")

    findings: list[Finding] = []
    for document in documents:
        if not output_json:
            click.echo(click.style(f"=== {_relative(document.path, config.root)} ===", bold=True))
        try:
            doc_run = runner.run_document(document, progress_callback=None if output_json else progress)
        except RunnerError as e:
            raise click.ClickException(str(e)) from e
        findings.extend(doc_run.findings)
        if not output_json:
            if doc_run.database and keep_database:
                click.echo(f"  Kept database: {doc_run.database}")
            click.echo()

    if output_json:
        print(json.dumps(findings_to_json(findings, config.root), indent=2))
    else:
        for finding in findings:
            _echo_finding(finding, config.root)
        if findings:
            click.echo()
        _echo_summary(findings, len(documents))

    if _failed(findings, strict=False):
        sys.exit(1)


def _block_name(document: Document, block: CodeBlock) -> str:
    """Name a block after the heading above it."""
    above = [h for h in document.headings if h.line < block.start_line]
    return slugify(above[-1].title).strip("-") if above else "block"


@cli.command()
@click.argument(
    "lesson",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Write each SQL block to a numbered .sql file in this directory.",
)
def extract(lesson: Path, output: Path | None) -> None:
    """Extract the fenced SQL blocks of a lesson.

    LESSON is a Markdown file. Without --output the SQL is printed, each
    block preceded by a comment naming its source line.

    Example:
        lesson-lint extract lessons/05-transactions.md -o build/sql
    """
    try:
        document = parse_document(lesson)
    except LessonError as e:
        raise click.ClickException(str(e)) from e

    blocks = document.sql_blocks()
    if not blocks:
        click.echo(f"No SQL blocks in {lesson}")
        return

    if output is None:
        for block in blocks:
            click.echo(f"-- {lesson.name}:{block.start_line}")
            click.echo(block.content.rstrip())
            click.echo()
        return

    output.mkdir(parents=True, exist_ok=True)
    for i, block in enumerate(blocks, 1):
        target = output / f"{i:02d}_{_block_name(document, block) or 'block'}.sql"
        with open(target, "w", encoding="utf-8") as f:
            f.write(f"-- {lesson.name}:{block.start_line}\n")
            f.write(block.content.rstrip() + "\n")
        click.echo(f"  {target}")
    click.echo(f"Extracted {len(blocks)} SQL blocks to {output}")


@cli.command()
@root_option
def status(root: Path | None) -> None:
    """Show an overview of the lessons.

    Lists each lesson with its sections, SQL blocks, knowledge checks
    and links.
    """
    config, project = _load(root)

    if not project.lessons:
        click.echo("No lessons found.")
        click.echo(f"Expected location: {config.lessons_path}")
        return

    click.echo(f"Lessons in: {config.lessons_path}")
    click.echo()

    required = [normalize_title(s) for s in config.required_sections]
    for lesson in project.lessons:
        present = {normalize_title(h.title) for h in lesson.sections(level=2)}
        missing = [name for name, key in zip(config.required_sections, required) if key not in present]
        checks, _ = find_knowledge_checks(lesson)
        internal = [link for link in lesson.links if not link.is_external]

        click.echo(click.style(f"{_relative(lesson.path, config.root)}:", bold=True) + f" {lesson.title or '(untitled)'}")
        sections = f"{len(required) - len(missing)}/{len(required)}"
        if missing:
            click.echo(f"  Sections: {sections} " + click.style(f"(missing: {', '.join(missing)})", fg="yellow"))
        else:
            click.echo(f"  Sections: {sections}")
        click.echo(f"  SQL blocks: {len(lesson.sql_blocks())}")
        click.echo(f"  Knowledge checks: {len(checks)}")
        click.echo(f"  Links: {len(internal)} internal, {len(lesson.links) - len(internal)} external")
        click.echo()
