"""Tests for link, anchor, orphan and external URL checks."""

from pathlib import Path

import pytest

from lesson_lint import links
from lesson_lint.checks import load_project
from lesson_lint.config import load_config
from lesson_lint.findings import Severity
from lesson_lint.links import check_external_links, check_links, find_orphans

from conftest import AGGREGATE_LESSON, SELECT_LESSON, write_project


def load(root: Path):
    return load_project(load_config(root))


def lesson(project, name: str):
    return next(doc for doc in project.lessons if doc.path.name == name)


class TestCheckLinks:
    """Tests for relative links and anchors."""

    def test_valid_project(self, project_root):
        project = load(project_root)
        for document in project.index:
            assert check_links(document, project.index) == []

    def test_missing_target(self, tmp_path):
        broken = SELECT_LESSON.replace("02-aggregates.md", "03-joins.md")
        project = load(write_project(tmp_path, {"01-select.md": broken}))
        findings = check_links(lesson(project, "01-select.md"), project.index)
        assert len(findings) == 1
        assert findings[0].rule == "link"
        assert "03-joins.md" in findings[0].message

    def test_missing_anchor_in_other_file(self, tmp_path):
        broken = AGGREGATE_LESSON.replace("#key-concepts", "#key-ideas")
        project = load(write_project(tmp_path, {"01-select.md": SELECT_LESSON, "02-aggregates.md": broken}))
        findings = check_links(lesson(project, "02-aggregates.md"), project.index)
        assert [f.rule for f in findings] == ["anchor"]
        assert "#key-ideas" in findings[0].message

    def test_missing_anchor_in_same_file(self, tmp_path):
        broken = SELECT_LESSON.replace("(#key-concepts)", "(#concepts)")
        project = load(write_project(tmp_path, {"01-select.md": broken, "02-aggregates.md": AGGREGATE_LESSON}))
        findings = check_links(lesson(project, "01-select.md"), project.index)
        assert [f.line for f in findings] == [5]

    def test_emoji_heading_anchor(self, tmp_path):
        text = SELECT_LESSON + "\nBack to [why](#-why-this-matters).\n"
        project = load(write_project(tmp_path, {"01-select.md": text, "02-aggregates.md": AGGREGATE_LESSON}))
        assert check_links(lesson(project, "01-select.md"), project.index) == []

    def test_missing_image(self, tmp_path):
        text = SELECT_LESSON + "\n![ER diagram](images/er%20diagram.png)\n"
        project = load(write_project(tmp_path, {"01-select.md": text, "02-aggregates.md": AGGREGATE_LESSON}))
        findings = check_links(lesson(project, "01-select.md"), project.index)
        assert len(findings) == 1
        assert findings[0].message.startswith("Image target does not exist")

        images = tmp_path / "lessons" / "images"
        images.mkdir()
        (images / "er diagram.png").write_bytes(b"\x89PNG")
        assert check_links(lesson(project, "01-select.md"), project.index) == []

    def test_root_relative_and_ignored_schemes(self, tmp_path):
        text = SELECT_LESSON + "\n[home](/README.md) [mail](mailto:team@example.com)\n"
        project = load(write_project(tmp_path, {"01-select.md": text, "02-aggregates.md": AGGREGATE_LESSON}))
        assert check_links(lesson(project, "01-select.md"), project.index) == []

    def test_anchor_in_excluded_document(self, tmp_path):
        write_project(tmp_path, config='exclude = ["notes/*"]\n')
        notes = tmp_path / "notes"
        notes.mkdir()
        (notes / "glossary.md").write_text("# Glossary\n\n## MVCC\n")
        (tmp_path / "lessons" / "01-select.md").write_text(
            SELECT_LESSON + "\nSee [MVCC](../notes/glossary.md#mvcc) and [locks](../notes/glossary.md#locks).\n"
        )
        project = load(tmp_path)
        findings = check_links(lesson(project, "01-select.md"), project.index)
        assert [f.rule for f in findings] == ["anchor"]
        assert "#locks" in findings[0].message


class TestFindOrphans:
    """Tests for lessons nobody links to."""

    def test_no_orphans(self, project_root):
        project = load(project_root)
        assert find_orphans(project.lessons, project.index) == []

    def test_unlinked_lesson(self, project_root):
        (project_root / "lessons" / "03-draft.md").write_text("# Draft\n\nSee [SELECT](01-select.md).\n")
        project = load(project_root)
        findings = find_orphans(project.lessons, project.index)
        assert [f.path.name for f in findings] == ["03-draft.md"]
        assert findings[0].severity is Severity.WARNING

    def test_self_link_does_not_count(self, project_root):
        (project_root / "lessons" / "03-draft.md").write_text("# Draft\n\n[top](03-draft.md#draft)\n")
        project = load(project_root)
        assert [f.path.name for f in find_orphans(project.lessons, project.index)] == ["03-draft.md"]


class TestExternalLinks:
    """Tests for network link checks, with HTTP stubbed out."""

    @pytest.fixture
    def statuses(self, monkeypatch):
        responses: dict[str, int | str] = {}
        calls: list[str] = []

        def fake_probe(url: str, timeout: float = 10.0):
            calls.append(url)
            return responses.get(url, 200)

        monkeypatch.setattr(links, "probe_url", fake_probe)
        return responses, calls

    def test_broken_url_reported_per_occurrence(self, project_root, statuses):
        responses, calls = statuses
        url = "https://dev.mysql.com/doc/refman/8.0/en/select.html"
        responses[url] = 404
        project = load(project_root)
        doc = lesson(project, "01-select.md")

        findings = check_external_links([doc, doc], workers=2)
        assert calls == [url]
        assert len(findings) == 2
        assert all(f.rule == "external-link" and f.severity is Severity.WARNING for f in findings)
        assert "HTTP 404" in findings[0].message

    def test_connection_error_message(self, project_root, statuses):
        responses, _ = statuses
        responses["https://dev.mysql.com/doc/refman/8.0/en/select.html"] = "Connection refused"
        project = load(project_root)
        findings = check_external_links(list(project.index))
        assert "Connection refused" in findings[0].message

    def test_ignore_patterns(self, project_root, statuses):
        responses, calls = statuses
        responses["https://dev.mysql.com/doc/refman/8.0/en/select.html"] = 500
        project = load(project_root)
        findings = check_external_links(list(project.index), ignore=["https://dev.mysql.com/*"])
        assert findings == []
        assert calls == []

    def test_progress_callback(self, project_root, statuses):
        seen = []
        project = load(project_root)
        check_external_links(list(project.index), progress_callback=lambda *args: seen.append(args))
        assert seen == [(1, 1, "https://dev.mysql.com/doc/refman/8.0/en/select.html", True)]


class TestProbeUrl:
    """Tests for the HEAD-then-GET probe."""

    class FakeResponse:
        def __init__(self, status_code: int):
            self.status_code = status_code

        def close(self) -> None:
            pass

    def test_falls_back_to_get(self, monkeypatch):
        from lesson_lint import utils

        monkeypatch.setattr(utils.requests, "head", lambda *a, **k: self.FakeResponse(405))
        monkeypatch.setattr(utils.requests, "get", lambda *a, **k: self.FakeResponse(200))
        assert utils.probe_url("https://example.com") == 200

    def test_request_exception(self, monkeypatch):
        from lesson_lint import utils

        def boom(*args, **kwargs):
            raise utils.requests.ConnectionError("no route to host")

        monkeypatch.setattr(utils.requests, "head", boom)
        assert utils.probe_url("https://example.com") == "no route to host"
