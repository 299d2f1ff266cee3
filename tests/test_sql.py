"""Tests for statement splitting and SQL syntax checks."""

from pathlib import Path

from lesson_lint.document import parse_markdown
from lesson_lint.sql import check_sql, split_statements

from conftest import SELECT_LESSON


def texts(script: str) -> list[str]:
    return [s.text for s in split_statements(script)]


class TestSplitStatements:
    """Tests for split_statements."""

    def test_two_statements_with_lines(self):
        statements = split_statements("SELECT 1;\n\nSELECT 2;\n")
        assert [(s.text, s.line) for s in statements] == [("SELECT 1", 1), ("SELECT 2", 3)]

    def test_last_statement_without_delimiter(self):
        assert texts("SELECT 1;\nSELECT 2") == ["SELECT 1", "SELECT 2"]

    def test_delimiter_inside_string(self):
        assert texts("INSERT INTO t VALUES ('a;b');") == ["INSERT INTO t VALUES ('a;b')"]

    def test_escaped_and_doubled_quotes(self):
        assert texts("SELECT 'it''s';\nSELECT 'a\\';b';") == ["SELECT 'it''s'", "SELECT 'a\\';b'"]

    def test_backtick_identifier(self):
        assert texts("SELECT `odd;name` FROM t;") == ["SELECT `odd;name` FROM t"]

    def test_comments_are_removed(self):
        script = "-- setup\nSELECT 1; # trailing\n/* block\n comment */ SELECT 2;\n"
        statements = split_statements(script)
        assert [(s.text, s.line) for s in statements] == [("SELECT 1", 2), ("SELECT 2", 4)]

    def test_double_dash_needs_whitespace(self):
        assert texts("SELECT 1--1;") == ["SELECT 1--1"]

    def test_comment_only_script(self):
        assert split_statements("-- nothing to run\n/* at all */\n") == []

    def test_delimiter_command(self):
        script = (
            "DELIMITER //\n"
            "CREATE PROCEDURE p()\n"
            "BEGIN\n"
            "  SELECT 1;\n"
            "END //\n"
            "DELIMITER ;\n"
            "CALL p();\n"
        )
        statements = split_statements(script)
        assert len(statements) == 2
        assert statements[0].text.startswith("CREATE PROCEDURE p()")
        assert "SELECT 1;" in statements[0].text
        assert statements[0].text.endswith("END")
        assert statements[0].line == 2
        assert (statements[1].text, statements[1].line) == ("CALL p()", 7)

    def test_client_prompts_are_stripped(self):
        assert texts("mysql> SELECT id\n    -> FROM t;\n") == ["SELECT id\nFROM t"]

    def test_vertical_terminator(self):
        assert texts("SHOW ENGINE INNODB STATUS\\G\nSELECT 1\\g") == ["SHOW ENGINE INNODB STATUS", "SELECT 1"]


class TestCheckSql:
    """Tests for sqlglot-based syntax checking."""

    def test_valid_lesson_has_no_findings(self):
        doc = parse_markdown(SELECT_LESSON, Path("01-select.md"))
        assert check_sql(doc) == []

    def test_syntax_error_reported_at_statement_line(self):
        text = "# T\n\n```sql\nSELECT 1;\nSELECT (1, 2;\n```\n"
        doc = parse_markdown(text, Path("bad.md"))
        findings = check_sql(doc)
        assert len(findings) == 1
        assert findings[0].rule == "sql-syntax"
        assert findings[0].line == 5
        assert doc.lines[findings[0].line - 1] == "SELECT (1, 2;"

    def test_skip_directive(self):
        text = "<!-- lesson-lint: skip -->\n```sql\nSELECT ... FROM (\n```\n"
        doc = parse_markdown(text, Path("skip.md"))
        assert check_sql(doc) == []

    def test_non_sql_blocks_are_ignored(self):
        text = "```python\nprint('not sql'\n```\n"
        doc = parse_markdown(text, Path("py.md"))
        assert check_sql(doc) == []

    def test_unclosed_block_is_left_to_structure_check(self):
        doc = parse_markdown("```sql\nSELECT (\n", Path("open.md"))
        assert check_sql(doc) == []

    def test_replication_statements_are_accepted(self):
        text = (
            "<!-- lesson-lint: no-run -->\n"
            "```sql\n"
            "STOP REPLICA;\n"
            "CHANGE REPLICATION SOURCE TO SOURCE_HOST='10.0.0.1', SOURCE_PORT=3306;\n"
            "START REPLICA;\n"
            "```\n"
        )
        doc = parse_markdown(text, Path("replication.md"))
        assert check_sql(doc) == []
