"""Shared fixtures: a small lesson project on disk."""

from pathlib import Path

import pytest

SELECT_LESSON = """\
# Lesson 1: SELECT Basics

## 🎯 Why This Matters

Every report starts with a query. Jump to [the concepts](#key-concepts).

## Key Concepts

A table holds rows. Inline code like `[not a link](nowhere.md)` is ignored.

## Deep Dive

```sql
CREATE TABLE customers (id INT PRIMARY KEY, name VARCHAR(50) NOT NULL);
INSERT INTO customers (id, name) VALUES (1, 'Alice'), (2, 'Bob');
```

## Hands-On Practice

```sql
SELECT id, name FROM customers ORDER BY id;
```

```text
+----+-------+
| id | name  |
+----+-------+
|  1 | Alice |
|  2 | Bob   |
+----+-------+
2 rows in set (0.00 sec)
```

## Common Pitfalls

Forgetting ORDER BY means the row order is not guaranteed.

## Knowledge Check

<details>
<summary>What does a SELECT statement return?</summary>

A result set.

</details>

## Further Reading

- [MySQL SELECT reference](https://dev.mysql.com/doc/refman/8.0/en/select.html)
- [Next → Aggregates](02-aggregates.md)
"""

AGGREGATE_LESSON = """\
# Lesson 2: Aggregates

## Why This Matters

Summaries answer business questions.

## Key Concepts

COUNT, SUM and AVG collapse rows.

## Deep Dive

```sql
SELECT 1 AS answer;
```

```
+--------+
| answer |
+--------+
|      1 |
+--------+
```

## Hands-On Practice

Try it yourself.

## Common Pitfalls

NULLs are skipped by COUNT(column).

## Knowledge Check

<details>
<summary>Does COUNT(*) count NULL rows?</summary>

<!-- lesson-lint: no-run -->
```sql
SELECT COUNT(*) FROM t;
```

</details>

## Further Reading

- [Back to SELECT](01-select.md#key-concepts)
"""

README = """\
# SQL Lessons

1. [SELECT basics](lessons/01-select.md)
2. [Aggregates](lessons/02-aggregates.md)
"""


def write_project(root: Path, lessons: dict[str, str] | None = None, config: str = "") -> Path:
    """Write a lesson project to root and return root."""
    lessons = lessons if lessons is not None else {
        "01-select.md": SELECT_LESSON,
        "02-aggregates.md": AGGREGATE_LESSON,
    }
    (root / "lesson-lint.toml").write_text(config, encoding="utf-8")
    (root / "README.md").write_text(README, encoding="utf-8")
    lessons_dir = root / "lessons"
    lessons_dir.mkdir(exist_ok=True)
    for name, text in lessons.items():
        (lessons_dir / name).write_text(text, encoding="utf-8")
    return root


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A complete, valid lesson project."""
    return write_project(tmp_path)


@pytest.fixture(autouse=True)
def no_database_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's database URL out of the tests."""
    monkeypatch.delenv("LESSON_LINT_DATABASE_URL", raising=False)
