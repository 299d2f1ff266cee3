"""Configuration loading for lesson-lint.

Settings live in lesson-lint.toml at the project root, or in the
[tool.lesson-lint] table of pyproject.toml:

    lessons_dir = "lessons"
    exclude = ["drafts/*"]
    dialect = "mysql"
    database_url = "mysql+pymysql://root@localhost:3306"

    [external_links]
    timeout = 10
    workers = 20
    ignore = ["https://localhost*"]

The database URL can also come from the LESSON_LINT_DATABASE_URL
environment variable or a .env file, which take precedence over the file.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlglot import Dialect

from .paths import config_path, env_path, pyproject_path
from .structure import DEFAULT_SECTIONS

DATABASE_URL_ENV = "LESSON_LINT_DATABASE_URL"


class ConfigError(ValueError):
    """Raised when the configuration file is malformed."""


@dataclass
class ExternalLinkConfig:
    timeout: float = 10.0
    workers: int = 20
    ignore: list[str] = field(default_factory=list)


@dataclass
class LintConfig:
    root: Path
    lessons_dir: str = "lessons"
    exclude: list[str] = field(default_factory=list)
    dialect: str = "mysql"
    required_sections: list[str] = field(default_factory=lambda: list(DEFAULT_SECTIONS))
    database_url: str | None = None
    external_links: ExternalLinkConfig = field(default_factory=ExternalLinkConfig)

    @property
    def lessons_path(self) -> Path:
        return self.root / self.lessons_dir


def _read_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e


def _load_settings(root: Path) -> dict[str, Any]:
    # Priority 1: lesson-lint.toml
    path = config_path(root)
    if path.exists():
        return _read_toml(path)

    # Priority 2: [tool.lesson-lint] in pyproject.toml
    path = pyproject_path(root)
    if path.exists():
        return _read_toml(path).get("tool", {}).get("lesson-lint", {})

    return {}


def _read_env_file(path: Path) -> dict[str, str]:
    values = {}
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip().strip('"').strip("'")
    return values


def _expect(settings: dict[str, Any], key: str, kind: type | tuple[type, ...], default: Any) -> Any:
    value = settings.get(key, default)
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' must be of type {getattr(kind, '__name__', kind)}, got {value!r}")
    return value


def _expect_str_list(settings: dict[str, Any], key: str, default: list[str]) -> list[str]:
    value = _expect(settings, key, list, default)
    if not all(isinstance(item, str) for item in value):
        raise ConfigError(f"'{key}' must be a list of strings")
    return list(value)


def resolve_database_url(root: Path, configured: str | None) -> str | None:
    """Pick the database URL: environment, then .env, then the config file."""
    # Priority 1: environment
    if url := os.environ.get(DATABASE_URL_ENV):
        return url

    # Priority 2: .env
    env_file = env_path(root)
    if env_file.exists():
        if url := _read_env_file(env_file).get(DATABASE_URL_ENV):
            return url

    return configured


def _check_dialect(name: str) -> str:
    try:
        Dialect.get_or_raise(name)
    except ValueError as e:
        raise ConfigError(f"'dialect': {e}") from e
    return name


def load_config(root: Path) -> LintConfig:
    """Load the configuration for a project root."""
    settings = _load_settings(root)

    external = _expect(settings, "external_links", dict, {})
    external_config = ExternalLinkConfig(
        timeout=float(_expect(external, "timeout", (int, float), 10.0)),
        workers=_expect(external, "workers", int, 20),
        ignore=_expect_str_list(external, "ignore", []),
    )
    if external_config.workers < 1:
        raise ConfigError("'external_links.workers' must be at least 1")

    return LintConfig(
        root=root,
        lessons_dir=_expect(settings, "lessons_dir", str, "lessons"),
        exclude=_expect_str_list(settings, "exclude", []),
        dialect=_check_dialect(_expect(settings, "dialect", str, "mysql")),
        required_sections=_expect_str_list(settings, "required_sections", list(DEFAULT_SECTIONS)),
        database_url=resolve_database_url(root, _expect(settings, "database_url", (str, type(None)), None)),
        external_links=external_config,
    )
