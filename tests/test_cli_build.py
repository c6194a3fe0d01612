from __future__ import annotations

import re
from pathlib import Path

from typer.testing import CliRunner

from postwright import __version__
from postwright.cli import app


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _write_project(root: Path, *, body: str = "Hello there.") -> None:
    _write(root / "postwright.yml", "project_name: CLI Blog\n")
    _write(
        root / "content" / "_posts" / "2024-03-01-first.md",
        f"---\nlayout: post\ntitle: First\ndate: 2024-03-01 08:00:00 +0000\ncategories: intro\n---\n{body}\n",
    )


def test_build_writes_site_and_summary() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        _write_project(Path("."))

        result = runner.invoke(app, ["build"])

        assert result.exit_code == 0, result.output
        assert "Build complete" in result.output
        assert Path("site/2024/03/01/first/index.html").exists()
        assert Path("site/categories/intro/index.html").exists()
        assert Path("site/build-report.json").exists()


def test_build_accepts_config_in_another_directory(tmp_path: Path) -> None:
    project = tmp_path / "blog"
    _write_project(project)

    result = CliRunner().invoke(app, ["build", "--config", str(project / "postwright.yml")])

    assert result.exit_code == 0, result.output
    assert (project / "site" / "index.html").exists()


def test_build_strict_flag_fails_on_broken_reference() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        _write_project(Path("."), body="![x](/assets/missing.png)")

        lenient = runner.invoke(app, ["build"])
        assert lenient.exit_code == 0, lenient.output
        assert re.search(r"1\s+missing\s+asset", lenient.output)

        strict = runner.invoke(app, ["build", "--strict", "--clean"])
        assert strict.exit_code == 1
        assert "Build failed" in strict.output
        assert re.search(r"strict\s+mode", strict.output)


def test_build_reports_fatal_errors_with_location() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        _write_project(Path("."))
        _write(Path("content/bad.md"), "---\nlayout: post\ntitle: No date\n---\n")

        result = runner.invoke(app, ["build"])

        assert result.exit_code == 1
        assert "Build failed" in result.output
        assert "date" in result.output
        assert not Path("site").exists()


def test_missing_config_is_a_bad_parameter() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(app, ["build", "--config", "nope.yml"])

        assert result.exit_code != 0


def test_unknown_permalink_placeholder_is_a_bad_parameter() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        _write_project(Path("."))
        _write(Path("postwright.yml"), 'post_permalink: "/{lang}/{slug}/"\n')

        result = runner.invoke(app, ["build"])

        assert result.exit_code == 2
        assert not isinstance(result.exception, KeyError)
        assert not Path("site").exists()


def test_clean_removes_output() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        _write_project(Path("."))
        assert runner.invoke(app, ["build"]).exit_code == 0

        result = runner.invoke(app, ["clean"])

        assert result.exit_code == 0, result.output
        assert "Clean complete" in result.output
        assert not Path("site").exists()

        again = runner.invoke(app, ["clean"])
        assert "Skipping" in again.output


def test_version_option() -> None:
    result = CliRunner().invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
