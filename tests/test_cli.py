"""CLI parser and build command tests."""

from __future__ import annotations

import pytest

from svgpack.cli import _build_parser, main
from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SVGPACK_STRICT", raising=False)
    monkeypatch.delenv("SVGPACK_SIZE_CEILING", raising=False)


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "build"])
    assert args.verbose is True
    assert args.command == "build"
    assert args.path == "."


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["serve", "--verbose", "--port", "9000"])
    assert args.verbose is True
    assert args.command == "serve"
    assert args.port == 9000


def test_cli_flags_default_to_configuration() -> None:
    args = _build_parser().parse_args(["build"])
    assert args.strict is None
    assert args.minify is None


def test_build_command_writes_output(
    project: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    project.basic_app()

    main(["build", str(project.root)])

    output = project.root / "dist" / "app.svg"
    assert output.exists()
    assert (project.root / ".svgpack" / "cache.json").exists()
    assert "Wrote" in capsys.readouterr().out


def test_build_command_exits_non_zero_on_errors(
    project: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    project.write({"app.js": "run();\n"})

    with pytest.raises(SystemExit) as excinfo:
        main(["build", str(project.root), "-o", str(project.root / "out.svg")])

    assert excinfo.value.code == 1
    assert not (project.root / "out.svg").exists()
    assert "missing-metadata" in capsys.readouterr().out
