from pathlib import Path

import pytest
from typer.testing import CliRunner

from o2extract import cli
from o2extract.errors import EngineError, NotFound

runner = CliRunner()


@pytest.fixture(autouse=True)
def no_release_env(monkeypatch):
    monkeypatch.delenv("OVERTURE_RELEASE", raising=False)
    monkeypatch.delenv("OVERTURE_VERSION", raising=False)


def _extract_args(*extra):
    return ["extract", "out.parquet", "--theme", "buildings", "--type", "building", *extra]


def test_extract_requires_division_or_location():
    result = runner.invoke(cli.app, _extract_args())
    assert result.exit_code == 1
    assert "--division-id" in result.output


def test_extract_rejects_both_inputs():
    result = runner.invoke(cli.app, _extract_args("--division-id", "abc", "--location", "Amsterdam"))
    assert result.exit_code == 1
    assert "not both" in result.output


def test_extract_success(monkeypatch, tmp_path):
    calls = {}

    def fake_extract(output_path, theme, type_, division_id=None, location=None, limit=None, config=None):
        calls.update(output_path=output_path, theme=theme, type_=type_, division_id=division_id,
                     location=location, limit=limit, release=config.overture.release)
        return Path(output_path)

    monkeypatch.setattr(cli, "extract_division", fake_extract)
    output = tmp_path / "out.geojson"
    result = runner.invoke(cli.app, [
        "extract", str(output), "--theme", "places", "--layer", "place",
        "--division_id", "0856ffff", "--release", "2025-07-23.0", "-l", "5",
    ])

    assert result.exit_code == 0, result.output
    assert calls == {
        "output_path": str(output),
        "theme": "places",
        "type_": "place",
        "division_id": "0856ffff",
        "location": None,
        "limit": 5,
        "release": "2025-07-23.0",
    }
    assert str(output) in result.output


def test_extract_not_found(monkeypatch):
    def fake_extract(*args, **kwargs):
        raise NotFound("Atlantis")

    monkeypatch.setattr(cli, "extract_division", fake_extract)
    result = runner.invoke(cli.app, _extract_args("--location", "Atlantis"))
    assert result.exit_code == 1
    assert 'Division "Atlantis" not found' in result.output


def test_extract_engine_failure(monkeypatch):
    def fake_extract(*args, **kwargs):
        raise EngineError("Extract failed: HTTP 403")

    monkeypatch.setattr(cli, "extract_division", fake_extract)
    result = runner.invoke(cli.app, _extract_args("--division-id", "abc"))
    assert result.exit_code == 1
    assert "HTTP 403" in result.output


def test_resolve_prints_division(monkeypatch, division):
    monkeypatch.setattr(cli, "resolve_division", lambda division_id=None, location=None, config=None: division)
    result = runner.invoke(cli.app, ["resolve", "--location", "Amsterdam"])
    assert result.exit_code == 0, result.output
    assert "id: 0856ffff" in result.output
    assert "name: Amsterdam" in result.output
    assert "class: city" in result.output


def test_resolve_requires_one_input():
    result = runner.invoke(cli.app, ["resolve"])
    assert result.exit_code == 1
