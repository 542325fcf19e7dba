import json

import pytest
from click.testing import CliRunner

from openapi_assertions.cli import main


@pytest.fixture(autouse=True)
def _keep_logging_untouched(monkeypatch):
    monkeypatch.setattr("openapi_assertions.cli.configure_logging", lambda level, fmt: None)


def _write_response(tmp_path, payload):
    path = tmp_path / "response.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


class TestCliEndpoints:
    def test_lists_coverage_universe(self, petstore_path):
        result = CliRunner().invoke(main, ["endpoints", str(petstore_path)])
        assert result.exit_code == 0
        assert "GET     /pets 200,DEFAULT" in result.output
        assert "DELETE  /pets/{petId} 204" in result.output
        assert "7 endpoints in 5 paths." in result.output

    def test_bad_spec(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{", encoding="utf-8")
        result = CliRunner().invoke(main, ["endpoints", str(bad)])
        assert result.exit_code == 1
        assert "Invalid JSON" in result.output


class TestCliValidate:
    def test_valid_response(self, petstore_path, tmp_path):
        response = _write_response(
            tmp_path,
            {"method": "GET", "url": "/pets/1", "status": 200, "body": {"id": 1, "name": "Fluffy"}},
        )
        result = CliRunner().invoke(main, ["validate", str(petstore_path), "-r", str(response)])
        assert result.exit_code == 0
        assert "OK" in result.output

    def test_invalid_response(self, petstore_path, tmp_path):
        response = _write_response(
            tmp_path, {"method": "GET", "url": "/pets/1", "status": 200, "body": {"id": 1}}
        )
        result = CliRunner().invoke(main, ["validate", str(petstore_path), "-r", str(response)])
        assert result.exit_code == 1
        assert "'name' is a required property" in result.output

    def test_base_path_option(self, petstore_path, tmp_path):
        response = _write_response(
            tmp_path,
            {"method": "GET", "url": "/api/v1/pets/1", "status": 200, "body": {"id": 1, "name": "Rex"}},
        )
        result = CliRunner().invoke(
            main,
            ["validate", str(petstore_path), "-r", str(response), "--base-path", "/api/v1"],
        )
        assert result.exit_code == 0

    def test_unrecognized_response_shape(self, petstore_path, tmp_path):
        response = _write_response(tmp_path, {"hello": "world"})
        result = CliRunner().invoke(main, ["validate", str(petstore_path), "-r", str(response)])
        assert result.exit_code == 1
        assert "Unknown response format" in result.output

    def test_invalid_response_file(self, petstore_path, tmp_path):
        response = tmp_path / "response.json"
        response.write_text("{oops", encoding="utf-8")
        result = CliRunner().invoke(main, ["validate", str(petstore_path), "-r", str(response)])
        assert result.exit_code == 1
        assert "Invalid response file" in result.output


class TestCliReport:
    def test_prints_uncovered(self, tmp_path):
        export = tmp_path / "coverage.json"
        export.write_text(
            json.dumps([{"route": "/pets", "method": "GET", "statuses": ["404", "500"]}]),
            encoding="utf-8",
        )
        result = CliRunner().invoke(main, ["report", str(export)])
        assert result.exit_code == 0
        assert "Uncovered endpoints (2):" in result.output
        assert "/pets" in result.output

    def test_all_covered(self, tmp_path):
        export = tmp_path / "coverage.json"
        export.write_text("[]", encoding="utf-8")
        result = CliRunner().invoke(main, ["report", str(export)])
        assert result.exit_code == 0
        assert "All endpoints covered!" in result.output

    def test_invalid_file(self, tmp_path):
        export = tmp_path / "coverage.json"
        export.write_text('[{"route": "/pets"}]', encoding="utf-8")
        result = CliRunner().invoke(main, ["report", str(export)])
        assert result.exit_code == 1
        assert "Invalid coverage file" in result.output
