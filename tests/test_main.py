"""Tests for the command line entry point."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

import main
from providers import ProviderCallError

from conftest import ScriptedProvider, build_pack_payload, build_strategy_payload, build_verdict_payload


@pytest.fixture
def intake_file(tmp_path, intake):
    path = tmp_path / "intake.json"
    path.write_text(json.dumps(intake.to_json_dict(), ensure_ascii=False), encoding="utf-8")
    return path


def invoke(tmp_path, intake_file, provider, *extra):
    args = [
        "--intake", str(intake_file),
        "--output", str(tmp_path / "out"),
        "--store-dir", str(tmp_path / "packs"),
        *extra,
    ]
    with patch("main.get_provider", return_value=provider) as get_provider:
        result = CliRunner().invoke(main.main, args)
    return result, get_provider


class TestMain:
    """Test the site generation command."""

    def test_writes_site_and_summary(self, tmp_path, intake_file):
        provider = ScriptedProvider({
            "strategist": build_strategy_payload(),
            "content-pack-generator": build_pack_payload(),
            "editor": build_verdict_payload(),
        })

        result, get_provider = invoke(tmp_path, intake_file, provider, "--model", "gpt-4o-mini")

        assert result.exit_code == 0, result.output
        project_dir = tmp_path / "out" / "acme-gmbh"
        assert (project_dir / "src" / "app" / "page.tsx").exists()
        assert (project_dir / "package.json").exists()
        summary = json.loads((project_dir / "pipeline_result.json").read_text(encoding="utf-8"))
        assert summary["success"] is True
        assert "src/content/site.ts" in summary["files"]
        assert len([m for m in summary["todoMarkers"] if m["required"]]) == 2
        assert (tmp_path / "packs" / "acme-gmbh.json").exists()
        get_provider.assert_called_once()
        assert get_provider.call_args.args[1] == "gpt-4o-mini"
        assert provider.calls[0]["model"] == "gpt-4o-mini"

    def test_failed_run_exits_with_error(self, tmp_path, intake_file):
        provider = ScriptedProvider({"strategist": ProviderCallError("invalid api key", retryable=False)})

        result, _ = invoke(tmp_path, intake_file, provider)

        assert result.exit_code == 1
        project_dir = tmp_path / "out" / "acme-gmbh"
        summary = json.loads((project_dir / "pipeline_result.json").read_text(encoding="utf-8"))
        assert summary["success"] is False
        assert summary["errors"][0]["code"] == "PROVIDER_ERROR"
        assert not (project_dir / "src").exists()

    def test_invalid_intake(self, tmp_path):
        path = tmp_path / "intake.json"
        path.write_text("{\"id\": ", encoding="utf-8")

        result, _ = invoke(tmp_path, path, ScriptedProvider())

        assert result.exit_code == 1
        assert "invalid intake" in result.output


class TestWriteSite:
    """Test write_site path handling."""

    def test_refuses_paths_outside_project(self, tmp_path):
        from contracts import GeneratedFile, PipelineResult

        result = PipelineResult(
            run_id="run_test",
            success=True,
            generated_files=[GeneratedFile(path="../escape.txt", content="x")],
        )

        with pytest.raises(main.click.ClickException):
            main.write_site(result, tmp_path / "site")
        assert not (tmp_path / "escape.txt").exists()
