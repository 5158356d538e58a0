"""
External exporter bridge: formats, settings document and process handling.
"""
import json

import pytest

from quillpub.core.exporter import (
    ExportError,
    ExportFormat,
    export_project,
    export_settings,
    run_exporter,
    temp_output_path,
    write_settings,
)


class TestFormats:

    @pytest.mark.parametrize("text,fmt", [
        ("FBX", ExportFormat.FBX),
        ("fbx", ExportFormat.FBX),
        (" alembic ", ExportFormat.ALEMBIC),
        ("Usdz", ExportFormat.USDZ),
        (ExportFormat.IMM, ExportFormat.IMM),
    ])
    def test_parse(self, text, fmt):
        assert ExportFormat.parse(text) is fmt

    def test_parse_unknown(self):
        with pytest.raises(ExportError, match="Unsupported"):
            ExportFormat.parse("OBJ")

    def test_extensions(self):
        assert {f.extension for f in ExportFormat} == {"fbx", "abc", "usd", "usdz", "imm"}


class TestSettings:

    def test_document_shape(self, tmp_path):
        settings = export_settings(tmp_path / "Quill.json", ExportFormat.USD, tmp_path / "out.usd")
        assert settings["Exporter"] == "USD"
        assert settings["InputFile"].endswith("Quill.json")
        assert settings["OutputFile"].endswith("out.usd")
        assert settings["ExtraInputs"] == []
        opts = settings["ExportOptions"]
        assert set(opts) >= {"Optimize", "Asset", "IMM", "Import"}
        assert opts["ExportHidden"] is False
        assert opts["Asset"]["Scale"] == 1.0

    def test_written_to_cache(self, tmp_path):
        cache = tmp_path / "cache"
        path = write_settings({"Exporter": "FBX"}, cache)
        assert path.parent == cache
        assert path.name.startswith("temp_export_settings_")
        assert json.loads(path.read_text(encoding="utf-8")) == {"Exporter": "FBX"}

    def test_temp_output_path(self, tmp_path):
        path = temp_output_path(ExportFormat.ALEMBIC, tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("temp_")
        assert path.suffix == ".abc"


class TestRun:

    def test_success(self, sample_project_file, tmp_path, fake_exporter):
        out = tmp_path / "Forest.fbx"
        result = export_project(sample_project_file, "fbx", out, exporter=fake_exporter, cache_dir=tmp_path)
        assert result == out
        assert out.read_text(encoding="utf-8") == f"FBX from {sample_project_file}"

    def test_temp_export(self, sample_project_file, tmp_path, fake_exporter):
        cache = tmp_path / "cache"
        result = export_project(
            sample_project_file, ExportFormat.IMM, exporter=fake_exporter, temp=True, cache_dir=cache,
        )
        assert result.parent == cache
        assert result.suffix == ".imm"
        assert result.exists()

    def test_cancelled_without_output(self, sample_project_file, fake_exporter, tmp_path):
        with pytest.raises(ExportError, match="cancelled"):
            export_project(sample_project_file, "FBX", None, exporter=fake_exporter, cache_dir=tmp_path)

    def test_non_zero_exit(self, sample_project_file, tmp_path, failing_exporter):
        with pytest.raises(ExportError, match=r"exit code 3.*Corrupt stroke data"):
            export_project(sample_project_file, "FBX", tmp_path / "o.fbx",
                           exporter=failing_exporter, cache_dir=tmp_path)

    def test_missing_binary(self, tmp_path):
        settings = write_settings({}, tmp_path)
        with pytest.raises(ExportError, match="not found"):
            run_exporter(settings, exporter=tmp_path / "no-such-exporter")

    def test_no_output_file(self, sample_project_file, tmp_path, lazy_exporter):
        with pytest.raises(ExportError, match="produced no file"):
            export_project(sample_project_file, "USD", tmp_path / "o.usd",
                           exporter=lazy_exporter, cache_dir=tmp_path)

    def test_stdout_returned(self, tmp_path, lazy_exporter):
        settings = write_settings({}, tmp_path)
        assert run_exporter(settings, exporter=lazy_exporter).strip() == "nothing to do"

    def test_settings_file_removed_after_run(self, sample_project_file, tmp_path, fake_exporter):
        cache = tmp_path / "cache"
        export_project(sample_project_file, "FBX", tmp_path / "o.fbx", exporter=fake_exporter, cache_dir=cache)
        assert list(cache.glob("temp_export_settings_*.json")) == []

    def test_settings_file_removed_after_failure(self, sample_project_file, tmp_path, failing_exporter):
        cache = tmp_path / "cache"
        with pytest.raises(ExportError):
            export_project(sample_project_file, "FBX", tmp_path / "o.fbx", exporter=failing_exporter, cache_dir=cache)
        assert list(cache.glob("temp_export_settings_*.json")) == []
