"""Tests for the wgslpp CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from wgslpp.app import _parse_bool, _parse_scalar, create_parser, main
from wgslpp.discovery.config import PROJECT_CONFIG_NAME

SHADER = """\
#if FAST
fn fast() {}
#else
fn slow() {}
#endif
var size = #(workgroup_x);
"""


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def shader(workdir) -> Path:
    path = workdir / "main.wgsl"
    path.write_text(SHADER)
    return path


class TestParsing:
    def test_parser_defaults(self):
        args = create_parser().parse_args(["a.wgsl"])
        assert args.shaders == [Path("a.wgsl")]
        assert args.format == "text"
        assert not args.scan

    @pytest.mark.parametrize("value, expected", [("8", 8), ("0.5", 0.5), ("true", True), ("vec3f", "vec3f")])
    def test_parse_scalar(self, value, expected):
        assert _parse_scalar(value) == expected

    def test_parse_bool(self):
        assert _parse_bool("A", "yes") is True
        assert _parse_bool("A", "OFF") is False
        with pytest.raises(ValueError):
            _parse_bool("A", "maybe")


class TestMain:
    def test_process_to_stdout(self, shader, capsys):
        code = main([str(shader), "--cond", "FAST", "--const", "workgroup_x=8"])
        assert code == 0
        assert capsys.readouterr().out == "fn fast() {}\nvar size = 8;\n"

    def test_condition_false(self, shader, capsys):
        code = main([str(shader), "--cond", "FAST=false", "--const", "workgroup_x=8"])
        assert code == 0
        assert "fn slow() {}" in capsys.readouterr().out

    def test_invalid_condition_value(self, shader):
        assert main([str(shader), "--cond", "FAST=maybe"]) == 2

    def test_failure_exit_code(self, shader, capsys):
        code = main([str(shader), "--cond", "FAST"])
        assert code == 1
        assert "InvalidConstant" in capsys.readouterr().err

    def test_options_file(self, shader, workdir, capsys):
        opts = workdir / "opts.yaml"
        opts.write_text("conditions:\n  FAST: false\nconstants:\n  workgroup_x: 4\n")
        assert main([str(shader), "--options-file", str(opts)]) == 0
        assert capsys.readouterr().out == "fn slow() {}\nvar size = 4;\n"

    def test_cli_overrides_options_file(self, shader, workdir, capsys):
        opts = workdir / "opts.json"
        opts.write_text(json.dumps({"conditions": {"FAST": False}, "constants": {"workgroup_x": 4}}))
        assert main([str(shader), "--options-file", str(opts), "--const", "workgroup_x=16"]) == 0
        assert "var size = 16;" in capsys.readouterr().out

    def test_project_config_supplies_options(self, shader, workdir, capsys):
        (workdir / PROJECT_CONFIG_NAME).write_text(json.dumps({
            "conditions": {"FAST": True},
            "constants": {"workgroup_x": 2},
        }))
        assert main([str(shader)]) == 0
        assert capsys.readouterr().out == "fn fast() {}\nvar size = 2;\n"

    def test_json_format(self, shader, capsys):
        assert main([str(shader), "--cond", "FAST", "--const", "workgroup_x=8", "--format", "json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["shaders"][0]["output"] == "fn fast() {}\nvar size = 8;"
        assert data["errors"] == []

    def test_json_format_reports_errors(self, shader, capsys):
        assert main([str(shader), "--format", "json"]) == 1
        data = json.loads(capsys.readouterr().out)
        assert data["errors"][0]["kind"] == "InvalidCondition"
        assert data["errors"][0]["line_number"] == 1

    def test_output_file(self, shader, workdir):
        out = workdir / "out.wgsl"
        assert main([str(shader), "--cond", "FAST", "--const", "workgroup_x=8", "-o", str(out)]) == 0
        assert out.read_text() == "fn fast() {}\nvar size = 8;"

    def test_out_dir_batch(self, workdir):
        src = workdir / "shaders"
        src.mkdir()
        (src / "lib.wgsl").write_text("fn lib() {}")
        (src / "a.wgsl").write_text('#import "lib.wgsl"\nfn a() {}')
        build = workdir / "build"
        assert main(["--dir", str(src), "--out-dir", str(build)]) == 0
        assert (build / "a.wgsl").read_text() == "fn lib() {}\nfn a() {}"
        assert (build / "lib.wgsl").read_text() == "fn lib() {}"

    def test_out_dir_keeps_subdirectories(self, workdir):
        src = workdir / "src"
        (src / "a").mkdir(parents=True)
        (src / "b").mkdir()
        (src / "a" / "x.wgsl").write_text("fn a() {}")
        (src / "b" / "x.wgsl").write_text("fn b() {}")
        assert main(["--dir", "src", "--out-dir", "out"]) == 0
        assert (workdir / "out" / "a" / "x.wgsl").read_text() == "fn a() {}"
        assert (workdir / "out" / "b" / "x.wgsl").read_text() == "fn b() {}"

    def test_out_dir_name_collision(self, workdir, capsys):
        (workdir / "a").mkdir()
        (workdir / "b").mkdir()
        (workdir / "a" / "x.wgsl").write_text("fn a() {}")
        (workdir / "b" / "x.wgsl").write_text("fn b() {}")
        assert main(["a/x.wgsl", "b/x.wgsl", "--out-dir", "out"]) == 2
        assert not (workdir / "out").exists()
        assert "Conflicting outputs" in capsys.readouterr().err

    def test_output_requires_single_text_input(self, workdir):
        (workdir / "a.wgsl").write_text("a")
        (workdir / "b.wgsl").write_text("b")
        code = main(["a.wgsl", "b.wgsl", "-o", "out.wgsl"])
        assert code == 2

    def test_max_depth(self, workdir):
        (workdir / "lib.wgsl").write_text("fn lib() {}")
        (workdir / "a.wgsl").write_text('#import "lib.wgsl"')
        assert main(["a.wgsl", "--max-depth", "0"]) == 1

    def test_scan(self, shader, capsys):
        assert main([str(shader), "--scan", "--format", "json"]) == 0
        (report,) = json.loads(capsys.readouterr().out)
        assert report["conditions"] == ["FAST"]
        assert report["constants"] == ["workgroup_x"]
        assert report["invalid_lines"] == []

    def test_scan_flags_invalid(self, workdir):
        (workdir / "bad.wgsl").write_text("#endif junk\n")
        assert main(["bad.wgsl", "--scan"]) == 1

    def test_env(self, workdir, capsys):
        assert main(["--env"]) == 0
        assert "wgslpp Environment" in capsys.readouterr().out

    def test_no_input(self, workdir):
        assert main([]) == 2
