"""Tests for statebook.yaml loading."""

import pytest
from pydantic import ValidationError

from statebook.compiler.ir import Mode, SelectionBehavior
from statebook.config import GeneratorConfig, StatebookConfig, load_config, resolve_paths


class TestDefaults:
    def test_defaults_without_file(self, tmp_path):
        config = load_config(project_root=tmp_path)

        assert config == StatebookConfig()
        assert config.spec_paths == ["tests/specs"]
        assert config.commands.namespace == "dance"
        assert config.commands.selection_behavior == "dance.dev.setSelectionBehavior"
        assert config.generator.host_fixture == "statebook_host"
        assert config.generator.type_stagger_ms == 20
        assert config.generator.wait_timeout_ms is None
        assert config.generator.default_behavior.mode is Mode.NORMAL
        assert config.generator.default_behavior.behavior is SelectionBehavior.CARET


class TestLoad:
    def test_found_in_project_root(self, tmp_path):
        (tmp_path / "statebook.yaml").write_text(
            "spec_paths: specs\n"
            "spec_extension: spec\n"
            "commands:\n"
            "  namespace: kak\n"
            "generator:\n"
            "  wait_timeout_ms: 5000\n"
            "  default_behavior:\n"
            "    behavior: character\n"
        )

        config = load_config(project_root=tmp_path)

        assert config.spec_paths == ["specs"]
        assert config.spec_extension == ".spec"
        assert config.commands.namespace == "kak"
        assert config.commands.type == "type"
        assert config.generator.wait_timeout_ms == 5000
        assert config.generator.default_behavior.behavior is SelectionBehavior.CHARACTER

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("generator:\n  host_fixture: my_host\n")

        assert load_config(config_path=path).generator.host_fixture == "my_host"

    def test_hidden_file(self, tmp_path):
        (tmp_path / ".statebook.yml").write_text("commands:\n  type: editor.type\n")

        assert load_config(project_root=tmp_path).commands.type == "editor.type"

    def test_empty_file(self, tmp_path):
        (tmp_path / "statebook.yaml").write_text("")

        assert load_config(project_root=tmp_path) == StatebookConfig()

    def test_resolve_paths(self, tmp_path):
        config = resolve_paths(StatebookConfig(spec_paths=["specs", "/abs"]), tmp_path)

        assert config.spec_paths == [str((tmp_path / "specs").resolve()), "/abs"]


class TestValidation:
    @pytest.mark.parametrize(
        "options",
        [
            {"host_fixture": "not-an-identifier"},
            {"output_suffix": "_test.txt"},
            {"type_stagger_ms": -1},
            {"wait_timeout_ms": 0},
        ],
    )
    def test_rejected_generator_options(self, options):
        with pytest.raises(ValidationError):
            GeneratorConfig(**options)

    def test_unknown_behavior(self, tmp_path):
        (tmp_path / "statebook.yaml").write_text("generator:\n  default_behavior:\n    mode: visual\n")

        with pytest.raises(ValidationError):
            load_config(project_root=tmp_path)
