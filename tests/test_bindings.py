"""Tests for the binding placeholder language"""

import os

import pytest

from bindings import (
    DirectoryBinding, ValueListBinding, BooleanFlagBinding,
    parse, validate, has_bindings, list_files, absolute_path, associated_flag, prompt_context,
)
from exceptions import ParseError, ResolutionError


class TestParse:
    """Test cases for parse"""

    @pytest.mark.parametrize("command", [
        "",
        "git status",
        "echo '{ not a binding }'",
        "printf '%s' {% incomplete",
    ])
    def test_no_placeholders(self, command):
        assert parse(command) == []

    def test_value_list_with_custom(self):
        [binding] = parse("{%[10,50,100,...]%}")

        assert isinstance(binding, ValueListBinding)
        assert binding.values == ("10", "50", "100")
        assert binding.allow_custom is True
        assert binding.optional is False
        assert binding.flag == ""

    def test_optional_flag_value_list(self):
        [binding] = parse("{%?--debug:[True,False]%}")

        assert isinstance(binding, ValueListBinding)
        assert binding.values == ("True", "False")
        assert binding.allow_custom is False
        assert binding.optional is True
        assert binding.flag == "--debug"

    def test_custom_only_list(self):
        [binding] = parse("{%[...]%}")

        assert binding.values == ()
        assert binding.allow_custom is True

    def test_items_are_trimmed(self):
        [binding] = parse("{% [ dev , prod ] %}")
        assert binding.values == ("dev", "prod")

    @pytest.mark.parametrize("placeholder", [
        "{%[]%}",
        "{%[ ,x]%}",
        "{%[a,,b]%}",
        "{%[a,b,a]%}",
        "{%[a,b%}",
        "{%%}",
        "{%   %}",
        "{%?%}",
        "{%--env:%}",
    ])
    def test_malformed_placeholders(self, placeholder):
        with pytest.raises(ParseError) as exc_info:
            parse(f"deploy {placeholder}")
        assert exc_info.value.placeholder == placeholder

    def test_boolean_flag(self):
        [binding] = parse("ls {%?--verbose%}")

        assert isinstance(binding, BooleanFlagBinding)
        assert binding.flag == "--verbose"
        assert binding.optional is True

    def test_directory_with_filter(self):
        [binding] = parse("python train.py --config {%/configs:*.yaml%}")

        assert isinstance(binding, DirectoryBinding)
        assert binding.path == "/configs"
        assert binding.filter == "*.yaml"

    def test_directory_with_flag_prefix(self):
        [binding] = parse("{%?--config:/configs%}")

        assert isinstance(binding, DirectoryBinding)
        assert binding.flag == "--config"
        assert binding.path == "/configs"
        assert binding.filter == ""
        assert binding.optional is True

    def test_relative_directory_is_absolutised(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        [binding] = parse("{%configs:*.json%}")

        assert binding.path == os.path.join(str(tmp_path), "configs")
        assert binding.filter == "*.json"

    def test_home_directory_is_expanded(self, home_dir):
        [binding] = parse("{%~/projects%}")
        assert binding.path == os.path.join(str(home_dir), "projects")

    def test_positions_follow_each_occurrence(self):
        command = "cp {%[a,b]%} {%[a,b]%}"
        first, second = parse(command)

        assert first.placeholder == second.placeholder
        assert first.start == 3
        assert second.start == 13
        assert command[second.start:second.end] == "{%[a,b]%}"

    def test_order_of_appearance(self):
        bindings = parse("run {%[x]%} --mode {%[fast,slow]%} {%?--dry%}")
        assert [type(b) for b in bindings] == [ValueListBinding, ValueListBinding, BooleanFlagBinding]

    def test_has_bindings(self):
        assert has_bindings("run {%[a]%}")
        assert not has_bindings("run a")


class TestValidate:
    """Test cases for validate"""

    def test_existing_directory_has_no_warnings(self, tmp_path):
        [binding] = parse(f"{{%{tmp_path}%}}")
        assert validate(binding) == []

    def test_missing_directory_warns(self, tmp_path):
        [binding] = parse(f"{{%{tmp_path / 'missing'}%}}")

        warnings = validate(binding)
        assert len(warnings) == 1
        assert "does not exist" in warnings[0]

    def test_file_instead_of_directory_warns(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")
        [binding] = parse(f"{{%{target}%}}")

        assert "is not a directory" in validate(binding)[0]

    def test_value_lists_never_warn(self):
        [binding] = parse("{%[a,b]%}")
        assert validate(binding) == []


class TestListFiles:
    """Test cases for list_files"""

    def test_recursive_filtered_sorted(self, config_dir_files):
        [binding] = parse(f"{{%{config_dir_files}:*.yaml%}}")

        assert list_files(binding) == ["a.yaml", "b.yaml", os.path.join("nested", "c.yaml")]

    def test_without_filter_lists_everything(self, config_dir_files):
        [binding] = parse(f"{{%{config_dir_files}%}}")
        assert "notes.txt" in list_files(binding)

    def test_symlinks_are_excluded(self, config_dir_files):
        os.symlink(config_dir_files / "a.yaml", config_dir_files / "link.yaml")
        [binding] = parse(f"{{%{config_dir_files}:*.yaml%}}")

        assert "link.yaml" not in list_files(binding)

    def test_no_matches_is_an_error(self, config_dir_files):
        [binding] = parse(f"{{%{config_dir_files}:*.toml%}}")

        with pytest.raises(ResolutionError, match=r"\*\.toml"):
            list_files(binding)

    def test_missing_directory_is_an_error(self, tmp_path):
        [binding] = parse(f"{{%{tmp_path / 'gone'}%}}")

        with pytest.raises(ResolutionError, match="does not exist"):
            list_files(binding)

    def test_absolute_path(self, config_dir_files):
        [binding] = parse(f"{{%{config_dir_files}%}}")
        assert absolute_path(binding, "nested/c.yaml") == str(config_dir_files / "nested" / "c.yaml")


class TestPromptContext:
    """Test cases for prompt text and flag association"""

    def test_preceding_flag_is_associated(self):
        command = "python train.py --config {%/configs%}"
        [binding] = parse(command)

        assert associated_flag(command, binding) == "--config"
        assert prompt_context(command, binding) == "Select file for --config [/configs]:"

    def test_equals_form(self):
        command = "kubectl apply --dry-run={%[none,client,server]%}"
        [binding] = parse(command)

        assert associated_flag(command, binding) == "--dry-run"
        assert prompt_context(command, binding) == "Select value for --dry-run:"

    def test_explicit_flag_wins(self):
        command = "run --other {%--env:[dev,prod]%}"
        [binding] = parse(command)

        assert associated_flag(command, binding) == "--env"

    def test_no_flag(self):
        command = "echo {%[a,b]%}"
        [binding] = parse(command)

        assert associated_flag(command, binding) == ""
        assert prompt_context(command, binding) == "Select value:"

    def test_hyphenated_word_is_not_a_flag(self):
        command = "run-it {%[a,b]%}"
        [binding] = parse(command)
        assert associated_flag(command, binding) == ""

    def test_boolean_flag_prompt(self):
        command = "ls {%?--verbose%}"
        [binding] = parse(command)
        assert prompt_context(command, binding) == "Include --verbose?"
