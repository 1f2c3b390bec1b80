"""Tests for the saved command store"""

import json

import pytest

from store import (
    CommandStore, SavedCommand,
    is_valid_alias_name, is_valid_tag, parse_tags, validate_tags, validate_name,
)
from exceptions import StoreError, ValidationError


class TestValidation:
    """Test cases for name and tag rules"""

    @pytest.mark.parametrize("name", ["gs", "_tmp", "deploy_prod", "k8s"])
    def test_valid_names(self, name):
        assert is_valid_alias_name(name)

    @pytest.mark.parametrize("name", ["", "1st", "my-cmd", "a b", "x.y"])
    def test_invalid_names(self, name):
        assert not is_valid_alias_name(name)
        with pytest.raises(ValidationError):
            validate_name(name)

    def test_tags(self):
        assert is_valid_tag("DevOps")
        assert is_valid_tag("ml_2")
        assert not is_valid_tag("dev-ops")

        with pytest.raises(ValidationError, match="dev-ops"):
            validate_tags(["ok", "dev-ops"])

    def test_parse_tags(self):
        assert parse_tags(" git, ,DevOps ,") == ["git", "DevOps"]
        assert parse_tags("") == []


class TestCommandStore:
    """Test cases for CommandStore class"""

    def test_missing_file_is_empty(self, store):
        assert store.commands == []
        assert not store.path.exists()

    def test_add_and_save(self, store):
        store.add("gs", "git status", ["Git"])
        store.add("ll", "ls -la")
        store.save()

        with open(store.path) as f:
            data = json.load(f)
        assert [c['name'] for c in data['commands']] == ["gs", "ll"]
        assert data['commands'][0]['tags'] == ["Git"]
        assert 'tags' not in data['commands'][1]
        assert data['commands'][1]['added_at']

    def test_reload_keeps_order_and_fields(self, store):
        store.add("b", "echo b", ["x"])
        store.add("a", "echo a")
        store.save()

        reloaded = CommandStore(str(store.path))
        assert [c.name for c in reloaded.commands] == ["b", "a"]
        assert reloaded.get("b").tags == ["x"]
        assert reloaded.get("a").tags == []

    def test_duplicate_name(self, store):
        store.add("gs", "git status")

        with pytest.raises(ValidationError, match="already exists"):
            store.add("gs", "git stash")

    def test_invalid_name_is_rejected(self, store):
        with pytest.raises(ValidationError):
            store.add("my-cmd", "ls")
        assert store.commands == []

    def test_remove(self, store):
        store.add("gs", "git status")

        removed = store.remove("gs")
        assert removed.command == "git status"
        assert store.get("gs") is None

        with pytest.raises(ValidationError, match="not found"):
            store.remove("gs")

    def test_update_keeps_position(self, store):
        store.add("a", "echo a")
        store.add("b", "echo b")
        added_at = store.get("a").added_at

        store.update("a", "c", "echo c", ["New"])

        assert [c.name for c in store.commands] == ["c", "b"]
        assert store.get("c").command == "echo c"
        assert store.get("c").tags == ["New"]
        assert store.get("c").added_at == added_at

    def test_update_rejects_taken_name(self, store):
        store.add("a", "echo a")
        store.add("b", "echo b")

        with pytest.raises(ValidationError, match="already exists"):
            store.update("a", "b", "echo a", [])

    def test_by_tags_and_counts(self, store):
        store.add("gs", "git status", ["Git"])
        store.add("deploy", "kubectl apply", ["DevOps", "K8s"])
        store.add("pods", "kubectl get pods", ["K8s"])

        assert [c.name for c in store.by_tags(["K8s", "DevOps"])] == ["deploy", "pods"]
        assert store.by_tags(["Nope"]) == []
        assert store.tag_counts() == {"Git": 1, "DevOps": 1, "K8s": 2}

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "commands.json"
        path.write_text("{not json")

        with pytest.raises(StoreError):
            CommandStore(str(path))

    def test_saved_command_from_dict(self):
        command = SavedCommand.from_dict({'name': 'x', 'command': 'ls'})

        assert command == SavedCommand(name='x', command='ls', tags=[], added_at='')
