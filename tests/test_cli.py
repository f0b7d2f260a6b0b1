"""
govsync/tests/test_cli.py

Tests for the govsync command line.
"""

import json

import pytest
from click.testing import CliRunner

from govsync.cli import main
from govsync.serialization import dumps
from govsync.storage import FileBackend, PendingCache

from conftest import DAO, PLUGIN, make_token_proposal

NOW_ARG = "2023-03-01T12:00:00.000Z"


class TestCli:
    """Test CLI commands."""

    @pytest.fixture
    def runner(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GOVSYNC_STORAGE_DIR", str(tmp_path / "cache"))
        return CliRunner()

    def test_decode_id(self, runner):
        result = runner.invoke(main, ["decode-id", f"{PLUGIN}_0x1f"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "plugin_address": PLUGIN,
            "local_id": 31,
            "id": f"{PLUGIN}_0x1f",
        }

    def test_decode_legacy_id_with_plugin(self, runner):
        result = runner.invoke(main, ["decode-id", "0x00", "--plugin", PLUGIN])
        assert json.loads(result.output)["id"] == f"{PLUGIN}_0x0"

    def test_decode_legacy_id_without_plugin(self, runner):
        result = runner.invoke(main, ["decode-id", "0x00"])
        assert result.exit_code == 1
        assert "no plugin address" in result.output

    def test_encode_id(self, runner):
        result = runner.invoke(main, ["encode-id", PLUGIN, "31"])
        assert result.output.strip() == f"{PLUGIN}_0x1f"

    def test_encode_negative_id(self, runner):
        result = runner.invoke(main, ["encode-id", PLUGIN, "--", "-1"])
        assert result.exit_code == 1

    def test_reconcile(self, runner, tmp_path):
        storage_dir = tmp_path / "store"
        cache = PendingCache(FileBackend(storage_dir))
        pending_id = cache.add_proposal(DAO, make_token_proposal(local_id=5))

        page_file = tmp_path / "page.json"
        page_file.write_text(dumps([make_token_proposal(local_id=1).to_dict()]))

        result = runner.invoke(main, [
            "reconcile", DAO, str(page_file),
            "--storage-dir", str(storage_dir),
            "--now", NOW_ARG,
        ])

        assert result.exit_code == 0, result.output
        ids = [p["id"] for p in json.loads(result.output)]
        assert ids == [pending_id, f"{PLUGIN}_0x1"]

    def test_reconcile_rejects_non_list(self, runner, tmp_path):
        page_file = tmp_path / "page.json"
        page_file.write_text("{}")

        result = runner.invoke(main, [
            "reconcile", DAO, str(page_file), "--storage-dir", str(tmp_path / "store"),
        ])
        assert result.exit_code == 1
        assert "JSON list" in result.output

    def test_terminal(self, runner, tmp_path):
        proposal_file = tmp_path / "proposal.json"
        proposal_file.write_text(dumps(make_token_proposal(yes=600, no=50).to_dict()))
        settings_file = tmp_path / "settings.json"
        settings_file.write_text(json.dumps({"supportThreshold": 0.5, "minParticipation": 0.2}))

        result = runner.invoke(main, [
            "terminal", str(proposal_file), str(settings_file), "--now", NOW_ARG,
        ])

        assert result.exit_code == 0, result.output
        view = json.loads(result.output)
        assert view["status"] == "Active"
        assert view["participation"]["missing_weight"] == "0"

    def test_bad_now(self, runner, tmp_path):
        page_file = tmp_path / "page.json"
        page_file.write_text("[]")
        result = runner.invoke(main, ["reconcile", DAO, str(page_file), "--now", "yesterday"])
        assert result.exit_code == 2
