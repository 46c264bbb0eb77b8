"""Tests for the vob and view commands using Typer's CliRunner."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from opskit.cli import app
from opskit.core.config import save_config

from .clearcase_samples import VIEW_UUID
from .conftest import cleartool_calls

runner = CliRunner()


@pytest.fixture
def cc_env(cc_settings, isolated_global_config, tmp_path, monkeypatch):
    """Global config pointing the CLI at the fake cleartool, run from outside any repo."""
    save_config(None, "clearcase.cleartool", cc_settings.cleartool)
    save_config(None, "clearcase.save_dir", cc_settings.save_dir)
    save_config(None, "clearcase.host", "vobhost")
    outside = tmp_path / "outside"
    outside.mkdir()
    monkeypatch.chdir(outside)
    return cc_settings


class TestVobCommands:
    def test_list_before_init(self, cc_env):
        result = runner.invoke(app, ["vob", "list"])
        assert result.exit_code == 1
        assert "Run the 'init' command" in result.output

    def test_init_then_list(self, cc_env):
        result = runner.invoke(app, ["vob", "init"])
        assert result.exit_code == 0, result.output
        assert "Failed: beta" in result.output

        result = runner.invoke(app, ["vob", "list"])
        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "alpha /net/vobhost/vobstore/alpha.vbs",
            "beta /net/OTHER/vobstore/beta.vbs",
        ]

    def test_list_fields_and_delimiter(self, cc_env):
        runner.invoke(app, ["vob", "init"])
        result = runner.invoke(app, ["vob", "list", "--fields", "tag,flevel,host", "-d", ";", "--host", "vobhost"])
        assert result.output.splitlines() == ["alpha;7;vobhost"]

    def test_show(self, cc_env):
        runner.invoke(app, ["vob", "init"])
        result = runner.invoke(app, ["vob", "show", "alpha"])
        assert result.exit_code == 0
        assert "/vobs/alpha" in result.output
        assert "flevel" in result.output

    def test_find_view(self, cc_env):
        runner.invoke(app, ["vob", "init"])
        result = runner.invoke(app, ["vob", "find-view", VIEW_UUID])
        assert result.output.strip() == f"/vobs/alpha: {VIEW_UUID} /views/anna_dev.vws @wshost"

    def test_unregister_with_yes(self, cc_env):
        runner.invoke(app, ["vob", "init"])
        result = runner.invoke(app, ["--yes", "vob", "unregister", "alpha"])
        assert result.exit_code == 0, result.output
        assert "Restart the ClearCase server" in result.output
        assert "unregister -vob /net/vobhost/vobstore/alpha.vbs" in cleartool_calls(cc_env)

    def test_unregister_asks_without_yes(self, cc_env):
        runner.invoke(app, ["vob", "init"])
        result = runner.invoke(app, ["vob", "unregister", "alpha"], input="n\nn\nn\nn\nn\n")
        assert result.exit_code == 0, result.output
        assert not any(call.startswith("lock") for call in cleartool_calls(cc_env))

    def test_chflevel_refused(self, cc_env):
        runner.invoke(app, ["vob", "init"])
        result = runner.invoke(app, ["--yes", "vob", "chflevel", "alpha", "5"])
        assert result.exit_code == 1
        assert "no need to raise" in result.output


class TestViewCommands:
    def test_list_by_age(self, cc_env):
        runner.invoke(app, ["view", "init"])
        result = runner.invoke(app, ["view", "list", "--fields", "tag", "--age=-1"])
        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["anna_dev", "bob_int", "ghost"]

    def test_dry_run_remove(self, cc_env):
        runner.invoke(app, ["view", "init"])
        calls_before = len(cleartool_calls(cc_env))
        result = runner.invoke(app, ["--dry-run", "view", "remove", "bob_int"])
        assert result.exit_code == 0, result.output
        assert "would run:" in result.output
        assert "rmview -force /net/build/views/bob_int.vws" in result.output
        assert len(cleartool_calls(cc_env)) == calls_before

    def test_show_missing(self, cc_env):
        result = runner.invoke(app, ["view", "show", "anna_dev"])
        assert result.exit_code == 1
        assert "lsview.anna_dev.txt" in result.output
