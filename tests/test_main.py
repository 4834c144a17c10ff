from types import SimpleNamespace

import pytest

import main as launcher_main
from launcher.models import ModPath, ModTriState

EXTRAS = ModPath.parse("wog.extras")


@pytest.fixture
def run_cli(tmp_path, mods_dir, settings_file, monkeypatch):
    monkeypatch.setattr(launcher_main, "app_paths", SimpleNamespace(
        settings_ini=tmp_path / "config" / "launcher.ini",
        mod_settings_json=settings_file,
        mods_path=mods_dir,
        log_file=tmp_path / "logs" / "launcher.log",
        ensure_directories=lambda: None,
    ))

    def run(command, *names):
        app = launcher_main.Application(mods_directory=str(mods_dir), offline=True)
        code = app.run(command, list(names))
        return app, code

    return run


def test_enable_sub_mod_of_disabled_parent(mods_dir, run_cli, write_mod, capsys):
    wog = write_mod(mods_dir, "wog", keepDisabled=True)
    write_mod(wog / "mods", "extras")

    app, code = run_cli("enable", "wog.extras")

    assert code == 0
    assert app.tree.get(EXTRAS).state is ModTriState.ENABLED
    assert app.tree.get(ModPath.new("wog")).state is ModTriState.DISABLED
    assert "[x] wog.extras" in capsys.readouterr().out


def test_disable_sub_mod_of_disabled_parent(mods_dir, run_cli, write_mod):
    wog = write_mod(mods_dir, "wog", keepDisabled=True)
    write_mod(wog / "mods", "extras")

    app, _ = run_cli("disable", "wog.extras")
    assert app.tree.get(EXTRAS).state is ModTriState.DISABLED

    # persisted for the next run
    app, _ = run_cli("list")
    assert app.tree.get(EXTRAS).state is ModTriState.DISABLED


def test_conflicts_set_exit_code(mods_dir, run_cli, write_mod):
    write_mod(mods_dir, "hota")
    write_mod(mods_dir, "wog", conflicts=["hota"])

    _, code = run_cli("list")
    assert code == 1

    app, code = run_cli("disable", "hota")
    assert code == 0
    assert not app.tree.get(ModPath.new("wog")).conflicted()
