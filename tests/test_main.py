import json

import pytest

import main
from toolinstaller.integrations.sqlite_store import SqliteJobStore


@pytest.fixture(autouse=True)
def in_tmp_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_parse_arguments_defaults():
    args = main.parse_arguments(["git", "docker"])

    assert args.tools == ["git", "docker"]
    assert args.port == 3001
    assert args.dry_run is False
    assert args.tool_set is None


def test_load_config_applies_overrides(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"executor": {"timeout_seconds": 30}}))
    args = main.parse_arguments([
        "--config", str(config_file),
        "--db", "custom.db",
        "--scripts-dir", "install-scripts",
        "--log-level", "DEBUG",
    ])

    settings = main.load_config(args)

    assert settings.executor.timeout_seconds == 30
    assert str(settings.database.path) == "custom.db"
    assert str(settings.executor.scripts_dir) == "install-scripts"
    assert settings.logging.level == "DEBUG"


def test_invalid_config_is_reported(tmp_path, capsys):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"executor": {"timeout_seconds": -1}}))

    assert main.main(["--config", str(config_file), "git"]) == 1
    assert "Invalid configuration" in capsys.readouterr().err


def test_dry_run_installs_nothing(tmp_path):
    assert main.main(["--dry-run", "git", "docker"]) == 0
    assert not (tmp_path / "data").exists()


def test_dry_run_tool_set():
    assert main.main(["--dry-run", "--tool-set", "essentials"]) == 0


def test_unknown_tool_fails():
    assert main.main(["--dry-run", "emacs"]) == 1


def test_nothing_to_install():
    assert main.main(["--dry-run"]) == 1


def test_list_prints_catalog(tmp_path, capsys):
    assert main.main(["--list", "--db", str(tmp_path / "catalog.db")]) == 0

    output = capsys.readouterr().out
    assert "github-cli" in output
    assert "set essentials" in output


def test_failed_script_sets_exit_code(tmp_path, write_script):
    scripts = tmp_path / "scripts" / "dev-tools"
    scripts.mkdir(parents=True)
    script = write_script("02-git.sh", 'echo "E: lock held" >&2\nexit 100')
    script.rename(scripts / "02-git.sh")
    db_path = tmp_path / "installer.db"

    assert main.main(["--db", str(db_path), "git"]) == 1

    store = SqliteJobStore(db_path)
    try:
        job = store.get_job(1)
        assert job.error_message == "Script exited with code 100: E: lock held"
        assert store.get_tool_by_name("git").installed is False
    finally:
        store.close()
