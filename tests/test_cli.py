import pytest

from tabdog.__main__ import build_parser, main
from tabdog.config import load_settings
from tests.fakes import NOON_2024, NOON_2024_STR

BACKUP = f"{NOON_2024_STR} - Work\nhttp://a.com\nhttp://b.com\n\n"


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "tabs.db")


@pytest.fixture
def backup(tmp_path):
    path = tmp_path / "backup.txt"
    path.write_text(BACKUP, encoding="utf-8")
    return str(path)


def test_import_list_export(db, backup, capsys):
    assert main(["--db", db, "import", backup]) == 0
    assert "Imported 2 tabs successfully!" in capsys.readouterr().out

    assert main(["--db", db, "list"]) == 0
    out = capsys.readouterr().out
    assert f"[{NOON_2024}] Work (2 tabs) - {NOON_2024_STR}" in out
    assert "    http://b.com" in out
    assert "2 saved tabs" in out

    assert main(["--db", db, "export", "-"]) == 0
    assert capsys.readouterr().out == BACKUP


def test_second_import_finds_nothing_new(db, backup, capsys):
    main(["--db", db, "import", backup])
    main(["--db", db, "import", backup])
    assert "No new tabs found to import." in capsys.readouterr().out


def test_export_to_file(db, backup, tmp_path):
    main(["--db", db, "import", backup])
    out = tmp_path / "out.txt"

    assert main(["--db", db, "export", str(out)]) == 0
    assert out.read_text(encoding="utf-8") == BACKUP


def test_import_binary_file_fails(db, tmp_path, capsys):
    path = tmp_path / "image.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")

    assert main(["--db", db, "import", str(path)]) == 1
    assert "Error importing tabs" in capsys.readouterr().err


def test_rename_delete_and_clear(db, backup, capsys):
    main(["--db", db, "import", backup])

    assert main(["--db", db, "rename", str(NOON_2024), "Home"]) == 0
    main(["--db", db, "list"])
    assert "Home (2 tabs)" in capsys.readouterr().out

    assert main(["--db", db, "delete", str(NOON_2024), "--yes"]) == 0
    assert "Deleted session with 2 tabs!" in capsys.readouterr().out

    assert main(["--db", db, "clear", "--yes"]) == 0
    assert "No saved tabs to clear!" in capsys.readouterr().out


def test_rename_unknown_session_fails(db):
    assert main(["--db", db, "rename", "123", "x"]) == 1


def test_save_modes_are_validated():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["save", "--mode", "everything"])


def test_config_set_persists_settings(tmp_path, capsys):
    assert main(["config", "--set", "batch_size=50", "--set", "product_name=pup"]) == 0
    out = capsys.readouterr().out
    assert "batch_size: 50" in out

    settings = load_settings(tmp_path / "config.yaml")
    assert settings.batch_size == 50
    assert settings.product_name == "pup"


def test_config_does_not_persist_db_override(db, tmp_path):
    main(["--db", db, "config", "--set", "devtools_port=9333"])

    settings = load_settings(tmp_path / "config.yaml")
    assert settings.devtools_port == 9333
    assert settings.db_path != db


@pytest.mark.parametrize("assignment", ["theme=dark", "batch_size=lots", "batch_size=[", "batch_size"])
def test_config_rejects_bad_assignments(assignment, tmp_path, capsys):
    assert main(["config", "--set", assignment]) == 1
    assert capsys.readouterr().err
    assert not (tmp_path / "config.yaml").exists()
