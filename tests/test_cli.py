from pathlib import Path

from typer.testing import CliRunner

from conftest import make_file
from recyclebin_cli.cli import app
from recyclebin_core.config import ROOT_ENV_VAR

runner = CliRunner()


def _invoke(root: Path, *args: str, input: str = None):
    return runner.invoke(app, ["--root", str(root), *args], input=input)


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, result.output
    for command in ["delete", "list", "restore", "search", "empty", "preview", "stats", "cleanup", "config"]:
        assert command in result.output


def test_delete_list_restore_flow(tmp_path: Path):
    root = tmp_path / "bin"
    path = make_file(tmp_path, "a.txt", "x" * 10)

    deleted = _invoke(root, "delete", str(path))
    assert deleted.exit_code == 0, deleted.output
    assert "OK: Deleted" in deleted.output
    assert not path.exists()
    assert (root / "metadata.db").exists()

    listed = _invoke(root, "list", "--sort", "size")
    assert listed.exit_code == 0, listed.output
    assert "a.txt" in listed.output
    assert "Total: 1 item(s), 10B" in listed.output

    restored = _invoke(root, "restore", "a.txt")
    assert restored.exit_code == 0, restored.output
    assert path.read_text(encoding="utf-8") == "x" * 10


def test_list_sorted_by_size(tmp_path: Path):
    root = tmp_path / "bin"
    _invoke(root, "delete", str(make_file(tmp_path, "a.txt", "x" * 10)), str(make_file(tmp_path, "b.txt", "y" * 20)))

    result = _invoke(root, "list", "--sort", "size")

    assert result.exit_code == 0, result.output
    assert result.output.index("b.txt") < result.output.index("a.txt")


def test_delete_missing_path_fails(tmp_path: Path):
    result = _invoke(tmp_path / "bin", "delete", str(tmp_path / "nope.txt"))
    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_delete_reports_partial_failure_but_succeeds(tmp_path: Path):
    root = tmp_path / "bin"
    good = make_file(tmp_path, "good.txt")
    result = _invoke(root, "delete", str(tmp_path / "nope.txt"), str(good))
    assert result.exit_code == 0, result.output
    assert "does not exist" in result.output
    assert "OK: Deleted" in result.output


def test_list_empty(tmp_path: Path):
    result = _invoke(tmp_path / "bin", "list")
    assert result.exit_code == 0
    assert "Recycle bin is empty." in result.output


def test_list_invalid_sort_key(tmp_path: Path):
    result = _invoke(tmp_path / "bin", "list", "--sort", "colour")
    assert result.exit_code == 1
    assert "Invalid sort key" in result.output


def test_empty_requires_confirmation(tmp_path: Path):
    root = tmp_path / "bin"
    _invoke(root, "delete", str(make_file(tmp_path, "a.txt")))

    declined = _invoke(root, "empty", input="n\n")
    assert declined.exit_code == 0, declined.output
    assert "Operation cancelled." in declined.output
    assert len(list((root / "files").iterdir())) == 1

    blank = _invoke(root, "empty", input="\n")
    assert "Operation cancelled." in blank.output

    confirmed = _invoke(root, "empty", input="YES\n")
    assert confirmed.exit_code == 0, confirmed.output
    assert "Permanently deleted 1 item(s)" in confirmed.output
    assert list((root / "files").iterdir()) == []


def test_empty_with_yes_flag_and_nothing_matched(tmp_path: Path):
    root = tmp_path / "bin"
    _invoke(root, "delete", str(make_file(tmp_path, "a.txt")), str(make_file(tmp_path, "b.log")))

    none = _invoke(root, "empty", "--pattern", "zzz")
    assert none.exit_code == 0
    assert "Nothing matched" in none.output

    purged = _invoke(root, "empty", "--pattern", ".log", "--yes")
    assert purged.exit_code == 0, purged.output
    assert "Permanently deleted 1 item(s)" in purged.output
    assert "a.txt" in _invoke(root, "list").output


def test_restore_conflict_prompt_rename(tmp_path: Path):
    root = tmp_path / "bin"
    path = make_file(tmp_path, "note.txt", "old")
    _invoke(root, "delete", str(path))
    path.write_text("new", encoding="utf-8")

    result = _invoke(root, "restore", "note", input="2\n")

    assert result.exit_code == 0, result.output
    assert path.read_text(encoding="utf-8") == "new"
    renamed = [p for p in path.parent.iterdir() if p.name.startswith("note_")]
    assert len(renamed) == 1
    assert renamed[0].read_text(encoding="utf-8") == "old"


def test_restore_conflict_cancel_exits_with_conflict_code(tmp_path: Path):
    root = tmp_path / "bin"
    path = make_file(tmp_path, "note.txt", "old")
    _invoke(root, "delete", str(path))
    path.write_text("new", encoding="utf-8")

    result = _invoke(root, "restore", "note", "--on-conflict", "cancel")

    assert result.exit_code == 2
    assert path.read_text(encoding="utf-8") == "new"


def test_restore_ambiguous_prompts_for_choice(tmp_path: Path):
    root = tmp_path / "bin"
    first = make_file(tmp_path, "report_a.txt")
    second = make_file(tmp_path, "report_b.txt")
    _invoke(root, "delete", str(first), str(second))

    cancelled = _invoke(root, "restore", "report", input="0\n")
    assert cancelled.exit_code == 0
    assert "Restore cancelled." in cancelled.output

    chosen = _invoke(root, "restore", "report", input="1\n")
    assert chosen.exit_code == 0, chosen.output
    assert first.exists() != second.exists()


def test_restore_unknown(tmp_path: Path):
    result = _invoke(tmp_path / "bin", "restore", "ghost")
    assert result.exit_code == 1
    assert "No matching entry found" in result.output


def test_search_messages(tmp_path: Path):
    root = tmp_path / "bin"
    _invoke(root, "delete", str(make_file(tmp_path, "report.txt")))

    no_criteria = _invoke(root, "search")
    assert no_criteria.exit_code == 1

    found = _invoke(root, "search", "REPORT")
    assert found.exit_code == 0
    assert "Found 1 item(s)" in found.output

    by_name = _invoke(root, "search", "zzz")
    assert "No items match name 'zzz'." in by_name.output

    by_date = _invoke(root, "search", "report", "--date-to", "2000-01-01")
    assert "date range" in by_date.output

    bad_date = _invoke(root, "search", "--date-from", "yesterday")
    assert bad_date.exit_code == 1


def test_stats_preview_and_doctor(tmp_path: Path):
    root = tmp_path / "bin"
    _invoke(root, "delete", str(make_file(tmp_path, "a.txt", "first line\nsecond line\n")))
    item_id = (next((root / "files").iterdir())).name

    stats = _invoke(root, "stats")
    assert stats.exit_code == 0, stats.output
    assert "Total items" in stats.output

    preview = _invoke(root, "preview", item_id)
    assert preview.exit_code == 0, preview.output
    assert "first line" in preview.output

    missing = _invoke(root, "preview", "1759000000_nothingxyz")
    assert missing.exit_code == 1

    doctor = _invoke(root, "doctor")
    assert doctor.exit_code == 0, doctor.output
    assert "consistent" in doctor.output


def test_preview_dangling_symlink_exits_cleanly(tmp_path: Path):
    root = tmp_path / "bin"
    link = tmp_path / "work" / "dangling.txt"
    link.parent.mkdir(parents=True)
    link.symlink_to(tmp_path / "work" / "gone.txt")
    _invoke(root, "delete", str(link))
    item_id = next((root / "files").iterdir()).name

    result = _invoke(root, "preview", item_id)

    assert result.exit_code == 1
    assert not isinstance(result.exception, OSError)


def test_cleanup_with_nothing_expired(tmp_path: Path):
    root = tmp_path / "bin"
    _invoke(root, "delete", str(make_file(tmp_path, "a.txt")))
    result = _invoke(root, "cleanup", "--dry-run")
    assert result.exit_code == 0
    assert "Nothing to clean" in result.output


def test_config_show_and_set(tmp_path: Path):
    root = tmp_path / "bin"

    shown = _invoke(root, "config", "show")
    assert shown.exit_code == 0
    assert "RETENTION_DAYS=30" in shown.output

    updated = _invoke(root, "config", "set", "retention", "7")
    assert updated.exit_code == 0, updated.output
    assert "RETENTION_DAYS=7" in _invoke(root, "config", "show").output


def test_config_set_rejects_zero_retention(tmp_path: Path):
    root = tmp_path / "bin"
    result = _invoke(root, "config", "set", "retention", "0")
    assert result.exit_code == 1
    assert "positive integer" in result.output
    assert "RETENTION_DAYS=30" in _invoke(root, "config", "show").output


def test_root_from_environment(tmp_path: Path, monkeypatch):
    env_root = tmp_path / "env-bin"
    monkeypatch.setenv(ROOT_ENV_VAR, str(env_root))
    result = runner.invoke(app, ["delete", str(make_file(tmp_path, "a.txt"))])
    assert result.exit_code == 0, result.output
    assert (env_root / "metadata.db").exists()


def test_version_command(tmp_path: Path):
    result = _invoke(tmp_path / "bin", "version")
    assert result.exit_code == 0
    assert "recyclebin 0.1.0" in result.output
