from bugboard.bugboard_pipeline import build_arg_parser, main

from conftest import make_row, make_xlsx


def write_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"""
paths:
  store_dir: {tmp_path / 'store'}
  logs_dir: {tmp_path / 'logs'}
  export_dir: {tmp_path / 'exports'}
""".strip(),
        encoding="utf-8",
    )
    return path


def test_parser_requires_command():
    args = build_arg_parser().parse_args(["--config", "c.yaml", "delete", "INC1"])
    assert args.command == "delete"
    assert args.incident_id == "INC1"


def test_cli_ingest_summary_export(tmp_path, capsys):
    config = write_config(tmp_path)
    sheet = tmp_path / "week1.xlsx"
    sheet.write_bytes(make_xlsx([make_row("A", owner="Bob"), make_row("B", owner="Bob", status="Closed")]))

    assert main(["--config", str(config), "ingest", str(sheet)]) == 0
    assert (tmp_path / "store" / "currentWeekBugs.json").exists()
    assert (tmp_path / "logs" / "system.log").exists()

    assert main(["--config", str(config), "summary"]) == 0
    out = capsys.readouterr().out
    assert "Current week: 2 bugs" in out
    assert "Bob = 2 (100.0%)" in out

    assert main(["--config", str(config), "export"]) == 0
    assert (tmp_path / "exports" / "Weekly Bugs Summary.xlsx").exists()


def test_cli_missing_input_and_delete(tmp_path):
    config = write_config(tmp_path)
    assert main(["--config", str(config), "ingest", str(tmp_path / "missing.xlsx")]) == 1
    assert main(["--config", str(config), "delete", "NOPE"]) == 1
    assert main(["--config", str(config), "clear"]) == 0


def test_cli_export_nothing_open(tmp_path, capsys):
    config = write_config(tmp_path)
    assert main(["--config", str(config), "export"]) == 2
    assert "No Open status bugs to export." in capsys.readouterr().err


def test_cli_summary_for_one_owner(tmp_path, capsys):
    config = write_config(tmp_path)
    sheet = tmp_path / "week1.xlsx"
    sheet.write_bytes(make_xlsx([make_row("A", owner="Bob"), make_row("B", owner="Ann")]))
    assert main(["--config", str(config), "ingest", str(sheet)]) == 0
    capsys.readouterr()

    assert main(["--config", str(config), "summary", "--owner", "bob"]) == 0
    out = capsys.readouterr().out
    assert "Current week: 1 bugs owned by bob" in out
    assert "  A  Open  desc" in out
    assert "  B " not in out
