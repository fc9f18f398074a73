import json

from bloodledger.cli import main


def test_invoke_create_and_read(tmp_path, capsys):
    db = str(tmp_path / "cli.db")

    rc = main(["--db", db, "invoke", "createBloodBag", "B1", "DONOR-7", "BloodBank-A", "O", "+", "450ml"])
    assert rc == 0
    assert "createBloodBag OK" in capsys.readouterr().out

    rc = main(["--db", db, "invoke", "readBloodBag", "B1"])
    assert rc == 0
    bag = json.loads(capsys.readouterr().out.strip())
    assert bag["id"] == "B1"
    assert bag["status"] == "UNASSIGNED"


def test_invoke_error_exit_code(tmp_path, capsys):
    db = str(tmp_path / "cli.db")

    rc = main(["--db", db, "invoke", "readBloodBag", "B404"])

    assert rc == 1
    assert "NOT_FOUND" in capsys.readouterr().out


def test_history_command(tmp_path, capsys):
    db = str(tmp_path / "cli.db")
    main(["--db", db, "invoke", "createBloodBag", "B1", "DONOR-7", "BloodBank-A", "O", "+", "450ml"])
    main(["--db", db, "invoke", "moveBagToLocation", "B1", "Truck-3"])
    capsys.readouterr()

    rc = main(["--db", db, "history", "B1"])

    out = capsys.readouterr().out
    assert rc == 0
    assert "Found 2 history entries" in out
    assert "Status: INTRANSIT" in out


def test_history_for_unknown_bag(tmp_path, capsys):
    rc = main(["--db", str(tmp_path / "cli.db"), "history", "B404"])

    assert rc == 0
    assert "No history for blood bag B404" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out
