"""End-to-end tests through the exp-run shell."""
import io
import json

import pytest

from src.exp_run.cli import ExpRunShell, main
from src.exp_run.state import ExperimentSession
from src.exp_run.store import AppDataStore


@pytest.fixture
def out():
    return io.StringIO()


@pytest.fixture
def shell(session, fake_client, out):
    return ExpRunShell(session, fake_client, stdout=out, input_func=lambda prompt: "")


def run(shell, out, line):
    out.seek(0)
    out.truncate()
    shell.onecmd(line)
    return out.getvalue().strip()


def order_from(output):
    prefix = "User's experiment order is: "
    assert output.startswith(prefix), output
    return [int(n) for n in output[len(prefix):].split(",")]


def test_user_order_end_to_end(shell, out):
    assert run(shell, out, "set-range 1 2 3 4 5 6 7 8") == "Setting experiment range to: 1,2,3,4,5,6,7,8"
    assert run(shell, out, "set-user alice@example.com") == "Setting user email address to: alice@example.com"
    first = order_from(run(shell, out, "get-user-order"))
    assert sorted(first) == list(range(1, 9))

    run(shell, out, "set-user alice@example.com")
    assert order_from(run(shell, out, "get-user-order")) == first


def test_keep_first_end_to_end(shell, out):
    run(shell, out, "set-range 1 2 3 4 5 6 7 8 --keep-first")
    assert "(first position kept)" in run(shell, out, "get-range")
    for email in ["alice@example.com", "bob@example.com", "carol@example.com", "dave@example.org"]:
        run(shell, out, f"set-user {email}")
        assert order_from(run(shell, out, "get-user-order"))[0] == 1


def test_set_range_rejects_duplicates(shell, out):
    run(shell, out, "set-range 1 2 3")
    assert run(shell, out, "set-range 1 2 2") == "Cannot set the experiment range as values must be unique numbers"
    assert run(shell, out, "get-range") == "Experiment range set to: 1,2,3"
    assert "not a number" in run(shell, out, "set-range 1 two")


def test_unset_range(shell, out):
    run(shell, out, "set-range 1 2 3")
    assert run(shell, out, "set-range") == "Unsetting experiment range"
    assert run(shell, out, "get-range") == "Experiment range not set!"


def test_user_without_range(shell, out):
    output = run(shell, out, "set-user alice@example.com")
    assert "experiment range has not been set" in output
    assert run(shell, out, "get-user-order") == "User's experiment order not set (probably as there is no user email)."


def test_invalid_user(shell, out):
    assert run(shell, out, "set-user nope") == "Cannot set user email address to invalid user email address"
    assert run(shell, out, "get-user") == "User email address not set!"
    run(shell, out, "set-user alice@example.com")
    assert run(shell, out, "set-user") == "Unsetting user email address"


def test_server_commands(shell, out, fake_client):
    assert run(shell, out, "get-server") == "Server URL not set!"
    assert run(shell, out, "set-server-redirect 1") == "Cannot set server redirect when server URL not set"
    assert run(shell, out, "set-server http://localhost:5000") == "Setting server URL to: http://localhost:5000"
    assert run(shell, out, "get-server") == "Server URL set to: http://localhost:5000"

    run(shell, out, "set-range 1 2 3 4 5 6 7 8")
    assert "out of range" in run(shell, out, "set-server-redirect 9")
    assert fake_client.calls == []
    assert run(shell, out, "set-server-redirect 3").splitlines() == [
        "Setting server redirect endpoint to: 3",
        "Redirect set to 3",
    ]
    assert run(shell, out, "get-server-redirect") == "Server redirect endpoint set to: 3"
    assert run(shell, out, "set-server-redirect").splitlines()[0] == "Unsetting server redirect endpoint"
    assert fake_client.calls == [("http://localhost:5000", 3), ("http://localhost:5000", None)]
    assert run(shell, out, "get-server-redirect") == "Server redirect endpoint not set!"


def test_beacon_commands(shell, out):
    assert run(shell, out, "check-beacon") == "Cannot check beacon as beacon URL not set"
    assert run(shell, out, "set-beacon not-a-url") == "Cannot set beacon URL to invalid URL"
    run(shell, out, "set-beacon http://beacon:8080")
    assert run(shell, out, "check-beacon").splitlines() == [
        "Checking beacon: http://beacon:8080",
        "Beacon responded: 200 OK",
    ]
    run(shell, out, "set-range 4 5")
    run(shell, out, "set-beacon-redirect 5")
    assert run(shell, out, "get-beacon-redirect") == "Beacon redirect endpoint set to: 5"
    assert "invalid int value" in run(shell, out, "set-beacon-redirect five")


def test_save_user_details(shell, out, tmp_path):
    assert run(shell, out, "save-user-details") == "Cannot save user details to non-existent folder"
    assert "non-existent folder" in run(shell, out, f"set-save-dir {tmp_path / 'missing'}")
    run(shell, out, f"set-save-dir {tmp_path}")
    assert run(shell, out, "get-save-dir") == f"Experiment save directory set to: {tmp_path.resolve()}"
    assert run(shell, out, "save-user-details") == "Cannot save non-existent user details"

    run(shell, out, "set-range 1 2 3")
    run(shell, out, "set-user alice@example.com")
    order = order_from(run(shell, out, "get-user-order"))
    output = run(shell, out, "save-user-details")
    saved = tmp_path.resolve() / "alice@example.com.json"
    assert output == f"Saving current user details to: {saved}"
    assert json.loads(saved.read_text()) == {"email": "alice@example.com", "exp_order": order}

    listing = run(shell, out, "list-saved-users")
    assert "alice@example.com" in listing
    assert (tmp_path / "users_summary.csv").exists()


def test_run_experiments(session, fake_client, out):
    answers = iter(["", "q"])
    shell = ExpRunShell(session, fake_client, stdout=out, input_func=lambda prompt: next(answers))
    run(shell, out, "set-range 1 2 3")
    run(shell, out, "set-user alice@example.com")
    run(shell, out, "set-server http://localhost:5000")

    output = run(shell, out, "run-experiments")
    assert output.splitlines()[-1] == "Experiment run aborted at experiment 2 of 3"
    assert session.exp_index == 1

    shell._input = lambda prompt: ""
    output = run(shell, out, "run-experiments --restart")
    assert output.splitlines()[-1] == "Completed all 3 experiments"
    assert session.exp_index == 0


def test_run_experiments_ctrl_c(session, fake_client, out):
    def interrupt(prompt):
        raise KeyboardInterrupt

    shell = ExpRunShell(session, fake_client, stdout=out, input_func=interrupt)
    run(shell, out, "set-range 1 2 3")
    run(shell, out, "set-user alice@example.com")
    run(shell, out, "set-beacon http://beacon")
    assert "aborted at experiment 1 of 3" in run(shell, out, "run-experiments")


def test_run_experiments_not_configured(shell, out):
    assert "email address not set" in run(shell, out, "run-experiments")


def test_get_details(shell, out):
    run(shell, out, "set-range 1 2 3 --keep-first")
    run(shell, out, "set-user alice@example.com")
    details = run(shell, out, "get-details")
    assert "User email address:  alice@example.com" in details
    assert "Keep first position: yes" in details
    assert "Server URL:          not set" in details


def test_unknown_command_and_bad_quotes(shell, out):
    assert run(shell, out, "frobnicate").startswith("Invalid command: frobnicate")
    assert "No closing quotation" in run(shell, out, 'set-user "alice@example.com')


def test_help_lists_hyphenated_commands(shell, out):
    output = run(shell, out, "help")
    assert "set-range" in output
    assert "get-user-order" in output
    assert "Sets the experiment range" in run(shell, out, "help set-range")


def test_exit(shell):
    assert shell.onecmd("exit") is True
    assert shell.onecmd("quit") is True


def test_main_one_shot_persists(tmp_path, capsys):
    data_dir = tmp_path / "appdata"
    assert main(["--data-dir", str(data_dir), "set-range", "1", "2", "3", "--keep-first"]) == 0
    assert main(["--data-dir", str(data_dir), "set-user", "bob@example.com"]) == 0
    capsys.readouterr()

    main(["--data-dir", str(data_dir), "get-user-order"])
    printed = capsys.readouterr().out.strip()
    expected = ExperimentSession(AppDataStore(data_dir)).user.sequence
    assert order_from(printed) == expected
    assert expected[0] == 1


def test_huge_range_values_are_not_fatal(shell, out, session):
    run(shell, out, "set-user alice@example.com")
    assert run(shell, out, "set-range 1 2 99999999999999999999") == "Setting experiment range to: 1,2,99999999999999999999"
    assert sorted(order_from(run(shell, out, "get-user-order"))) == [1, 2, 99999999999999999999]
    revived = ExperimentSession(session.store)
    assert sorted(revived.user.sequence) == [1, 2, 99999999999999999999]


def test_email_with_path_separator_rejected(shell, out):
    assert run(shell, out, "set-user ../../tmp/x@example.com") == (
        "Cannot set user email address to invalid user email address"
    )
