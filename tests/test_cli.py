"""Tests for the command-line interface."""

import json
from pathlib import Path

import pytest

from didentity.cli import main


class TestCLI:
    """Drive the CLI against a temporary key directory and database."""

    @pytest.fixture
    def base_args(self, tmp_path: Path) -> list:
        return ["--key-dir", str(tmp_path / "keys"), "--db", str(tmp_path / "credential.db")]

    def _run(self, capsys, args: list):
        code = main(args)
        return code, json.loads(capsys.readouterr().out)

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_did(self, capsys, base_args: list):
        code, output = self._run(capsys, base_args + ["did", "issuer"])
        assert code == 0
        assert output["role"] == "issuer"
        assert output["did"].startswith("did:key:zDn")

        _, again = self._run(capsys, base_args + ["did", "issuer"])
        assert again["did"] == output["did"]

    def test_issue_list_present_verify(self, capsys, base_args: list):
        _, holder = self._run(capsys, base_args + ["did", "holder"])
        _, issuer = self._run(capsys, base_args + ["did", "issuer"])

        code, record = self._run(
            capsys,
            base_args + ["issue", "-n", "adult", "-c", "age>=18", "--holder", holder["did"]],
        )
        assert code == 0
        assert record["issuer"] == issuer["did"]
        assert record["claim"] == "age>=18"

        code, listed = self._run(capsys, base_args + ["list"])
        assert code == 0
        assert [r["credential_name"] for r in listed] == ["adult"]

        code, verified = self._run(capsys, base_args + ["verify", record["vc"]])
        assert code == 0
        assert verified["status"] == "valid"
        assert verified["signer"] == issuer["did"]

        code, presented = self._run(capsys, base_args + ["present", record["vc"]])
        assert code == 0

        code, verified = self._run(capsys, base_args + ["verify", presented["vp"], "--nested"])
        assert code == 0
        assert verified["signer"] == holder["did"]
        assert verified["payload"]["verifiableCredential"] == [record["vc"]]
        assert verified["credentials"][0]["status"] == "valid"

    def test_duplicate_name_fails(self, capsys, base_args: list):
        issue = base_args + ["issue", "-n", "same", "-c", "x", "--holder", "did:example:h"]
        assert self._run(capsys, issue)[0] == 0

        code, output = self._run(capsys, issue)
        assert code == 1
        assert output["error"] == "CredentialNameConflictError"

    def test_verify_invalid_token(self, capsys, base_args: list):
        code, output = self._run(capsys, base_args + ["verify", "a.b.c"])
        assert code == 1
        assert output["status"] == "malformed"

    def test_invalid_days(self, capsys, base_args: list):
        with pytest.raises(SystemExit) as exc_info:
            main(base_args + ["issue", "-n", "x", "-c", "y", "--holder", "h", "--days", "0"])
        assert exc_info.value.code == 2

    def test_settings_from_env(self, capsys, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DIDENTITY_KEY_DIR", str(tmp_path / "env-keys"))
        monkeypatch.setenv("DIDENTITY_DB_PATH", str(tmp_path / "env.db"))
        code, _ = self._run(capsys, ["did", "holder"])
        assert code == 0
        assert (tmp_path / "env-keys" / "holder_private.key").exists()

    def test_validity_past_last_date(self, capsys, base_args: list):
        """A window ending after year 9999 is a rejected operation."""
        code, output = self._run(
            capsys,
            base_args + ["issue", "-n", "a", "-c", "x", "--holder", "h", "--days", "100000000"],
        )
        assert code == 1
        assert output["error"] == "ValueError"

        _, listed = self._run(capsys, base_args + ["list"])
        assert listed == []

    def test_days_beyond_timedelta(self, capsys, base_args: list):
        with pytest.raises(SystemExit) as exc_info:
            main(base_args + ["issue", "-n", "a", "-c", "x", "--holder", "h", "--days", "10000000000"])
        assert exc_info.value.code == 2

    def test_present_and_verify_leave_no_database(
        self, capsys, tmp_path: Path, base_args: list
    ):
        code, presented = self._run(capsys, base_args + ["present", "a.b.c"])
        assert code == 0
        code, _ = self._run(capsys, base_args + ["verify", presented["vp"]])
        assert code == 0
        assert not (tmp_path / "credential.db").exists()
