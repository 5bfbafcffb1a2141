"""Unit tests for taskcomments.cli — Command dispatch and output."""

from unittest.mock import patch

import pytest

from taskcomments.cli import main
from taskcomments.db.session import init_db
from taskcomments.db.store import SqlOwnershipStore, SqlTokenStore
from taskcomments.engine.config import load_config
from taskcomments.engine.identity import IdentityProvider


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "taskcomments.yaml"
    path.write_text(
        "database:\n"
        f"  url: sqlite:///{tmp_path / 'tc.db'}\n"
        "security:\n"
        "  token_hash_rounds: 4\n"
        "logging:\n"
        f"  directory: {tmp_path / 'logs'}\n"
    )
    return str(path)


def _factory(config_path):
    return init_db(load_config(config_path).database)


class TestCLI:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "taskcomments" in capsys.readouterr().out

    def test_init_db(self, config_path, capsys):
        assert main(["--config", config_path, "init-db"]) == 0
        assert "[OK] Database tables ready" in capsys.readouterr().out

    def test_issue_and_revoke_token(self, config_path, capsys):
        assert main(["--config", config_path, "issue-token", "alice", "--label", "laptop"]) == 0
        token = capsys.readouterr().out.splitlines()[-1].strip()

        identity = IdentityProvider(SqlTokenStore(_factory(config_path)))
        assert identity.verify({"authorization": f"Bearer {token}"}) == "alice"

        prefix = token.split(".", 1)[0]
        assert main(["--config", config_path, "revoke-token", prefix]) == 0
        assert "[OK]" in capsys.readouterr().out
        assert main(["--config", config_path, "revoke-token", prefix]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_create_task(self, config_path, capsys):
        assert main(["--config", config_path, "create-task", "alice", "Plan sprint",
                     "--priority", "high"]) == 0
        out = capsys.readouterr().out
        assert "for user 'alice'" in out
        task_id = out.split("Task ", 1)[1].split(" ", 1)[0]

        task = SqlOwnershipStore(_factory(config_path)).get_task(task_id, owner_id="alice")
        assert task.title == "Plan sprint"
        assert task.priority == "high"

    def test_create_task_blank_title(self, config_path, capsys):
        assert main(["--config", config_path, "create-task", "alice", "   "]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_bad_config(self, tmp_path, capsys):
        path = tmp_path / "taskcomments.yaml"
        path.write_text("service:\n  environment: qa\n")
        assert main(["--config", str(path), "init-db"]) == 1
        assert "[ERROR] Invalid configuration" in capsys.readouterr().out

    def test_serve(self, config_path, capsys):
        with patch("uvicorn.run") as mock_run:
            assert main(["--config", config_path, "serve", "--port", "9001"]) == 0
        _, kwargs = mock_run.call_args
        assert kwargs["port"] == 9001
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["log_level"] == "info"
        assert "http://0.0.0.0:9001/comments" in capsys.readouterr().out
