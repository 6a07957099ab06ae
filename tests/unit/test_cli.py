import pytest

from sql_replay import __main__ as cli
from sql_replay.driver import ReplayResult
from sql_replay.errors import MalformedInput


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    monkeypatch.setattr("sql_replay.config.load_dotenv", lambda *_args, **_kwargs: True)
    monkeypatch.delenv("REPLAY_DUMP", raising=False)
    monkeypatch.delenv("REPLAY_CHECKPOINT_PATH", raising=False)


@pytest.mark.unit
def test_missing_dump_exits_with_failure():
    assert cli.main(["replay"]) == 1


@pytest.mark.unit
def test_replay_passes_flags_into_settings(monkeypatch, tmp_path):
    captured = {}

    def _fake_replay(settings, password_prompt=None):
        captured["settings"] = settings
        return ReplayResult(position=0, executed=0, skipped=0, recovered=0, growth_events=0)

    monkeypatch.setattr(cli, "replay_dump", _fake_replay)
    dump = tmp_path / "dump.sql"

    code = cli.main(
        ["replay", "--dump", str(dump), "--dsn", "host=db", "--enable-ssl", "--buffer-bytes", "64"]
    )

    assert code == 0
    settings = captured["settings"]
    assert settings.dump_path == dump
    assert settings.dsn == "host=db"
    assert settings.tls_enabled is True
    assert settings.buffer_capacity == 64
    assert settings.prompt_password is False


@pytest.mark.unit
def test_replay_errors_become_exit_status(monkeypatch, tmp_path):
    def _fail(settings, password_prompt=None):
        raise MalformedInput("dump ends mid-statement")

    monkeypatch.setattr(cli, "replay_dump", _fail)

    assert cli.main(["replay", "--dump", str(tmp_path / "dump.sql")]) == 1


@pytest.mark.unit
def test_status_prints_progress(tmp_path, capsys):
    dump = tmp_path / "dump.sql"
    dump.write_bytes(b"SELECT 1;\nSELECT 2;\n")
    (tmp_path / "dump.sql.log").write_text('{"position": 20}\n')

    assert cli.main(["status", "--dump", str(dump)]) == 0
    out = capsys.readouterr().out
    assert "20/20 bytes" in out
    assert "complete" in out
