import json

import pytest

import poll


@pytest.fixture
def cli_env(monkeypatch, tmp_path, clean_source_logger):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_STDERR", "false")
    monkeypatch.delenv("SOURCE_CONFIG", raising=False)
    monkeypatch.delenv("SOURCE_CONFIG_FILE", raising=False)
    return tmp_path


def test_cli_prints_batches_until_caught_up(cli_env, make_config, capsys):
    config_path = cli_env / "source.json"
    config_path.write_bytes(make_config())

    code = poll.main(["--config", str(config_path), "--until-caught-up"])

    assert code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    batches = [json.loads(line) for line in lines]
    assert [len(b["records"]) for b in batches] == [2, 2, 1]
    first = batches[0]
    assert first["context"] == {"table": "items"}
    assert first["records"][0]["metadata"] == {"source": "mysql", "table": "items"}
    assert first["records"][0]["payload"]["name"] == "alpha"


def test_cli_reads_config_from_environment(cli_env, make_config, monkeypatch, capsys):
    monkeypatch.setenv("SOURCE_CONFIG", make_config(batch_size=10).decode())

    code = poll.main(["--max-batches", "1"])

    assert code == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    assert len(json.loads(lines[0])["records"]) == 5


def test_cli_without_config_exits_2(cli_env):
    assert poll.main([]) == 2


def test_cli_invalid_config_exits_2(cli_env, monkeypatch):
    monkeypatch.setenv("SOURCE_CONFIG", '{"table": "items"}')
    assert poll.main([]) == 2


def test_cli_unreachable_database_exits_1(cli_env, monkeypatch):
    missing = cli_env / "missing" / "db.sqlite"
    monkeypatch.setenv(
        "SOURCE_CONFIG",
        json.dumps({"connection_string": f"sqlite+pysqlite:///{missing}", "table": "items"}),
    )
    assert poll.main([]) == 1
