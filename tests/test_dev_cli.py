from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest

CLI_PATH = Path(__file__).resolve().parents[1] / "tools" / "dev_cli.py"


@pytest.fixture
def dev_cli():
    spec = importlib.util.spec_from_file_location("dev_cli", CLI_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{(tmp_path / 'cli.db').as_posix()}"


def test_import_defaults_account_to_broker(dev_cli, db_url, tmp_path, capsys, tradovate_round_trip_csv):
    statement = tmp_path / "fills.csv"
    statement.write_text(tradovate_round_trip_csv, encoding="utf-8")

    assert dev_cli.main(["--database-url", db_url, "import", str(statement), "--broker", "Tradovate"]) == 0
    assert "Imported 2 trades into Tradovate." in capsys.readouterr().out

    dev_cli.main(["--database-url", db_url, "import", str(statement)])
    assert "already exist" in capsys.readouterr().out

    dev_cli.main(["--database-url", db_url, "sources"])
    listing = capsys.readouterr().out
    assert "Tradovate\tTradovate\t2 trades" in listing

    dev_cli.main(["--database-url", db_url, "delete-source", "Tradovate"])
    assert "Deleted 2 trades from Tradovate." in capsys.readouterr().out

    dev_cli.main(["--database-url", db_url, "sources"])
    assert "No imported sources yet." in capsys.readouterr().out


def test_brokers_command_prints_schema(dev_cli, capsys):
    assert dev_cli.main(["brokers", "TradingView"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("TradingView [import]: fills (FIFO PnL)")
    assert "* Symbol -> ticker" in out
