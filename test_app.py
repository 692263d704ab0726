"""Tests for the web API and the CLI front end."""

import pytest

from numcalc import app as app_module
from numcalc import config
from numcalc.app import app, completions, handle_command, run_cli_mode
from numcalc.engine import Engine
from numcalc.rates import RateCache
from numcalc.sessions import init_db


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE", str(tmp_path / "sessions.db"))
    init_db()
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def session_id(client):
    response = client.post("/sessions")
    assert response.status_code == 201
    return response.get_json()["session_id"]


def test_calculate(client):
    response = client.post("/calculate", json={"query": "2 + 3 * 4"})
    assert response.status_code == 200
    result = response.get_json()["result"]
    assert result["display"] == "14"
    assert result["kind"] == "number"


def test_calculate_with_precision(client):
    response = client.post("/calculate", json={"query": "10 / 3", "precision": 4})
    assert response.get_json()["result"]["display"] == "3.3333"
    response = client.post("/calculate", json={"query": "10 / 3", "precision": 40})
    assert response.status_code == 400


def test_calculate_rejects_bad_requests(client):
    assert client.post("/calculate", json={}).status_code == 400
    assert client.post("/calculate", json={"query": "   "}).status_code == 400
    response = client.post("/calculate", json={"query": "x = 5"})
    assert response.status_code == 400
    assert "session" in response.get_json()["error"]


def test_calculate_error_value(client):
    response = client.post("/calculate", json={"query": "1 / 0"})
    assert response.status_code == 400
    assert response.get_json()["error"] == "division by zero"


def test_session_flow(client, session_id):
    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "x = $10"})
    assert response.status_code == 200
    assert response.get_json()["variable_set"] == "x"

    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "x * 2"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["result"]["display"] == "$20.00"
    assert "variable_set" not in body

    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "1 / 0"})
    assert response.status_code == 400

    response = client.get(f"/sessions/{session_id}")
    assert response.status_code == 200
    body = response.get_json()
    assert body["session_id"] == session_id
    assert body["variables"]["x"]["display"] == "$10.00"
    assert [line["raw"] for line in body["lines"]] == ["x = $10", "x * 2"]

    listed = client.get("/sessions").get_json()
    assert listed[0]["session_id"] == session_id
    assert listed[0]["lines"] == 2


def test_session_continuation_survives_replay(client, session_id):
    client.post(f"/sessions/{session_id}/calculate", json={"query": "100"})
    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "+ 50"})
    assert response.get_json()["result"]["display"] == "150"
    assert response.get_json()["total"]["display"] == "150"

    body = client.get(f"/sessions/{session_id}").get_json()
    assert [line["consumed"] for line in body["lines"]] == [True, False]
    assert body["total"]["display"] == "150"


def test_session_settings(client, session_id):
    response = client.put(f"/sessions/{session_id}/settings", json={"precision": 4, "strict": True})
    assert response.status_code == 200
    assert response.get_json() == {"precision": 4, "strict": True}

    response = client.post(f"/sessions/{session_id}/calculate", json={"query": "missing + 1"})
    assert response.status_code == 400

    response = client.put(f"/sessions/{session_id}/settings", json={"precision": 99})
    assert response.status_code == 400


def test_unknown_session(client):
    assert client.get("/sessions/nope").status_code == 404
    assert client.post("/sessions/nope/calculate", json={"query": "1"}).status_code == 404
    assert client.put("/sessions/nope/settings", json={}).status_code == 404


def test_delete_session(client, session_id):
    assert client.delete(f"/sessions/{session_id}").status_code == 204
    assert client.delete(f"/sessions/{session_id}").status_code == 404
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_rates_endpoint(client):
    response = client.get("/rates/usd/eur")
    assert response.status_code == 200
    body = response.get_json()
    assert body["from"] == "USD"
    assert body["to"] == "EUR"
    assert body["rate"] > 0
    assert client.get("/rates/USD/ZZZ").status_code == 404


def test_handle_command(capsys):
    engine = Engine(RateCache(with_defaults=False))
    assert handle_command(engine, "2 + 2") is None
    assert handle_command(engine, "exit") is False
    assert handle_command(engine, "total = 5") is None

    assert handle_command(engine, "precision 4") is True
    assert engine.precision == 4
    assert handle_command(engine, "precision 99") is True
    assert "Error" in capsys.readouterr().out
    assert engine.precision == 4

    assert handle_command(engine, "strict on") is True
    assert engine.strict

    engine.eval("x = 1")
    handle_command(engine, "vars")
    assert "x = 1" in capsys.readouterr().out

    handle_command(engine, "clear")
    assert engine.variables() == {}


@pytest.fixture
def offline_cache(tmp_path, monkeypatch):
    monkeypatch.setenv("NUMCALC_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setattr(app_module, "RATES", RateCache())


def test_cli_expression(offline_cache, capsys):
    run_cli_mode(["--offline", "2 * 21"])
    assert capsys.readouterr().out.strip() == "42"


def test_cli_file(offline_cache, tmp_path, capsys):
    path = tmp_path / "sheet.txt"
    path.write_text("a = 5\na * 2", encoding="utf-8")
    run_cli_mode(["--offline", "--file", str(path)])
    out = capsys.readouterr().out.splitlines()
    assert out[0].split()[-1] == "5"
    assert out[1].split()[-1] == "10"
    assert out[-1].startswith("Total")
    assert out[-1].split()[-1] == "15"


def test_completions():
    engine = Engine(RateCache(with_defaults=False))
    engine.eval("rent = $1200")
    gold = completions(engine, "XA")
    assert "XAU" in gold
    assert "XAG" in gold
    assert "BTC" in completions(engine, "B")
    assert completions(engine, "sqr") == ["sqrt"]
    assert "rent" in completions(engine, "re")
    assert "precision" in completions(engine, "pre")
