import importlib.util
import pathlib

import road_to_italy.datastore_pg as pg

_SCRIPT = pathlib.Path(__file__).resolve().parents[2] / "scripts" / "init_db.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("init_db", _SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def test_init_db_creates_seeds_and_summarises(monkeypatch, capsys):
    calls = []
    monkeypatch.setattr(pg, "create_table", lambda: calls.append("create"))
    monkeypatch.setattr(pg, "seed_participants", lambda names: calls.append(list(names)) or 2)
    monkeypatch.setattr(pg, "fetch_participants", lambda: [
        {"id": 1, "name": "Ann", "distance": 0},
        {"id": 2, "name": "Ben", "distance": 0},
    ])

    assert _load_script().main(["Ann", "Ben"]) == 0
    assert calls == ["create", ["Ann", "Ben"]]
    out = capsys.readouterr().out
    assert "Seeded 2 participants" in out
    assert "- 2: Ben (0.00 km)" in out


def test_init_db_requires_database_url(monkeypatch, capsys):
    monkeypatch.delenv("DATABASE_URL")
    assert _load_script().main([]) == 1
    assert "DATABASE_URL" in capsys.readouterr().out
