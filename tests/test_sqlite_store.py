from __future__ import annotations

from pathlib import Path

from shared.models.models import StrategyRecord
from shared.state.sqlite_store import SqliteStrategyStore


def test_insert_new_does_not_overwrite_existing_rating():
    with SqliteStrategyStore(":memory:") as store:
        record = StrategyRecord.seeded("alg-a")
        assert store.insert_new(record)
        record.elo = 1500.0
        assert not store.insert_new(record)
        assert store.get("alg-a").elo == 1000.0
        assert store.count() == 1


def test_find_all_orders_by_elo_then_bear_then_bull():
    with SqliteStrategyStore(":memory:") as store:
        store.insert_new(StrategyRecord("low", elo=900.0))
        store.insert_new(StrategyRecord("tie-bear", elo=1100.0, bear_elo=1200.0))
        store.insert_new(StrategyRecord("tie-bull", elo=1100.0, bear_elo=1000.0, bull_elo=1300.0))
        store.insert_new(StrategyRecord("top", elo=1400.0))

        assert [r.algorithm for r in store.find_all()] == ["top", "tie-bear", "tie-bull", "low"]
        assert [r.algorithm for r in store.find_all(limit=2)] == ["top", "tie-bear"]
        assert [r.algorithm for r in store.iter_all()] == ["low", "tie-bear", "tie-bull", "top"]


def test_save_round_trips_fields_and_keeps_created_at():
    with SqliteStrategyStore(":memory:") as store:
        record = StrategyRecord.seeded("alg-b")
        store.insert_new(record)
        created = store.get("alg-b").created_at

        record.elo = 1234.5
        record.games = 7
        record.bear_games = 3
        record.por = -1.25
        store.save(record)

        loaded = store.get("alg-b")
        assert loaded.elo == 1234.5
        assert loaded.games == 7 and loaded.bear_games == 3
        assert loaded.por == -1.25
        assert loaded.created_at == created
        assert loaded.updated_at >= created


def test_delete_and_delete_where():
    with SqliteStrategyStore(":memory:") as store:
        store.insert_new(StrategyRecord("stale", games=11, por=0.0))
        store.insert_new(StrategyRecord("young", games=10, por=0.0))
        store.insert_new(StrategyRecord("useful", games=50, por=2.0))
        store.insert_new(StrategyRecord("gone"))

        store.delete("gone")
        assert store.get("gone") is None
        assert store.delete_where(games_gt=10) == 1
        assert sorted(r.algorithm for r in store.iter_all()) == ["useful", "young"]


def test_file_store_persists_between_connections(tmp_path: Path):
    path = tmp_path / "state" / "algs.sqlite3"
    with SqliteStrategyStore(path) as store:
        store.insert_new(StrategyRecord.seeded("persisted", elo=1100.0))
    with SqliteStrategyStore(path) as store:
        record = store.get("persisted")
        assert record is not None
        assert record.elo == record.bull_elo == record.bear_elo == 1100.0
