"""SQLite 策略种群存储。

目标
----
- 持久化每个策略程序的评分记录（Elo / 对局数 / POR 均值）。
- 以序列化后的策略程序文本作为主键（天然去重键）。

设计
----
- SQLite + WAL；写入由进化引擎在单线程内串行完成，冲突时 last-write-wins。
- `find_all` 按 elo、bear_elo、bull_elo 降序取前 N 条。
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from shared.models.models import StrategyRecord

_COLUMNS = (
    "algorithm",
    "elo",
    "bull_elo",
    "bear_elo",
    "games",
    "bull_games",
    "bear_games",
    "por",
    "created_at",
    "updated_at",
)


def _parse_iso(val: str) -> datetime:
    return datetime.fromisoformat(val.replace("Z", "+00:00"))


def _iso(val: datetime) -> str:
    return val.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class SqliteStrategyStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        if str(path) != ":memory:":
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._ensure_schema()

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "SqliteStrategyStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _ensure_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS algs (
              algorithm TEXT PRIMARY KEY,
              elo REAL NOT NULL,
              bull_elo REAL NOT NULL,
              bear_elo REAL NOT NULL,
              games INTEGER NOT NULL,
              bull_games INTEGER NOT NULL,
              bear_games INTEGER NOT NULL,
              por REAL NOT NULL,
              created_at TEXT NOT NULL,
              updated_at TEXT NOT NULL
            );
            """
        )
        self._conn.execute("CREATE INDEX IF NOT EXISTS idx_algs_rank ON algs(elo DESC, bear_elo DESC, bull_elo DESC);")

    @staticmethod
    def _row_to_record(row: tuple) -> StrategyRecord:
        return StrategyRecord(
            algorithm=str(row[0]),
            elo=float(row[1]),
            bull_elo=float(row[2]),
            bear_elo=float(row[3]),
            games=int(row[4]),
            bull_games=int(row[5]),
            bear_games=int(row[6]),
            por=float(row[7]),
            created_at=_parse_iso(row[8]),
            updated_at=_parse_iso(row[9]),
        )

    @staticmethod
    def _record_params(record: StrategyRecord) -> tuple:
        return (
            record.algorithm,
            float(record.elo),
            float(record.bull_elo),
            float(record.bear_elo),
            int(record.games),
            int(record.bull_games),
            int(record.bear_games),
            float(record.por),
            _iso(record.created_at),
            _iso(record.updated_at),
        )

    def find_all(self, limit: int | None = None) -> list[StrategyRecord]:
        sql = f"SELECT {', '.join(_COLUMNS)} FROM algs ORDER BY elo DESC, bear_elo DESC, bull_elo DESC"
        params: tuple = ()
        if limit is not None:
            sql += " LIMIT ?"
            params = (int(limit),)
        rows = self._conn.execute(sql + ";", params).fetchall()
        return [self._row_to_record(r) for r in rows]

    def iter_all(self) -> Iterator[StrategyRecord]:
        cur = self._conn.execute(f"SELECT {', '.join(_COLUMNS)} FROM algs ORDER BY rowid ASC;")
        for row in cur.fetchall():
            yield self._row_to_record(row)

    def get(self, algorithm: str) -> StrategyRecord | None:
        row = self._conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM algs WHERE algorithm = ? LIMIT 1;",
            (algorithm,),
        ).fetchone()
        return self._row_to_record(row) if row else None

    def count(self) -> int:
        return int(self._conn.execute("SELECT COUNT(*) FROM algs;").fetchone()[0])

    def insert_new(self, record: StrategyRecord) -> bool:
        """仅当主键不存在时插入；已存在返回 False（不覆盖已有评分）。"""
        try:
            self._conn.execute(
                f"INSERT INTO algs ({', '.join(_COLUMNS)}) VALUES ({', '.join('?' * len(_COLUMNS))});",
                self._record_params(record),
            )
            return True
        except sqlite3.IntegrityError:
            return False

    def upsert(self, record: StrategyRecord) -> None:
        """插入或整体覆盖（created_at 保留首次写入值）。"""
        updates = ", ".join(f"{c} = excluded.{c}" for c in _COLUMNS if c not in {"algorithm", "created_at"})
        self._conn.execute(
            f"""
            INSERT INTO algs ({', '.join(_COLUMNS)}) VALUES ({', '.join('?' * len(_COLUMNS))})
            ON CONFLICT(algorithm) DO UPDATE SET {updates};
            """,
            self._record_params(record),
        )

    def save(self, record: StrategyRecord) -> None:
        """写回已有记录（刷新 updated_at）。"""
        record.updated_at = datetime.now(timezone.utc)
        self.upsert(record)

    def delete(self, algorithm: str) -> None:
        self._conn.execute("DELETE FROM algs WHERE algorithm = ?;", (algorithm,))

    def delete_where(self, *, games_gt: int, por_eq: float = 0.0) -> int:
        """批量删除 `games > games_gt AND por == por_eq` 的记录，返回删除条数。"""
        cur = self._conn.execute(
            "DELETE FROM algs WHERE games > ? AND por = ?;",
            (int(games_gt), float(por_eq)),
        )
        return int(cur.rowcount)
