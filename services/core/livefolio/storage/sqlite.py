import os
import aiosqlite
from typing import Iterable

from ..providers.base import AssetType, Holding, is_valid_price


CREATE_SQL = """
CREATE TABLE IF NOT EXISTS holdings (
  id TEXT PRIMARY KEY,
  symbol TEXT NOT NULL,
  asset_type TEXT NOT NULL,
  quantity REAL NOT NULL,
  purchase_price REAL NOT NULL,
  current_price REAL,
  updated_at REAL
);
"""


def _row_to_holding(row: aiosqlite.Row) -> Holding:
  return Holding(
    id=row["id"],
    symbol=row["symbol"],
    asset_type=AssetType(row["asset_type"]),
    quantity=row["quantity"],
    purchase_price=row["purchase_price"],
    current_price=row["current_price"],
    updated_at=row["updated_at"],
  )


class HoldingsStore:
  """SQLite-backed holdings collaborator. The price engine only writes current_price."""

  def __init__(self, path: str):
    self.path = path

  async def init(self) -> None:
    directory = os.path.dirname(self.path)
    if directory:
      os.makedirs(directory, exist_ok=True)
    async with aiosqlite.connect(self.path) as db:
      await db.execute(CREATE_SQL)
      await db.commit()

  async def upsert_holdings(self, holdings: Iterable[Holding]) -> int:
    holdings_list = list(holdings)
    if not holdings_list:
      return 0
    async with aiosqlite.connect(self.path) as db:
      await db.executemany(
        """
        INSERT INTO holdings (id, symbol, asset_type, quantity, purchase_price, current_price, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          symbol=excluded.symbol,
          asset_type=excluded.asset_type,
          quantity=excluded.quantity,
          purchase_price=excluded.purchase_price;
        """,
        [
          (h.id, h.symbol, h.asset_type.value, h.quantity, h.purchase_price, h.current_price, h.updated_at)
          for h in holdings_list
        ],
      )
      await db.commit()
    return len(holdings_list)

  async def list_holdings(self) -> list[Holding]:
    async with aiosqlite.connect(self.path) as db:
      db.row_factory = aiosqlite.Row
      cur = await db.execute(
        """
        SELECT id, symbol, asset_type, quantity, purchase_price, current_price, updated_at
        FROM holdings
        ORDER BY symbol, id;
        """
      )
      rows = await cur.fetchall()
      return [_row_to_holding(r) for r in rows]

  async def get_holding(self, holding_id: str) -> Holding | None:
    async with aiosqlite.connect(self.path) as db:
      db.row_factory = aiosqlite.Row
      cur = await db.execute(
        """
        SELECT id, symbol, asset_type, quantity, purchase_price, current_price, updated_at
        FROM holdings
        WHERE id=?;
        """,
        (holding_id,),
      )
      row = await cur.fetchone()
      return _row_to_holding(row) if row is not None else None

  async def update_holding_price(self, holding_id: str, price: float, updated_at: float) -> None:
    """Set current_price. Zero/negative/NaN prices are refused; they mean 'no data'."""
    if not is_valid_price(price):
      raise ValueError(f"Refusing to store invalid price {price!r} for holding {holding_id}")
    async with aiosqlite.connect(self.path) as db:
      await db.execute(
        "UPDATE holdings SET current_price=?, updated_at=? WHERE id=?",
        (float(price), updated_at, holding_id),
      )
      await db.commit()
