"""
Portfolio Store — the user's holdings, persisted as one JSON document.

The whole list is rewritten on every mutation; the file is read once when
the store is opened. There is no market data feed: ``simulate_market_data``
is a demo that jitters prices around the buy price.
"""

from __future__ import annotations

import json
import logging
import random
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from analysis.schemas import PortfolioItem, PortfolioSummary
from portfolio.stocks import lookup_name

logger = logging.getLogger(__name__)

_DEFAULT_PATH = Path("data/portfolio.json")

# Simulated move relative to buy price: -5% .. +15%
SIMULATED_RETURN_RANGE = (-0.05, 0.15)


class PortfolioStore:
    """File-backed list of PortfolioItem."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path) if path else _DEFAULT_PATH
        self._items: list[PortfolioItem] = self._load()

    @property
    def items(self) -> list[PortfolioItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    # -- persistence -------------------------------------------------------

    def _load(self) -> list[PortfolioItem]:
        if not self.path.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, list):
                raise ValueError("portfolio file must hold a JSON list")
            items = [PortfolioItem.model_validate(entry) for entry in raw]
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Could not read portfolio from {self.path}, starting empty: {e}")
            return []
        logger.info(f"Loaded {len(items)} holdings from {self.path}")
        return items

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [item.model_dump(by_alias=True) for item in self._items]
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

    # -- mutations ---------------------------------------------------------

    def add(
        self,
        symbol: str,
        quantity: float,
        buy_price: float,
        name: Optional[str] = None,
    ) -> PortfolioItem:
        """Add a holding priced at its buy price.

        Raises:
            ValueError: empty symbol, non-positive quantity or negative price.
        """
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise ValueError("symbol is required")
        item = PortfolioItem(
            symbol=symbol,
            name=name or lookup_name(symbol) or symbol,
            quantity=quantity,
            buy_price=buy_price,
            current_price=buy_price,
        )
        self._items.append(item)
        self._save()
        logger.info(f"Added {item.quantity:g} x {item.symbol} @ {item.buy_price:.2f}")
        return item

    def remove(self, item_id: str) -> bool:
        """Delete a holding by id. False if no such id."""
        remaining = [i for i in self._items if i.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._save()
        return True

    def update_price(self, item_id: str, price: float) -> PortfolioItem:
        if price < 0:
            raise ValueError("price must be >= 0")
        for index, item in enumerate(self._items):
            if item.id == item_id:
                updated = item.model_copy(update={"current_price": float(price)})
                self._items[index] = updated
                self._save()
                return updated
        raise KeyError(item_id)

    def simulate_market_data(self, rng: random.Random | None = None) -> list[PortfolioItem]:
        """Set every current price to buy_price * (1 + r), r ~ U(-0.05, 0.15)."""
        rng = rng or random.Random()
        low, high = SIMULATED_RETURN_RANGE
        self._items = [
            item.model_copy(
                update={"current_price": item.buy_price * (1 + rng.uniform(low, high))}
            )
            for item in self._items
        ]
        self._save()
        return self.items

    # -- derived -----------------------------------------------------------

    def summary(self) -> PortfolioSummary:
        return PortfolioSummary.from_items(self._items)
