from portfolio.store import PortfolioStore
from portfolio.stocks import STOCKS, lookup_name, suggest

__all__ = ["PortfolioStore", "STOCKS", "lookup_name", "suggest"]
