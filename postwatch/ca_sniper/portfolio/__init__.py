from postwatch.ca_sniper.portfolio.price_source import PriceSource
from postwatch.ca_sniper.portfolio.position_tracker import PositionTracker

__all__ = ["PriceSource", "PositionTracker"]
