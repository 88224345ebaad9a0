from postwatch.ca_sniper.venues.base import VenueAdapter
from postwatch.ca_sniper.venues.router import (
    VenueRouter,
    build_venue_router,
    spendable_budget,
)

__all__ = ["VenueAdapter", "VenueRouter", "build_venue_router", "spendable_budget"]
