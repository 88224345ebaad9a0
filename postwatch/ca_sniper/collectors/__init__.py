from postwatch.ca_sniper.collectors.twitter_collector import (
    FeedAuthError,
    FeedError,
    TwitterCollector,
)

__all__ = ["FeedAuthError", "FeedError", "TwitterCollector"]
