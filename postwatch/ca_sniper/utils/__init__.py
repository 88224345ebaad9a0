from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.utils.rate_limiter import RateLimiter

__all__ = ["get_logger", "RateLimiter"]
