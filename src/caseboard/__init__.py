"""caseboard - live-state polling layer for a forensics case dashboard."""

# Adapters
from caseboard.adapters import (
    AsyncFetcher,
    AsyncHttpFetcher,
    AsyncMemoryFetcher,
)

# Client and configuration
from caseboard.client import DashboardClient
from caseboard.config import Settings

# Aggregate view
from caseboard.dashboard import Dashboard, DashboardView, Toast

# Duration parsing
from caseboard.duration import parse_duration, parse_interval

# Errors
from caseboard.errors import (
    CaseboardError,
    ChannelError,
    ConfigurationError,
    FetchError,
    HttpError,
    NetworkError,
    ParseError,
)

# Live channel
from caseboard.live import ChannelState, LiveChannel, backoff_delay

# Polling cache
from caseboard.polling import PollingCache, SubscriptionHandle, create_cache

# Core types
from caseboard.types import (
    CacheEntry,
    ChannelMessage,
    Duration,
    ResourceKey,
)
from caseboard.widgets import ViewState, WidgetView

__version__ = "0.1.0"

__all__ = [
    "AsyncFetcher",
    "AsyncHttpFetcher",
    "AsyncMemoryFetcher",
    "CacheEntry",
    "CaseboardError",
    "ChannelError",
    "ChannelMessage",
    "ChannelState",
    "ConfigurationError",
    "Dashboard",
    "DashboardClient",
    "DashboardView",
    "Duration",
    "FetchError",
    "HttpError",
    "LiveChannel",
    "NetworkError",
    "ParseError",
    "PollingCache",
    "ResourceKey",
    "Settings",
    "SubscriptionHandle",
    "Toast",
    "ViewState",
    "WidgetView",
    "backoff_delay",
    "create_cache",
    "parse_duration",
    "parse_interval",
]
