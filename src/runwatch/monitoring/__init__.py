"""Live status aggregation and fan-out."""

from .aggregator import (
    ResultSummary,
    build_active_entry,
    build_snapshot,
    compute_outcome,
    compute_progress,
    summarize,
)
from .broadcaster import Broadcaster
from .exceptions import DeliveryFailure, MonitoringError, PubSubUnavailableError
from .pubsub import InMemoryPubSub, PubSubBus, RedisPubSub, UpdateStream
from .registry import ActiveList, SubscriberRegistry, Subscription
from .status_service import StatusService

__all__ = [
    "ActiveList",
    "Broadcaster",
    "DeliveryFailure",
    "InMemoryPubSub",
    "MonitoringError",
    "PubSubBus",
    "PubSubUnavailableError",
    "RedisPubSub",
    "ResultSummary",
    "StatusService",
    "SubscriberRegistry",
    "Subscription",
    "UpdateStream",
    "build_active_entry",
    "build_snapshot",
    "compute_outcome",
    "compute_progress",
    "summarize",
]
