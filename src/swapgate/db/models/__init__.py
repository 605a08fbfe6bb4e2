"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from swapgate.db.models.session import OnrampSessionRow
from swapgate.db.models.webhook import WebhookRecordRow
from swapgate.db.models.device import DeviceRow
from swapgate.db.models.analytics import AnalyticsEventRow

__all__ = [
    "OnrampSessionRow",
    "WebhookRecordRow",
    "DeviceRow",
    "AnalyticsEventRow",
]
