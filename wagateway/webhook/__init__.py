"""Webhook delivery for inbound WhatsApp messages.

This module provides:
- Concurrent fan-out of message events to configured URLs
- A bounded in-memory log of delivery outcomes
- Ad-hoc probing of a single URL
"""

from wagateway.webhook.delivery_log import DeliveryLog
from wagateway.webhook.dispatcher import WebhookDispatcher
from wagateway.webhook.models import DeliveryLogEntry, ProbeResult, WebhookPayload

__all__ = [
    "DeliveryLog",
    "DeliveryLogEntry",
    "ProbeResult",
    "WebhookDispatcher",
    "WebhookPayload",
]
