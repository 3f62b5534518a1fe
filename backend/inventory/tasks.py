import json
import logging

from asgiref.sync import async_to_sync
from celery import shared_task
from channels.layers import get_channel_layer
from django.utils import timezone

from .consumers import STOCK_GROUP
from .services.balance_service import previous_month
from .services.summary_service import SummaryService

logger = logging.getLogger(__name__)


@shared_task
def generate_monthly_summaries(year, month, carry_forward=True):
    result = SummaryService.generate(year, month, carry_forward=carry_forward)
    broadcast_stock_event('summary.generated', {'year': year, 'month': month, 'count': result['count']})
    return result['count']


@shared_task
def generate_previous_month_summaries():
    """Scheduled on the 1st of every month: summarize the month that just ended."""
    today = timezone.localdate()
    year, month = previous_month(today.year, today.month)
    logger.info(f"Scheduled monthly summary generation for {year}-{month:02d}")
    return generate_monthly_summaries(year, month)


def broadcast_stock_event(event_type, payload):
    """
    Send an event to every client of the stock WebSocket feed.

    Args:
        event_type: 'movement.recorded', 'summary.generated' or 'production.executed'
        payload: JSON-serializable dict
    """
    try:
        channel_layer = get_channel_layer()
        if channel_layer:
            # Round trip through json so Decimals and datetimes become plain values
            data = json.loads(json.dumps(payload, default=str))
            async_to_sync(channel_layer.group_send)(STOCK_GROUP, {'type': event_type, 'payload': data})
            logger.info(f"Broadcasted {event_type} to WebSocket clients")
    except Exception as e:
        logger.error(f"Failed to broadcast {event_type}: {e}")
