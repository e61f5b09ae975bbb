import logging

import httpx

from agenda.core import config
from agenda.core.errors import DeliveryFailedError

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Hands reminders to the tenant's automation webhook.

    The webhook owns delivery over email or WhatsApp; all we know is whether
    it accepted the message.
    """

    def __init__(self, timeout: float | None = None, transport: httpx.BaseTransport | None = None):
        self.timeout = timeout or config.NOTIFIER_TIMEOUT_SECONDS
        self.transport = transport

    def send(
        self,
        channel: str,
        recipient: str,
        template_data: dict,
        *,
        webhook_url: str | None,
        api_key: str | None = None,
    ) -> None:
        if not webhook_url:
            raise DeliveryFailedError('No webhook configured for reminder delivery.')

        payload = {'type': channel, 'recipient': recipient, **template_data}
        headers = {'Authorization': f'Bearer {api_key or ""}'}

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(webhook_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise DeliveryFailedError(f'Webhook request failed: {exc}') from exc

        if response.is_error:
            raise DeliveryFailedError(f'Webhook responded with status {response.status_code}.')

        logger.debug('Delivered %s reminder to %s', channel, recipient)
