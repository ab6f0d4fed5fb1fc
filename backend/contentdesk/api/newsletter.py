import logging
from typing import List

from fastapi import APIRouter, Depends, Response, status

from contentdesk.api.deps import get_services
from contentdesk.schemas.common import MessageResponse
from contentdesk.schemas.newsletter import (
    NewsletterSendRequest,
    NewsletterSendResponse,
    NewsletterSubscribeRequest,
    NewsletterSubscriberRead,
    NewsletterUnsubscribeRequest,
    SubscriberEnvelope,
)
from contentdesk.services.container import Services
from contentdesk.services.notifications import _redact_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/newsletter", tags=["newsletter"])


@router.post("/subscribe", response_model=SubscriberEnvelope, status_code=status.HTTP_201_CREATED)
async def subscribe(
    data: NewsletterSubscribeRequest,
    response: Response,
    services: Services = Depends(get_services),
):
    """Subscribe to the newsletter. No authentication required.

    An address that unsubscribed earlier is reactivated (200) instead of being
    added again; an address that is already active is rejected.
    """
    subscriber, created = await services.subscribers.subscribe(data)
    if not created:
        response.status_code = status.HTTP_200_OK
        return SubscriberEnvelope(message="Subscription reactivated", subscriber=subscriber)
    return SubscriberEnvelope(message="Successfully subscribed", subscriber=subscriber)


@router.post("/unsubscribe", response_model=SubscriberEnvelope)
async def unsubscribe_by_email(data: NewsletterUnsubscribeRequest, services: Services = Depends(get_services)):
    """Unsubscribe an address (link target for newsletter footers)."""
    subscriber = await services.subscribers.unsubscribe_email(data.email)
    logger.info(f"Newsletter unsubscribe for {_redact_email(data.email)}")
    return SubscriberEnvelope(message="Successfully unsubscribed", subscriber=subscriber)


@router.get("/subscribers", response_model=List[NewsletterSubscriberRead])
async def list_subscribers(services: Services = Depends(get_services)):
    return await services.subscribers.list()


@router.get("/subscribers/{subscriber_id}", response_model=NewsletterSubscriberRead)
async def get_subscriber(subscriber_id: str, services: Services = Depends(get_services)):
    return await services.subscribers.get(subscriber_id)


@router.put("/subscribers/{subscriber_id}", response_model=SubscriberEnvelope)
async def update_subscriber(
    subscriber_id: str,
    data: NewsletterSubscribeRequest,
    services: Services = Depends(get_services),
):
    subscriber = await services.subscribers.update(subscriber_id, data)
    return SubscriberEnvelope(message="Subscriber updated", subscriber=subscriber)


@router.put("/subscribers/{subscriber_id}/unsubscribe", response_model=SubscriberEnvelope)
async def unsubscribe(subscriber_id: str, services: Services = Depends(get_services)):
    subscriber = await services.subscribers.set_subscribed(subscriber_id, False)
    logger.info(f"Newsletter subscriber unsubscribed: {subscriber_id}")
    return SubscriberEnvelope(message="Successfully unsubscribed", subscriber=subscriber)


@router.put("/subscribers/{subscriber_id}/resubscribe", response_model=SubscriberEnvelope)
async def resubscribe(subscriber_id: str, services: Services = Depends(get_services)):
    subscriber = await services.subscribers.set_subscribed(subscriber_id, True)
    logger.info(f"Newsletter subscriber resubscribed: {subscriber_id}")
    return SubscriberEnvelope(message="Subscription reactivated", subscriber=subscriber)


@router.delete("/subscribers/{subscriber_id}", response_model=MessageResponse)
async def delete_subscriber(subscriber_id: str, services: Services = Depends(get_services)):
    await services.subscribers.delete(subscriber_id)
    return MessageResponse(message="Subscriber deleted")


@router.post("/send", response_model=NewsletterSendResponse)
async def send_newsletter(data: NewsletterSendRequest, services: Services = Depends(get_services)):
    """Hand a newsletter to the notification sink.

    ``sendTo`` picks the audience: ``all`` active subscribers, the active
    subscribers listed in ``subscriberIds`` (``selected``), or everyone who
    unsubscribed (``unsubscribed``). Without ``sendTo`` nobody is targeted.
    """
    recipients = await services.subscribers.recipients(data.send_to, data.subscriber_ids)
    receipt = await services.notifications.send(
        data.subject,
        data.content,
        [subscriber.email for subscriber in recipients],
    )
    return NewsletterSendResponse(
        message=f"Newsletter sent to {receipt.accepted} subscribers",
        sent_to=receipt.accepted,
    )
