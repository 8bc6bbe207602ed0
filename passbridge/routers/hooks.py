"""
Webhooks called by the host platform.

Processing runs as a background task after the response is sent, so a slow
or failing pass provider never holds up the host's checkout.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends

from passbridge.dependencies import get_event_bus, verify_hook_secret
from passbridge.managers.event_bus import EventBus, HookEvent
from passbridge.schemas.hooks import AddToCartRedirectHook, CheckoutCompletedHook, HookAccepted, OrderHook

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_hook_secret)])


@router.post("/checkout-completed", response_model=HookAccepted)
async def checkout_completed(
    hook: CheckoutCompletedHook,
    background_tasks: BackgroundTasks,
    bus: EventBus = Depends(get_event_bus),
):
    logger.info(f"Checkout completed for order #{hook.order_id}")
    background_tasks.add_task(bus.publish, HookEvent.CHECKOUT_COMPLETED, hook.order_id, hook.data)
    return HookAccepted(order_id=hook.order_id)


@router.post("/order-status-completed", response_model=HookAccepted)
async def order_status_completed(
    hook: OrderHook,
    background_tasks: BackgroundTasks,
    bus: EventBus = Depends(get_event_bus),
):
    logger.info(f"Order #{hook.order_id} marked completed")
    background_tasks.add_task(bus.publish, HookEvent.ORDER_COMPLETED, hook.order_id)
    return HookAccepted(order_id=hook.order_id)


@router.post("/thankyou", response_model=HookAccepted)
async def thankyou_viewed(
    hook: OrderHook,
    background_tasks: BackgroundTasks,
    bus: EventBus = Depends(get_event_bus),
):
    background_tasks.add_task(bus.publish, HookEvent.THANKYOU_VIEWED, hook.order_id)
    return HookAccepted(order_id=hook.order_id)


@router.post("/add-to-cart-redirect", response_model=HookAccepted)
async def add_to_cart_redirect(
    hook: AddToCartRedirectHook,
    bus: EventBus = Depends(get_event_bus),
):
    # Only schedules the delayed re-check, so it runs inline
    await bus.publish(HookEvent.ADD_TO_CART_REDIRECT, hook.order_id)
    return HookAccepted(order_id=hook.order_id, redirect_url=hook.redirect_url)
