from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from passbridge.dependencies import get_orchestrator, verify_hook_secret
from passbridge.schemas.hooks import EmailContentRequest, EmailContentResponse
from passbridge.services.orchestrator import PassOrchestrator

router = APIRouter(dependencies=[Depends(verify_hook_secret)])


@router.get("/orders/{order_id}/checkout-content", response_class=HTMLResponse)
async def checkout_content(
    order_id: int,
    orchestrator: PassOrchestrator = Depends(get_orchestrator),
):
    """Wallet buttons for the checkout success page; empty when there is no pass."""
    return HTMLResponse(await orchestrator.render_checkout_content(order_id))


@router.post("/orders/{order_id}/email-content", response_model=EmailContentResponse)
async def email_content(
    order_id: int,
    request: EmailContentRequest,
    orchestrator: PassOrchestrator = Depends(get_orchestrator),
):
    """Splice wallet buttons into a confirmation email."""
    content = await orchestrator.filter_email_content(request.content, order_id)
    return EmailContentResponse(content=content)
