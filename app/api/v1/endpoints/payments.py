from fastapi import APIRouter, Depends

from app.db.session import get_payment_service
from app.schemas.payment import (
    PaymentEditResponse,
    PaymentResponse,
    PaymentUpdate,
)
from app.schemas.ledger import DebtsResponse
from app.services.payment_service import PaymentService

router = APIRouter()

@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: str,
    service: PaymentService = Depends(get_payment_service)
):
    """Get a payment by ID"""
    payment = await service.get_payment(payment_id)
    return PaymentResponse.model_validate(payment)

@router.patch("/{payment_id}", response_model=PaymentEditResponse)
async def edit_payment(
    payment_id: str,
    payment_in: PaymentUpdate,
    service: PaymentService = Depends(get_payment_service)
):
    """Edit a payment; balances are recomputed unless only the description changed"""
    debts = await service.edit_payment(
        payment_id,
        description=payment_in.description,
        creditor=payment_in.creditor,
        currency=payment_in.currency,
        total_cents=payment_in.total_cents,
        split_debts=payment_in.share_builder(),
    )
    payment = await service.get_payment(payment_id)
    return PaymentEditResponse(payment=PaymentResponse.model_validate(payment), debts=debts)

@router.delete("/{payment_id}", response_model=DebtsResponse)
async def delete_payment(
    payment_id: str,
    service: PaymentService = Depends(get_payment_service)
):
    """Delete a payment and revert its effect on balances"""
    outcome = await service.delete_payment(payment_id)
    return DebtsResponse(group_id=outcome.payment.group_id, debts=outcome.debts)
