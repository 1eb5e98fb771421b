from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.db.session import get_payment_service
from app.schemas.ledger import (
    BalancesResponse,
    DebtsResponse,
    DefaultCurrencyUpdate,
    GroupResponse,
    SpendingsResponse,
)
from app.schemas.payment import (
    PayBackCreate,
    PaymentCreate,
    PaymentResponse,
    PaymentWithDebtsResponse,
)
from app.services.payment_service import PaymentService

router = APIRouter()

async def _group_response(group, service: PaymentService) -> GroupResponse:
    return GroupResponse(
        id=group.id,
        members=group.members,
        currencies=group.currencies,
        default_currency=await service.get_default_currency(group.id)
    )

@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    service: PaymentService = Depends(get_payment_service)
):
    """Get group members, the currencies it has used and its default currency"""
    group = await service.get_group(group_id)
    return await _group_response(group, service)

@router.put("/{group_id}/default-currency", response_model=GroupResponse)
async def set_default_currency(
    group_id: str,
    currency_in: DefaultCurrencyUpdate,
    service: PaymentService = Depends(get_payment_service)
):
    """Set the currency used when a payment or pay-back names none"""
    group = await service.set_default_currency(group_id, currency_in.currency)
    return await _group_response(group, service)

@router.post("/{group_id}/payments", response_model=PaymentWithDebtsResponse)
async def add_payment(
    group_id: str,
    payment_in: PaymentCreate,
    service: PaymentService = Depends(get_payment_service)
):
    """Add a payment to the group and return the updated debts"""
    outcome = await service.add_payment(
        group_id,
        creditor=payment_in.creditor,
        currency=payment_in.currency,
        total_cents=payment_in.total_cents,
        debts=payment_in.build_shares(),
        description=payment_in.description,
        timestamp=payment_in.timestamp,
    )
    return PaymentWithDebtsResponse(
        payment=PaymentResponse.model_validate(outcome.payment),
        debts=outcome.debts
    )

@router.get("/{group_id}/payments", response_model=List[PaymentResponse])
async def list_payments(
    group_id: str,
    page: int = Query(0, ge=0),
    page_size: Optional[int] = Query(None, ge=1),
    service: PaymentService = Depends(get_payment_service)
):
    """List the group's payments, newest first"""
    payments = await service.list_payments(group_id, page=page, page_size=page_size)
    return [PaymentResponse.model_validate(p) for p in payments]

@router.post("/{group_id}/pay-back", response_model=PaymentWithDebtsResponse)
async def pay_back(
    group_id: str,
    pay_back_in: PayBackCreate,
    service: PaymentService = Depends(get_payment_service)
):
    """Record a repayment from one member to others"""
    outcome = await service.pay_back(
        group_id,
        payer=pay_back_in.payer,
        currency=pay_back_in.currency,
        repayments=[(r.recipient, r.amount_cents) for r in pay_back_in.repayments],
        timestamp=pay_back_in.timestamp,
    )
    return PaymentWithDebtsResponse(
        payment=PaymentResponse.model_validate(outcome.payment),
        debts=outcome.debts
    )

@router.get("/{group_id}/debts", response_model=DebtsResponse)
async def view_debts(
    group_id: str,
    currency: Optional[str] = None,
    service: PaymentService = Depends(get_payment_service)
):
    """Get simplified debts, for one currency or all"""
    debts = await service.view_debts(group_id, currency)
    return DebtsResponse(group_id=group_id, debts=debts)

@router.get("/{group_id}/balances", response_model=BalancesResponse)
async def view_balances(
    group_id: str,
    currency: Optional[str] = None,
    service: PaymentService = Depends(get_payment_service)
):
    """Get non-zero balances, for one currency or all"""
    balances = await service.view_balances(group_id, currency)
    return BalancesResponse(group_id=group_id, balances=balances)

@router.get("/{group_id}/spendings", response_model=SpendingsResponse)
async def view_spendings(
    group_id: str,
    currency: Optional[str] = None,
    service: PaymentService = Depends(get_payment_service)
):
    """Get per-member spent and paid totals"""
    spendings = await service.view_spendings(group_id, currency)
    return SpendingsResponse(group_id=group_id, spendings=spendings)
