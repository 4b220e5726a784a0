from decimal import Decimal

from fastapi import APIRouter, HTTPException, Query

from schemas.terms import EmiIllustrationRequest, TermsRequest
from services.financial_terms import compute_penalty, compute_terms, illustrative_emi, tenure_days
from utils.case import model_to_response

router = APIRouter(prefix="/api/terms", tags=["terms"])


@router.post("/quote")
async def quote_terms(body: TermsRequest):
    try:
        terms = compute_terms(
            body.principal,
            body.day_rate_percent,
            body.days,
            body.processing_fee_percent,
            body.installment_count,
            body.fee_method,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return model_to_response(terms)


@router.get("/penalty")
async def quote_penalty(
    principal: Decimal = Query(...),
    days_overdue: int = Query(..., alias="daysOverdue"),
):
    try:
        penalty = compute_penalty(principal, days_overdue)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return model_to_response(penalty)


@router.post("/emi-illustration")
async def emi_illustration(body: EmiIllustrationRequest):
    try:
        result = illustrative_emi(body.principal, body.annual_rate_percent, body.months)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return model_to_response(result)


@router.get("/tenure")
async def get_tenure(installment_count: int = Query(1, alias="installmentCount")):
    try:
        days = tenure_days(installment_count)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"installmentCount": installment_count, "tenureDays": days}
