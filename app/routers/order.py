# app/routers/order.py

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.dependencies import get_current_customer, get_db
from app.models.user import Customer
from app.schemas.order import OrderCreateResponse, QuotationSubmissionResponse, QuotationSubmit
from app.services import order as order_service
from app.services import quotation as quotation_service

router = APIRouter()


@router.post("/quotations/from-cart", response_model=QuotationSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_quotations(
    submission: Optional[QuotationSubmit] = None,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    """
    Отправка всей корзины на котировку. При нехватке остатков возвращает 422
    со списком всех нарушений и ничего не меняет.
    """
    comment = submission.comment if submission else None
    return quotation_service.submit_as_quotations(db, current_customer, comment)


@router.post("/orders/from-cart", response_model=OrderCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    return order_service.create_order_from_cart(db, current_customer)
