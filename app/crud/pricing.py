# app/crud/pricing.py

from datetime import datetime
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.pricing import Offer, PriceRate


def get_effective_rates(db: Session, now: datetime) -> List[PriceRate]:
    """
    Все курсы, вступившие в силу к моменту `now`, от старых к новым.
    Вызывающий код оставляет последний по каждой комбинации (металл, проба, цвет).
    """
    return db.query(PriceRate).filter(
        PriceRate.effective_at <= now
    ).order_by(PriceRate.effective_at.asc(), PriceRate.id.asc()).all()


def get_active_offers(db: Session, now: datetime) -> List[Offer]:
    """Активные автоматические предложения, действующие в момент `now`."""
    return db.query(Offer).filter(
        Offer.is_active.is_(True),
        Offer.is_auto.is_(True),
        or_(Offer.starts_at.is_(None), Offer.starts_at <= now),
        or_(Offer.ends_at.is_(None), Offer.ends_at >= now),
    ).order_by(Offer.id).all()


def count_active_offers(db: Session, now: datetime) -> int:
    return db.query(Offer).filter(
        Offer.is_active.is_(True),
        or_(Offer.starts_at.is_(None), Offer.starts_at <= now),
        or_(Offer.ends_at.is_(None), Offer.ends_at >= now),
    ).count()
