# app/services/cost_model.py

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.crud import pricing as crud_pricing
from app.models.catalog import Diamond
from app.models.pricing import Offer

logger = logging.getLogger(__name__)

RateKey = Tuple[str, str, Optional[str]]


def _rate_key(metal: str, purity: str, tone: Optional[str]) -> RateKey:
    return (metal.strip().lower(), purity.strip().lower(), tone.strip().lower() if tone else None)


class CostModel:
    """
    Снимок курсов и активных предложений на момент запроса.
    Загружается один раз, после чего расчёт цены не ходит в БД.
    """

    def __init__(self, metal_rates: Dict[RateKey, float] | None = None, offers: List[Offer] | None = None):
        self.metal_rates = metal_rates or {}
        self.offers = offers or []

    def metal_rate(self, metal: str, purity: str, tone: Optional[str]) -> float:
        """
        Курс за грамм. Сначала ищется курс для конкретного цвета, затем общий.
        Если курса нет - 0 и предупреждение в лог.
        """
        rate = self.metal_rates.get(_rate_key(metal, purity, tone))
        if rate is None:
            rate = self.metal_rates.get(_rate_key(metal, purity, None))
        if rate is None:
            logger.warning(f"No metal rate for metal='{metal}', purity='{purity}', tone='{tone}'. Using 0.")
            return 0.0
        return rate

    def diamond_rate(self, diamond: Diamond) -> float:
        if diamond.price is None:
            logger.warning(f"No rate for diamond ID {diamond.id}. Using 0.")
            return 0.0
        return float(diamond.price)


def load_cost_model(db: Session, now: datetime | None = None) -> CostModel:
    now = now or datetime.now(timezone.utc)

    metal_rates: Dict[RateKey, float] = {}
    # Курсы идут от старых к новым, поэтому последний записанный и есть действующий
    for rate in crud_pricing.get_effective_rates(db, now):
        metal_rates[_rate_key(rate.metal, rate.purity, rate.tone)] = float(rate.price_per_gram)

    offers = crud_pricing.get_active_offers(db, now)
    return CostModel(metal_rates=metal_rates, offers=offers)
