# app/dependencies.py

import logging
from typing import Iterator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import SessionLocal
from app.models.user import Customer
from app.services.pricing import CustomerContext

# --- Инициализация логгера ---
logger = logging.getLogger(__name__)

# --- Схемы аутентификации ---
strict_bearer_scheme = HTTPBearer(auto_error=True)
optional_bearer_scheme = HTTPBearer(auto_error=False)

# --- Управление сессией БД ---
def get_db() -> Iterator[Session]:
    """
    Основная зависимость FastAPI для получения сессии БД.
    Это генератор, который корректно работает с `Depends`.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _customer_id_from_token(token: str) -> Optional[int]:
    """ID клиента из поля 'sub' токена или None, если токен невалиден."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        return None
    customer_id = payload.get("sub")
    if customer_id is None or not str(customer_id).isdigit():
        logger.warning("Token payload is missing a numeric 'sub' (customer_id).")
        return None
    return int(customer_id)

# --- Зависимости аутентификации ---

def get_current_customer(
    credentials: HTTPAuthorizationCredentials = Depends(strict_bearer_scheme),
    db: Session = Depends(get_db)
) -> Customer:
    """
    ОБЯЗАТЕЛЬНАЯ зависимость.
    Требует валидный токен. Если его нет или он невалиден - вызывает ошибку 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    customer_id = _customer_id_from_token(credentials.credentials)
    if customer_id is None:
        raise credentials_exception

    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if customer is None:
        logger.warning(f"Customer with ID {customer_id} from token not found in DB.")
        raise credentials_exception
    logger.debug(f"Authenticated customer ID: {customer.id} ({customer.type})")
    return customer


def get_optional_customer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[Customer]:
    """
    ОПЦИОНАЛЬНАЯ зависимость для публичного каталога.
    Невалидный или отсутствующий токен означает гостя.
    """
    if not credentials:
        return None

    customer_id = _customer_id_from_token(credentials.credentials)
    if customer_id is None:
        return None

    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if customer is None:
        logger.warning(f"Optional customer with ID {customer_id} from token not found in DB.")
    return customer


def get_customer_context(customer: Optional[Customer] = Depends(get_optional_customer)) -> CustomerContext:
    """Контекст для расчёта цены: гость, если клиент не опознан."""
    return CustomerContext.from_customer(customer)
