# app/core/exceptions.py

from typing import List, Optional


class ServiceError(Exception):
    """
    Базовое исключение бизнес-логики. Сервисы не знают про HTTP:
    сопоставление с кодами ответа делается в app/main.py.
    """
    status_code: int = 400

    def __init__(self, detail: str, errors: Optional[List[str]] = None):
        super().__init__(detail)
        self.detail = detail
        self.errors = errors or []


class NotFoundError(ServiceError):
    """Сущность (товар, вариация, позиция корзины) не найдена по ID."""
    status_code = 404


class ValidationError(ServiceError):
    """Некорректные входные данные: количество < 1, пустая корзина и т.п."""
    status_code = 422


class ConflictError(ServiceError):
    """Запись изменена параллельным запросом."""
    status_code = 409


class InventoryExceededError(ValidationError):
    """
    Запрошенное количество превышает остаток. В отличие от ValidationError
    может нести сразу весь список нарушений по корзине.
    """

    def __init__(self, detail: str, messages: Optional[List[str]] = None):
        super().__init__(detail, errors=messages or [detail])

    @property
    def messages(self) -> List[str]:
        return self.errors
