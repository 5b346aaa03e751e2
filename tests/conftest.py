# tests/conftest.py
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.redis import get_redis_client
from app.db.session import Base
from app.dependencies import get_db
from app.main import app
# Импортируем все модели для создания таблиц
from app.models import cart, catalog, order, pricing, user  # noqa: F401
from app.models.catalog import (
    Brand, Category, Diamond, DiamondClarity, DiamondColor, DiamondShape, Metal, MetalPurity,
    MetalTone, Product, ProductVariant, VariantDiamond, VariantMetal
)
from app.models.pricing import PriceRate
from app.models.user import Customer

# Используем in-memory SQLite для тестов - это быстро и изолированно.
# StaticPool: одно соединение на все сессии, иначе каждая увидит пустую БД.
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Фикстура для создания чистой базы данных для каждого теста.
    """
    Base.metadata.create_all(bind=engine) # Создаем все таблицы
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine) # Очищаем все после теста


# --- Справочники и данные ---

@pytest.fixture
def customer(db_session) -> Customer:
    customer = Customer(email="buyer@example.com", name="Test Buyer", type="retailer")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def other_customer(db_session) -> Customer:
    customer = Customer(email="other@example.com", name="Other Buyer", type="wholesaler")
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture
def refs(db_session) -> dict:
    """Минимальный набор справочников: золото и серебро, пробы, цвета, параметры бриллиантов."""
    gold = Metal(name="Gold", display_order=1)
    silver = Metal(name="Silver", display_order=2)
    db_session.add_all([gold, silver])
    db_session.flush()

    data = {
        "gold": gold,
        "silver": silver,
        "18k": MetalPurity(metal_id=gold.id, name="18K", display_order=1),
        "22k": MetalPurity(metal_id=gold.id, name="22K", display_order=2),
        "925": MetalPurity(metal_id=silver.id, name="925", display_order=1),
        "yellow": MetalTone(metal_id=gold.id, name="Yellow", display_order=1),
        "rose": MetalTone(metal_id=gold.id, name="Rose", display_order=2),
        "white": MetalTone(metal_id=silver.id, name="White", display_order=1),
        "round": DiamondShape(name="Round", display_order=1),
        "oval": DiamondShape(name="Oval", display_order=2),
        "color_f": DiamondColor(name="F", display_order=1),
        "vs1": DiamondClarity(name="VS1", display_order=1),
        "brand": Brand(name="Aurum"),
        "other_brand": Brand(name="Lumen"),
        "rings": Category(name="Rings"),
        "pendants": Category(name="Pendants"),
    }
    db_session.add_all([v for k, v in data.items() if k not in ("gold", "silver")])
    db_session.commit()
    return data


def _make_product(db: Session, refs: dict, name: str, variants=(), **fields) -> Product:
    """
    Создаёт товар с вариациями. Вариация описывается словарём:
    {"label", "inventory", "is_default", "metals": [(metal, purity, tone, weight)],
     "diamonds": [(diamond, count)]}; ссылки - ключи `refs` или сами объекты.
    """
    def ref(value):
        return refs[value] if isinstance(value, str) else value

    product = Product(name=name, **fields)
    for data in variants:
        variant = ProductVariant(
            label=data.get("label"),
            sku=data.get("sku"),
            inventory_quantity=data.get("inventory"),
            is_default=data.get("is_default", False),
        )
        for metal, purity, tone, weight in data.get("metals", []):
            variant.metals.append(VariantMetal(
                metal=ref(metal) if metal else None,
                purity=ref(purity) if purity else None,
                tone=ref(tone) if tone else None,
                metal_weight=weight,
            ))
        for diamond, count in data.get("diamonds", []):
            variant.diamonds.append(VariantDiamond(diamond=diamond, diamonds_count=count))
        product.variants.append(variant)
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def make_product(db_session, refs):
    def factory(name: str, variants=(), **fields) -> Product:
        return _make_product(db_session, refs, name, variants, **fields)
    return factory


@pytest.fixture
def make_diamond(db_session, refs):
    def factory(price: float, name: str | None = None, shape="round", color="color_f", clarity="vs1") -> Diamond:
        diamond = Diamond(
            name=name,
            shape=refs[shape] if shape else None,
            color=refs[color] if color else None,
            clarity=refs[clarity] if clarity else None,
            price=price,
        )
        db_session.add(diamond)
        db_session.commit()
        return diamond
    return factory


@pytest.fixture
def add_rate(db_session):
    def factory(metal: str, purity: str, price: float, tone: str | None = None) -> PriceRate:
        rate = PriceRate(metal=metal, purity=purity, tone=tone, price_per_gram=price)
        db_session.add(rate)
        db_session.commit()
        return rate
    return factory


# --- HTTP клиент ---

@pytest.fixture
def mock_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.get.return_value = None
    return redis


@pytest.fixture
def auth_headers(customer) -> dict:
    token = jwt.encode({"sub": str(customer.id)}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(db_session, mock_redis):
    def override_get_db():
        yield db_session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = override_get_redis
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
