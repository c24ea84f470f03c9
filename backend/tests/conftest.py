import copy

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from groupvoyage.database import Base
from groupvoyage.models import GroupMember, TravelGroup  # noqa: F401  (register tables)

SAMPLE_ITINERARY = {
    "itinerary": [
        {
            "date": "26",
            "day": "Jul",
            "month": "Day 1",
            "places": [
                {"id": "p1", "name": "Marina Beach", "description": "Sunrise walk", "duration": "2 hours",
                 "type": "nature", "visitTime": "06:30"},
                {"id": "p2", "name": "Kapaleeshwarar Temple", "description": "Dravidian temple", "duration": "1 hour",
                 "type": "historical", "visitTime": "09:30"},
                {"id": "p3", "name": "Government Museum", "description": "Bronze gallery", "duration": "2 hours",
                 "type": "museum", "visitTime": "11:30"},
            ],
        },
        {
            "date": "27",
            "day": "Jul",
            "month": "Day 2",
            "places": [
                {"id": "p4", "name": "Fort St. George", "description": "Colonial fort", "duration": "2 hours",
                 "type": "historical", "visitTime": "10:00"},
                {"id": "p5", "name": "Pondy Bazaar", "description": "Street shopping", "duration": "3 hours",
                 "type": "shopping", "visitTime": "15:00"},
            ],
        },
    ],
    "hotels": [
        {"id": "h1", "name": "Taj Coromandel", "rating": 4.7, "price": "$200/night", "amenities": ["Pool"]},
        {"id": "h2", "name": "ITC Grand Chola", "rating": 4.8, "price": "$150/night", "amenities": ["Spa"]},
        {"id": "h3", "name": "Hotel Savera", "rating": 4.1, "price": "Contact hotel", "amenities": []},
    ],
    "flights": [],
    "budgetRange": "$1000 - $1500 per person",
}


@pytest.fixture
def itinerary_json():
    return copy.deepcopy(SAMPLE_ITINERARY)


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()
