"""Shared test fixtures."""
import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from leadengine.database import Base


class FakeRedis:
    """Minimal in-memory Redis fake (strings + hashes + pipeline)."""

    def __init__(self):
        self.get_store = {}
        self.hash_store = {}

    def get(self, key):
        return self.get_store.get(key)

    def set(self, key, value):
        self.get_store[key] = str(value)

    def incr(self, key):
        val = int(self.get_store.get(key, 0)) + 1
        self.get_store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.get_store.pop(k, None)
            self.hash_store.pop(k, None)

    def hset(self, key, field, value):
        self.hash_store.setdefault(key, {})[field] = str(value)

    def hincrby(self, key, field, amount):
        h = self.hash_store.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)
        return int(h[field])

    def hgetall(self, key):
        return dict(self.hash_store.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Queues calls, applies them on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        def _queue(*args):
            self._ops.append((name, args))
            return self
        return _queue

    def execute(self):
        for name, args in self._ops:
            getattr(self._redis, name)(*args)
        self._ops = []


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created."""
    engine = create_engine('sqlite:///:memory:')
    import leadengine.models.lead
    import leadengine.models.lead_event
    import leadengine.models.automation
    import leadengine.models.site_survey
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Session for assertions. Rolls back after each test."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(session_factory):
    """
    Route get_session() inside leadengine.services.db to the in-memory engine.

    The module binds get_session at import time, so patching
    leadengine.database.get_session alone would not reach it. Each call
    returns a fresh session so close() in production code is harmless.
    """
    with patch('leadengine.services.db.get_session', side_effect=lambda: session_factory()):
        yield


@pytest.fixture
def store(session_factory):
    from leadengine.services.db import SqlAlchemyLeadStore
    return SqlAlchemyLeadStore(session_factory=session_factory)


@pytest.fixture
def app(fake_redis):
    """Flask test app with Redis swapped for the in-memory fake."""
    with patch('leadengine.extensions.redis_client', fake_redis):
        from leadengine import create_app
        app = create_app()
        app.config['TESTING'] = True
        yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c


@pytest.fixture
def make_lead(db_session):
    """Inserts a Lead row and returns it."""
    from leadengine.models.lead import Lead

    def _make(**overrides):
        defaults = dict(
            tenant_id='tenant-1',
            name='Jamie Rivera',
            email='jamie@example.com',
            phone='+15555550123',
            address='1600 Amphitheatre Pkwy, Mountain View, CA',
            source='Roofing',
            stage='NEW',
        )
        defaults.update(overrides)
        lead = Lead(**defaults)
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make


@pytest.fixture
def make_automation(db_session):
    """Inserts an Automation row and returns it."""
    from leadengine.models.automation import Automation

    def _make(**overrides):
        defaults = dict(
            tenant_id='tenant-1',
            name='Welcome email',
            trigger='lead.created',
            enabled=True,
            template='Hi {{name}}, thanks for reaching out!',
            config={'channel': 'email'},
        )
        defaults.update(overrides)
        automation = Automation(**defaults)
        db_session.add(automation)
        db_session.commit()
        return automation
    return _make


@pytest.fixture
def building_insights():
    """buildingInsights:findClosest payload trimmed to the fields we read."""
    return {
        'name': 'buildings/ChIJ123',
        'center': {'latitude': 37.4220, 'longitude': -122.0841},
        'imageryDate': {'year': 2024, 'month': 6, 'day': 14},
        'imageryQuality': 'HIGH',
        'regionCode': 'US',
        'solarPotential': {
            'maxArrayPanelsCount': 42,
            'maxArrayAreaMeters2': 82.5,
            'maxSunshineHoursPerYear': 1650.0,
            'carbonOffsetFactorKgPerMwh': 428.9,
            'wholeRoofStats': {'areaMeters2': 140.2, 'sunshineQuantiles': [], 'groundAreaMeters2': 120.0},
            'roofSegmentStats': [
                {'pitchDegrees': 22.5, 'azimuthDegrees': 181.0, 'stats': {'areaMeters2': 70.1}},
                {'pitchDegrees': 20.0, 'azimuthDegrees': 1.0, 'stats': {'areaMeters2': 70.1}},
            ],
            'solarPanelConfigs': [
                {'panelsCount': 4, 'yearlyEnergyDcKwh': 2200.0, 'roofSegmentSummaries': []},
                {'panelsCount': 20, 'yearlyEnergyDcKwh': 10500.0, 'roofSegmentSummaries': []},
                {
                    'panelsCount': 42,
                    'yearlyEnergyDcKwh': 21345.6,
                    'roofSegmentSummaries': [
                        {'pitchDegrees': 22.5, 'azimuthDegrees': 181.0, 'panelsCount': 42,
                         'yearlyEnergyDcKwh': 21345.6, 'segmentIndex': 0},
                    ],
                },
            ],
            'financialAnalyses': [
                {
                    'monthlyBill': {'currencyCode': 'USD', 'units': '150'},
                    'panelConfigIndex': 2,
                    'cashPurchaseSavings': {
                        'outOfPocketCost': {'currencyCode': 'USD', 'units': '18500'},
                        'upfrontCost': {'currencyCode': 'USD', 'units': '26000'},
                        'rebateValue': {'currencyCode': 'USD', 'units': '7500'},
                        'paybackYears': 9.5,
                        'savings': {
                            'savingsYear1': {'currencyCode': 'USD', 'units': '1320'},
                            'savingsYear20': {'currencyCode': 'USD', 'units': '31000'},
                            'savingsLifetime': {'currencyCode': 'USD', 'units': '42000'},
                        },
                    },
                },
            ],
        },
    }


def make_response(status_code=200, json_data=None, text=''):
    """Build a requests.Response-like MagicMock."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(json_data, Exception):
        resp.json.side_effect = json_data
    else:
        resp.json.return_value = json_data
    return resp


@pytest.fixture
def response_factory():
    return make_response
