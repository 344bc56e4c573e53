import pytest
from decimal import Decimal
from flask_jwt_extended import create_access_token
from autozona import create_app
from autozona.extensions import db
from autozona.models import User, Listing
from autozona.services import ListingQueryEngine
from config import TestingConfig

@pytest.fixture
def app():
    """创建测试应用实例"""
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """创建测试客户端"""
    return app.test_client()

def _create_user(username, city):
    user = User(
        username=username,
        email=f'{username}@example.com',
        first_name=username.capitalize(),
        last_name='Tester',
        city=city,
        password='password123'
    )
    db.session.add(user)
    db.session.commit()
    return user.id

@pytest.fixture
def seller(app):
    """发布车源的用户"""
    return _create_user('seller', 'Skopje')

@pytest.fixture
def buyer(app):
    """另一个普通用户"""
    return _create_user('buyer', 'Bitola')

@pytest.fixture
def seller_headers(app, seller):
    """发布者的认证头"""
    return {'Authorization': f'Bearer {create_access_token(identity=seller)}'}

@pytest.fixture
def buyer_headers(app, buyer):
    """买家的认证头"""
    return {'Authorization': f'Bearer {create_access_token(identity=buyer)}'}

@pytest.fixture
def make_listing(app, seller):
    """创建在售车源，默认属于 seller"""
    engine = ListingQueryEngine()

    def _make(owner=None, **fields):
        data = dict(make='Toyota', model='Corolla', year=2016, price=Decimal('12000.00'),
                    mileage=80000, fuel='regular', body_type='sedan',
                    transmission='manual', color='white')
        data.update(fields)
        return engine.create(Listing(owner_id=owner or seller, **data))

    return _make
