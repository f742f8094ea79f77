import os
import sys

import pytest

# ensure project root is on sys.path when running from tests/ folder
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from vibrant_pos.app_container import AppContainer
from vibrant_pos.main import create_app
from vibrant_pos.models import CartLine, User, UserRole
from vibrant_pos.repositories import JsonDocumentStore
from vibrant_pos.services import VoidAuthorization


def make_config(data_dir, **overrides):
    config = {
        'DATA_DIR': str(data_dir),
        'CREDIARIO_FEE_RATE': '0.055',
        'INSTALLMENT_CADENCE': 'days',
        'INSTALLMENT_STEP_DAYS': 30,
        'MAX_INSTALLMENTS': 12,
        'ALLOW_OVERSELL': True,
        'MASTER_USER': 'admin',
        'MASTER_PIN': '1234',
        'MASTER_NAME': 'Administrador Mestre',
        'VOID_CODE': '',
        'INSIGHTS_SUMMARIZER': None,
    }
    config.update(overrides)
    return config


@pytest.fixture
def store(tmp_path):
    return JsonDocumentStore(str(tmp_path / 'store.json'))


@pytest.fixture
def container(tmp_path):
    return AppContainer(make_config(tmp_path))


@pytest.fixture
def operator():
    return User(id='u1', name='Ana', role=UserRole.VENDEDOR)


@pytest.fixture
def authorization():
    return VoidAuthorization(operator='Ana', granted_by='codigo', granted_at='2024-01-01T00:00:00+00:00')


def add_product(container, name='Camiseta', code='CAM-01', price=10.0, quantity=5):
    return container.inventory_service.create_product({
        'name': name,
        'code': code,
        'buy_price': 4.0,
        'sell_price': price,
        'quantity': quantity,
    })


def cart_line(product, quantity=1, discount=0.0):
    return CartLine(
        product_id=product['id'],
        name=product['name'],
        unit_price=product['sell_price'],
        quantity=quantity,
        discount=discount,
        code=product['code'],
    )


# ------------------------------------------------------------------------------
# Aplicación Flask
# ------------------------------------------------------------------------------

@pytest.fixture
def app(tmp_path):
    return create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'DATA_DIR': str(tmp_path),
    })


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


def get_csrf(client):
    r = client.get('/api/session')
    assert r.status_code == 200
    return r.get_json()['csrf_token']


def post(client, url, data=None, token=None):
    headers = {'X-CSRF-Token': token} if token else {}
    return client.post(url, json=data or {}, headers=headers)


def login_admin(client):
    token = get_csrf(client)
    r = post(client, '/api/login', {'name': 'admin', 'pin': '1234'}, token)
    assert r.status_code == 200
    assert r.get_json()['user']['name'] == 'Administrador Mestre'
    return token
