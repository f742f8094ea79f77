import json

import pytest

from vibrant_pos.errors import PersistenceError
from vibrant_pos.repositories import JsonDocumentStore, ProductRepository, SettingsRepository
from vibrant_pos.repositories.base import as_number, as_text


def test_create_and_reload_from_disk(tmp_path):
    path = str(tmp_path / 'store.json')
    store = JsonDocumentStore(path)
    key = store.create('products', {'name': 'Boné', 'quantity': 3})

    with open(path, 'r', encoding='utf-8') as f:
        on_disk = json.load(f)
    assert on_disk['products'][key]['name'] == 'Boné'

    again = JsonDocumentStore(path)
    assert again.get(f'products/{key}/quantity') == 3
    assert again.get(f'products/{key}/id') == key


def test_transaction_rolls_back_on_error(store):
    store.write('products/p1', {'name': 'Meia', 'quantity': 2})

    with pytest.raises(RuntimeError):
        with store.transaction() as txn:
            txn.adjust('products/p1/quantity', -2)
            txn.write('sales/s1', {'total': 10})
            raise RuntimeError('boom')

    assert store.get('products/p1/quantity') == 2
    assert store.get('sales') is None


def test_adjust_respects_minimum(store):
    store.write('products/p1', {'name': 'Meia', 'quantity': 1})
    assert store.adjust('products/p1/quantity', -3, minimum=0) == 0
    assert store.adjust('products/p1/quantity', 4) == 4


def test_patch_removes_none_fields(store):
    store.write('settings', {'company_name': 'Loja', 'logo_url': 'http://x/logo.png'})
    store.patch('settings', {'logo_url': None, 'pix_qr_url': 'http://x/pix.png'})
    assert store.get('settings') == {'company_name': 'Loja', 'pix_qr_url': 'http://x/pix.png'}


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / 'store.json'
    path.write_text('{not json', encoding='utf-8')
    store = JsonDocumentStore(str(path))
    assert store.get('products') is None


def test_failed_write_raises_and_keeps_state(store):
    store.write('products/p1', {'name': 'Meia', 'quantity': 1})
    with pytest.raises(PersistenceError):
        store.write('products/p2', {'name': 'Ruim', 'tags': {'a', 'b'}})
    assert store.get('products/p2') is None
    assert store.get('products/p1/quantity') == 1


def test_subscribe_receives_snapshots_until_unsubscribed(store):
    received = []
    unsubscribe = store.subscribe('products', received.append)
    store.write('products/p1', {'name': 'Meia', 'quantity': 1})
    store.write('sales/s1', {'total': 1})  # otra colección
    unsubscribe()
    store.write('products/p2', {'name': 'Boné', 'quantity': 1})

    assert received[0] is None
    assert len(received) == 2
    assert received[1] == {'p1': {'name': 'Meia', 'quantity': 1}}


def test_failing_subscriber_does_not_break_writes(store):
    def broken(snapshot):
        if snapshot:
            raise ValueError('subscriber error')

    store.subscribe('products', broken)
    store.write('products/p1', {'name': 'Meia', 'quantity': 1})
    assert store.get('products/p1/name') == 'Meia'


def test_snapshots_generator(store):
    stream = store.snapshots('products', timeout=0.05)
    assert next(stream) is None
    store.write('products/p1', {'name': 'Meia', 'quantity': 1})
    assert next(stream) == {'p1': {'name': 'Meia', 'quantity': 1}}
    assert list(stream) == []


def test_repository_ids_and_lists(store):
    repo = ProductRepository(store)
    pid = repo.create({'name': 'Meia', 'code': ' M1 ', 'quantity': 2})

    assert repo.get_by_id(pid)['id'] == pid
    assert repo.get_by_id('a/b') is None
    assert repo.get_by_id('') is None
    assert repo.find_by_code('M1')['id'] == pid
    assert [p['id'] for p in repo.search('mei')] == [pid]

    removed = repo.delete(pid)
    assert removed['name'] == 'Meia'
    assert repo.delete(pid) is None


def test_as_number_guards_invalid_values():
    assert as_number(None) == 0
    assert as_number('abc') == 0
    assert as_number(float('nan')) == 0
    assert as_number('3') == 3
    assert as_number(2.5) == 2.5


def test_reload_picks_up_external_changes(tmp_path):
    path = str(tmp_path / 'store.json')
    store = JsonDocumentStore(path)
    received = []
    store.subscribe('products', received.append)

    with open(path, 'w', encoding='utf-8') as f:
        json.dump({'products': {'p9': {'name': 'Externo', 'quantity': 1}}}, f)
    store.reload()

    assert store.get('products/p9/name') == 'Externo'
    assert received[-1] == {'p9': {'name': 'Externo', 'quantity': 1}}


def test_repository_subscriptions_deliver_lists_and_defaults(store):
    products, settings = [], []
    ProductRepository(store).subscribe(products.append)
    SettingsRepository(store).subscribe(settings.append)

    store.write('products/p1', {'name': 'Meia'})
    store.patch('settings', {'pix_qr_url': 'https://x/pix.png'})

    assert products == [[], [{'name': 'Meia', 'id': 'p1'}]]
    assert settings[0] == {'company_name': 'Vibrant POS'}
    assert settings[-1] == {'company_name': 'Vibrant POS', 'pix_qr_url': 'https://x/pix.png'}


def test_as_text_trims_and_converts():
    assert as_text(None) == ''
    assert as_text('  M1 ') == 'M1'
    assert as_text(789) == '789'
    assert as_text(0) == '0'
