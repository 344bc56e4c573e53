import pytest
from autozona.extensions import db
from autozona.models import ListingImage
from autozona.services import ImageOrderingManager, ReorderMode
from sqlalchemy.exc import OperationalError
from autozona.utils.errors import AccessDeniedError, ErrorKind, InvalidArgumentError, StoreFailureError

@pytest.fixture
def manager(app):
    return ImageOrderingManager()

@pytest.fixture
def listing(make_listing):
    return make_listing()

def _add(manager, listing_id, owner, count):
    return [manager.add(listing_id, f'https://img.example.com/{n}.jpg', f'photo {n}', owner).id
            for n in range(count)]

def _state(manager, listing_id):
    """(图片ID, 顺序, 是否封面) 按顺序排列"""
    return [(image.id, image.display_order, image.is_primary)
            for image in manager.get_listing_images(listing_id)]

# ================ 添加 ================

def test_first_image_becomes_primary(manager, listing, seller):
    first, second = _add(manager, listing.id, seller, 2)

    assert _state(manager, listing.id) == [(first, 0, True), (second, 1, False)]
    assert manager.image_count(listing.id) == 2

def test_add_trims_url_and_blank_description(manager, listing, seller):
    image = manager.add(listing.id, '  https://img.example.com/x.jpg ', '   ', seller)

    assert image.image_url == 'https://img.example.com/x.jpg'
    assert image.description is None

def test_add_by_non_owner_is_denied(manager, listing, buyer):
    with pytest.raises(AccessDeniedError) as excinfo:
        manager.add(listing.id, 'https://img.example.com/1.jpg', None, buyer)
    assert excinfo.value.cause is ErrorKind.ACCESS_DENIED
    assert manager.image_count(listing.id) == 0

def test_add_to_missing_listing_keeps_not_found_cause(manager, seller):
    with pytest.raises(AccessDeniedError) as excinfo:
        manager.add('missing', 'https://img.example.com/1.jpg', None, seller)
    assert excinfo.value.cause is ErrorKind.NOT_FOUND

def test_add_to_inactive_listing_is_denied(manager, listing, seller):
    from autozona.services import ListingQueryEngine
    ListingQueryEngine().soft_delete(listing.id)

    with pytest.raises(AccessDeniedError):
        manager.add(listing.id, 'https://img.example.com/1.jpg', None, seller)

def test_add_requires_url(manager, listing, seller):
    with pytest.raises(InvalidArgumentError):
        manager.add(listing.id, ' ', None, seller)

def test_add_batch_continues_order_without_new_primary(manager, listing, seller):
    """车源已有图片时，批量添加的图片都不是封面"""
    existing = _add(manager, listing.id, seller, 1)[0]

    batch = manager.add_batch(listing.id, [
        {'image_url': 'https://img.example.com/b1.jpg'},
        {'image_url': 'https://img.example.com/b2.jpg', 'description': 'rear'},
    ], seller)

    assert [image.display_order for image in batch] == [1, 2]
    assert not any(image.is_primary for image in batch)
    assert [primary for _, _, primary in _state(manager, listing.id)] == [True, False, False]
    assert manager.get_primary(listing.id).id == existing

def test_add_batch_on_empty_listing_marks_only_first_primary(manager, listing, seller):
    batch = manager.add_batch(listing.id, [{'image_url': f'https://img.example.com/{n}.jpg'} for n in range(3)],
                              seller)

    assert [image.is_primary for image in batch] == [True, False, False]
    assert manager.add_batch(listing.id, [], seller) == []

# ================ 删除与封面 ================

def test_delete_primary_promotes_lowest_order(manager, listing, seller):
    first, second, third = _add(manager, listing.id, seller, 3)

    assert manager.delete(first, seller) is True

    assert _state(manager, listing.id) == [(second, 1, True), (third, 2, False)]

def test_delete_non_primary_keeps_primary(manager, listing, seller):
    first, second = _add(manager, listing.id, seller, 2)

    assert manager.delete(second, seller) is True
    assert _state(manager, listing.id) == [(first, 0, True)]

def test_delete_last_image_leaves_no_primary(manager, listing, seller):
    only = _add(manager, listing.id, seller, 1)[0]

    assert manager.delete(only, seller) is True
    assert manager.get_primary(listing.id) is None

def test_delete_failures(manager, listing, seller, buyer):
    image = _add(manager, listing.id, seller, 1)[0]

    assert manager.delete(image, buyer) is False
    assert manager.try_delete(image, buyer).kind is ErrorKind.ACCESS_DENIED
    assert manager.try_delete('missing', seller).kind is ErrorKind.NOT_FOUND
    assert manager.image_count(listing.id) == 1

def test_set_primary_keeps_exactly_one(manager, listing, seller):
    first, second, third = _add(manager, listing.id, seller, 3)

    assert manager.set_primary(third, seller) is True

    primaries = [image_id for image_id, _, primary in _state(manager, listing.id) if primary]
    assert primaries == [third]
    assert manager.get_primary(listing.id).id == third

def test_set_primary_by_non_owner_changes_nothing(manager, listing, seller, buyer):
    first, second = _add(manager, listing.id, seller, 2)

    assert manager.set_primary(second, buyer) is False
    assert manager.get_primary(listing.id).id == first

def test_get_primary_falls_back_to_lowest_order(manager, listing, seller):
    first, second = _add(manager, listing.id, seller, 2)
    db.session.get(ListingImage, first).is_primary = False
    db.session.commit()

    assert manager.get_primary(listing.id).id == first
    assert manager.get_primary(None) is None

# ================ 排序 ================

def test_reorder_assigns_index_as_order(manager, listing, seller):
    id1, id2, id3 = _add(manager, listing.id, seller, 3)

    assert manager.reorder(listing.id, [id3, id1, id2], seller) is True

    assert [(image_id, order) for image_id, order, _ in _state(manager, listing.id)] == \
        [(id3, 0), (id1, 1), (id2, 2)]

def test_reorder_partial_keeps_omitted_orders(manager, listing, seller):
    id1, id2, id3 = _add(manager, listing.id, seller, 3)

    assert manager.reorder(listing.id, [id3], seller) is True

    orders = {image_id: order for image_id, order, _ in _state(manager, listing.id)}
    assert orders == {id3: 0, id1: 0, id2: 1}

def test_reorder_rejects_foreign_image(manager, make_listing, seller):
    listing, other = make_listing(), make_listing()
    own = _add(manager, listing.id, seller, 1)
    foreign = _add(manager, other.id, seller, 1)

    outcome = manager.try_reorder(listing.id, own + foreign, seller)

    assert outcome.ok is False
    assert outcome.kind is ErrorKind.INVALID_ARGUMENT
    assert manager.reorder(listing.id, ['missing'], seller) is False

def test_reorder_by_non_owner_is_rejected(manager, listing, seller, buyer):
    id1, id2 = _add(manager, listing.id, seller, 2)

    assert manager.try_reorder(listing.id, [id2, id1], buyer).kind is ErrorKind.ACCESS_DENIED
    assert [image_id for image_id, _, _ in _state(manager, listing.id)] == [id1, id2]

def test_strict_reorder_requires_full_permutation(app, listing, seller):
    manager = ImageOrderingManager(reorder_mode='strict')
    id1, id2, id3 = _add(manager, listing.id, seller, 3)

    assert manager.reorder(listing.id, [id2, id1], seller) is False
    assert manager.reorder(listing.id, [id2, id1, id1], seller) is False
    assert manager.reorder(listing.id, [id2, id3, id1], seller) is True

def test_reorder_mode_from_config(app):
    app.config['IMAGE_REORDER_MODE'] = 'STRICT'
    assert ImageOrderingManager.from_config(app.config).reorder_mode is ReorderMode.STRICT
    assert ReorderMode.parse('sideways') is ReorderMode.PARTIAL

# ================ 其他 ================

def test_update_description(manager, listing, seller, buyer):
    image_id = _add(manager, listing.id, seller, 1)[0]

    updated = manager.update_description(image_id, '  front view ', seller)
    assert updated.description == 'front view'

    with pytest.raises(AccessDeniedError):
        manager.update_description(image_id, 'hacked', buyer)
    assert manager.get_image(image_id).description == 'front view'

def test_is_image_owner(manager, listing, seller, buyer):
    image_id = _add(manager, listing.id, seller, 1)[0]

    assert manager.is_image_owner(image_id, seller) is True
    assert manager.is_image_owner(image_id, buyer) is False
    assert manager.is_image_owner('missing', seller) is False

@pytest.mark.parametrize('url, expected', [
    ('https://img.example.com/car.jpg', True),
    ('http://img.example.com/car.jpg', True),
    ('ftp://img.example.com/car.jpg', False),
    ('/uploads/car.jpg', False),
    ('https://', False),
    ('', False),
    (None, False),
])
def test_validate_image_url(url, expected):
    assert ImageOrderingManager.validate_image_url(url) is expected

def test_reorder_rejects_non_string_ids(manager, listing, seller):
    id1, id2 = _add(manager, listing.id, seller, 2)

    outcome = manager.try_reorder(listing.id, [{'x': 1}, id1], seller)

    assert outcome.kind is ErrorKind.INVALID_ARGUMENT
    assert [image_id for image_id, _, _ in _state(manager, listing.id)] == [id1, id2]

# ================ 事务回滚 ================

def test_store_failure_rolls_back_set_primary(manager, listing, seller, monkeypatch):
    """第二次写入失败时整体回滚，封面标记保持不变"""
    first, second = _add(manager, listing.id, seller, 2)
    real_flush = db.session.flush
    calls = []

    def failing_flush(*args, **kwargs):
        calls.append(1)
        if len(calls) == 2:
            raise OperationalError("UPDATE listing_images", {}, Exception("disk I/O error"))
        return real_flush(*args, **kwargs)

    monkeypatch.setattr(db.session, 'flush', failing_flush)
    with pytest.raises(StoreFailureError):
        manager.set_primary(second, seller)
    monkeypatch.undo()

    assert _state(manager, listing.id) == [(first, 0, True), (second, 1, False)]
