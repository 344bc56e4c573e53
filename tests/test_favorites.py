import pytest
from datetime import datetime
from autozona.extensions import db
from autozona.models import FavoriteItem, FavoriteList
from autozona.models.favorite import DEFAULT_LIST_KEY
from autozona.services import FavoritesManager, ListingQueryEngine
from autozona.utils.errors import ErrorKind, InvalidArgumentError

@pytest.fixture
def manager(app):
    return FavoritesManager.from_config(app.config)

# ================ 典型场景 ================

def test_road_trip_scenario(manager, make_listing, buyer):
    """新建收藏夹 -> 收藏 -> 重复收藏 -> 查询 -> 取消收藏"""
    listing = make_listing()
    road_trip = manager.create_list('  Road Trip ', ' weekend cars ', buyer)

    assert road_trip.name == 'Road Trip'
    assert road_trip.description == 'weekend cars'

    assert manager.add_item(road_trip.id, listing.id, buyer) is True
    assert manager.count_in_list(road_trip.id, buyer) == 1
    assert manager.add_item(road_trip.id, listing.id, buyer) is False
    assert manager.count_in_list(road_trip.id, buyer) == 1

    assert manager.is_in_favorites(listing.id, buyer) is True
    assert [fav.name for fav in manager.lists_containing(listing.id, buyer)] == ['Road Trip']
    assert [l.id for l in manager.get_list_listings(road_trip.id, buyer)] == [listing.id]

    assert manager.remove_item(road_trip.id, listing.id, buyer) is True
    assert manager.count_in_list(road_trip.id, buyer) == 0
    assert manager.is_in_favorites(listing.id, buyer) is False
    assert manager.remove_item(road_trip.id, listing.id, buyer) is False

# ================ 收藏夹 ================

def test_create_list_requires_name_and_owner(manager, buyer):
    with pytest.raises(InvalidArgumentError):
        manager.create_list('   ', None, buyer)
    with pytest.raises(InvalidArgumentError):
        manager.create_list('Road Trip', None, '')

def test_lists_are_private(manager, buyer, seller):
    """别人的收藏夹查询不到"""
    mine = manager.create_list('Mine', None, buyer)

    assert manager.get_list(mine.id, buyer).id == mine.id
    assert manager.get_list(mine.id, seller) is None
    assert manager.is_list_owner(mine.id, seller) is False
    assert manager.get_user_lists(seller) == []

def test_get_user_lists_newest_first(manager, buyer):
    older = manager.create_list('Older', None, buyer)
    newer = manager.create_list('Newer', None, buyer)
    older.created_at = datetime(2024, 1, 1)
    newer.created_at = datetime(2024, 2, 1)
    db.session.commit()

    assert [fav.id for fav in manager.get_user_lists(buyer)] == [newer.id, older.id]

def test_update_list(manager, buyer, seller):
    fav = manager.create_list('Road Trip', 'old', buyer)

    updated = manager.update_list(fav.id, ' Summer ', None, buyer)
    assert updated.name == 'Summer'
    assert updated.description is None

    with pytest.raises(InvalidArgumentError) as excinfo:
        manager.update_list(fav.id, 'Stolen', None, seller)
    assert excinfo.value.cause is ErrorKind.ACCESS_DENIED

    with pytest.raises(InvalidArgumentError) as excinfo:
        manager.update_list('missing', 'Nothing', None, buyer)
    assert excinfo.value.cause is ErrorKind.NOT_FOUND

    with pytest.raises(InvalidArgumentError):
        manager.update_list(fav.id, ' ', None, buyer)

def test_delete_list_cascades_items(manager, make_listing, buyer, seller):
    listing = make_listing()
    fav = manager.create_list('Road Trip', None, buyer)
    manager.add_item(fav.id, listing.id, buyer)

    assert manager.delete_list(fav.id, seller) is False
    assert manager.try_delete_list(fav.id, seller).kind is ErrorKind.ACCESS_DENIED

    assert manager.delete_list(fav.id, buyer) is True
    assert db.session.query(FavoriteItem).count() == 0
    assert manager.try_delete_list(fav.id, buyer).kind is ErrorKind.NOT_FOUND

# ================ 收藏项 ================

def test_try_add_item_reports_failure_kind(manager, make_listing, buyer, seller):
    listing = make_listing()
    fav = manager.create_list('Road Trip', None, buyer)

    assert manager.try_add_item('missing', listing.id, buyer).kind is ErrorKind.NOT_FOUND
    assert manager.try_add_item(fav.id, listing.id, seller).kind is ErrorKind.ACCESS_DENIED
    assert manager.try_add_item(fav.id, 'missing', buyer).kind is ErrorKind.NOT_FOUND

    assert manager.try_add_item(fav.id, listing.id, buyer).ok is True
    assert manager.try_add_item(fav.id, listing.id, buyer).kind is ErrorKind.CONFLICT

def test_inactive_listing_cannot_be_added(manager, make_listing, buyer):
    listing = make_listing()
    ListingQueryEngine().soft_delete(listing.id)
    fav = manager.create_list('Road Trip', None, buyer)

    assert manager.add_item(fav.id, listing.id, buyer) is False

@pytest.mark.parametrize('list_id, listing_id', [('', 'x'), ('x', None), ('  ', '  ')])
def test_add_item_blank_ids_raise(manager, buyer, list_id, listing_id):
    with pytest.raises(InvalidArgumentError):
        manager.add_item(list_id, listing_id, buyer)

def test_same_listing_in_several_lists(manager, make_listing, buyer):
    listing = make_listing()
    zeta = manager.create_list('Zeta', None, buyer)
    alpha = manager.create_list('Alpha', None, buyer)
    manager.add_item(zeta.id, listing.id, buyer)
    manager.add_item(alpha.id, listing.id, buyer)

    assert [fav.name for fav in manager.lists_containing(listing.id, buyer)] == ['Alpha', 'Zeta']
    assert manager.total_favorites_for_user(buyer) == 2

def test_queries_ignore_other_users_lists(manager, make_listing, buyer, seller):
    listing = make_listing()
    fav = manager.create_list('Road Trip', None, buyer)
    manager.add_item(fav.id, listing.id, buyer)

    assert manager.is_in_favorites(listing.id, seller) is False
    assert manager.lists_containing(listing.id, seller) == []
    assert manager.count_in_list(fav.id, seller) == 0
    assert manager.total_favorites_for_user(seller) == 0
    assert manager.get_list_listings(fav.id, seller) == []

def test_get_list_listings_recent_first_and_active_only(manager, make_listing, buyer):
    first, second, hidden = make_listing(), make_listing(), make_listing()
    fav = manager.create_list('Road Trip', None, buyer)
    for listing in (first, second, hidden):
        manager.add_item(fav.id, listing.id, buyer)

    items = {item.listing_id: item for item in db.session.query(FavoriteItem).all()}
    items[first.id].added_at = datetime(2024, 3, 1)
    items[second.id].added_at = datetime(2024, 1, 1)
    db.session.commit()
    ListingQueryEngine().soft_delete(hidden.id)

    assert [l.id for l in manager.get_list_listings(fav.id, buyer)] == [first.id, second.id]

# ================ 默认收藏夹 ================

def test_get_or_create_default_is_idempotent(manager, buyer):
    first = manager.get_or_create_default(buyer)
    second = manager.get_or_create_default(buyer)

    assert first.id == second.id
    assert first.name == 'My Favorites'
    assert first.description == 'My favorite cars'
    assert first.default_key == DEFAULT_LIST_KEY
    assert len(manager.get_user_lists(buyer)) == 1

def test_get_or_create_default_returns_oldest_existing_list(manager, buyer):
    older = manager.create_list('Older', None, buyer)
    newer = manager.create_list('Newer', None, buyer)
    older.created_at = datetime(2024, 1, 1)
    newer.created_at = datetime(2024, 2, 1)
    db.session.commit()

    assert manager.get_or_create_default(buyer).id == older.id
    assert len(manager.get_user_lists(buyer)) == 2

def test_get_or_create_default_rereads_concurrent_winner(manager, buyer, monkeypatch):
    """插入冲突时返回已经存在的默认收藏夹"""
    winner = FavoriteList(name='My Favorites', owner_id=buyer, default_key=DEFAULT_LIST_KEY)
    db.session.add(winner)
    db.session.commit()
    winner_id = winner.id

    # 模拟并发：第一次查询时还看不到对方插入的记录
    real_get = manager.lists.get
    calls = []

    def racing_get(*criteria, **kwargs):
        calls.append(criteria)
        if len(calls) == 1:
            return None
        return real_get(*criteria, **kwargs)

    monkeypatch.setattr(manager.lists, 'get', racing_get)

    assert manager.get_or_create_default(buyer).id == winner_id
    assert db.session.query(FavoriteList).filter_by(owner_id=buyer).count() == 1

def test_custom_default_list_name(app, buyer):
    app.config['DEFAULT_FAVORITES_LIST_NAME'] = 'Garage'
    fav = FavoritesManager.from_config(app.config).get_or_create_default(buyer)
    assert fav.name == 'Garage'

def test_is_in_favorites_for_one_list(manager, make_listing, buyer):
    """传入收藏夹ID时只检查该收藏夹"""
    listing = make_listing()
    road_trip = manager.create_list('Road Trip', None, buyer)
    city = manager.create_list('City', None, buyer)
    manager.add_item(road_trip.id, listing.id, buyer)

    assert manager.is_in_favorites(listing.id, buyer, list_id=road_trip.id) is True
    assert manager.is_in_favorites(listing.id, buyer, list_id=city.id) is False
    assert manager.is_in_favorites(listing.id, buyer) is True
