"""
收藏夹管理

每个用户可以有多个命名收藏夹，同一车源在同一收藏夹内只能收藏一次。
所有查询都限定在当前用户自己的收藏夹内，别人的收藏夹对外表现为不存在。
"""
from typing import List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ..models import FavoriteList, FavoriteItem, Listing
from ..models.base import new_id, utc_now
from ..models.favorite import DEFAULT_LIST_KEY
from ..repository import Repository, atomic
from ..utils.errors import ConflictError, InvalidArgumentError, Outcome, optional_text, require_text
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FavoritesManager:
    """收藏夹管理"""

    def __init__(self, default_name: str = "My Favorites",
                 default_description: str = "My favorite cars",
                 lists: Optional[Repository] = None,
                 items: Optional[Repository] = None,
                 listings: Optional[Repository] = None):
        self.default_name = default_name
        self.default_description = default_description
        self.lists = lists or Repository(FavoriteList)
        self.items = items or Repository(FavoriteItem)
        self.listings = listings or Repository(Listing)

    @classmethod
    def from_config(cls, config: Mapping) -> 'FavoritesManager':
        return cls(
            default_name=config.get('DEFAULT_FAVORITES_LIST_NAME', "My Favorites"),
            default_description=config.get('DEFAULT_FAVORITES_LIST_DESCRIPTION', "My favorite cars"),
        )

    @staticmethod
    def _owned_list_ids(owner):
        """当前用户全部收藏夹ID的子查询"""
        return select(FavoriteList.id).where(FavoriteList.owner_id == owner)

    def _check_list(self, list_id, owner) -> Outcome:
        favorite_list = self.lists.get(FavoriteList.id == list_id) if list_id else None
        if favorite_list is None:
            return Outcome.not_found(f"收藏夹不存在: {list_id}")
        if not owner or favorite_list.owner_id != owner:
            return Outcome.access_denied(f"用户 {owner} 不是收藏夹 {list_id} 的所有者")
        return Outcome.success(favorite_list)

    # ---------------- 收藏夹 ----------------

    def create_list(self, name, description, owner) -> FavoriteList:
        """
        创建收藏夹
        :raises InvalidArgumentError: 名称或用户为空
        """
        name = require_text(name, "收藏夹名称").strip()
        require_text(owner, "用户ID")

        favorite_list = FavoriteList(
            id=new_id(),
            name=name,
            description=optional_text(description),
            owner_id=owner,
            created_at=utc_now(),
        )
        self.lists.insert(favorite_list)
        logger.success(f"用户 {owner} 创建收藏夹: {name}")
        return favorite_list

    def get_list(self, list_id, owner) -> Optional[FavoriteList]:
        """获取收藏夹(含收藏项)，不属于 owner 时返回None"""
        if not list_id or not owner:
            return None
        return self.lists.get(FavoriteList.id == list_id, FavoriteList.owner_id == owner,
                              options=(selectinload(FavoriteList.items),))

    def get_user_lists(self, owner) -> List[FavoriteList]:
        """用户的全部收藏夹，新建的在前"""
        if not owner:
            return []
        return self.lists.get_all(FavoriteList.owner_id == owner,
                                  order_by=(FavoriteList.created_at.desc(), FavoriteList.id),
                                  options=(selectinload(FavoriteList.items),))

    def update_list(self, list_id, name, description, owner) -> FavoriteList:
        """
        修改收藏夹名称和描述
        :raises InvalidArgumentError: 名称为空，或收藏夹不存在/无权访问
        """
        name = require_text(name, "收藏夹名称").strip()

        checked = self._check_list(list_id, owner)
        if not checked:
            logger.warning(f"修改收藏夹失败: {checked.message}")
            raise InvalidArgumentError("收藏夹不存在或无权访问", cause=checked.kind)

        favorite_list = checked.value
        favorite_list.name = name
        favorite_list.description = optional_text(description)
        favorite_list = self.lists.update(favorite_list)
        logger.info(f"收藏夹已更新: {list_id}")
        return favorite_list

    def delete_list(self, list_id, owner) -> bool:
        return self.try_delete_list(list_id, owner).ok

    def try_delete_list(self, list_id, owner) -> Outcome:
        """删除收藏夹及其全部收藏项"""
        with atomic():
            checked = self._check_list(list_id, owner)
            if not checked:
                logger.warning(f"删除收藏夹失败: {checked.message}")
                return checked
            self.lists.delete(checked.value)

        logger.info(f"收藏夹已删除: {list_id}")
        return Outcome.success(list_id)

    def get_or_create_default(self, owner) -> FavoriteList:
        """
        获取用户最早创建的收藏夹，没有时创建默认收藏夹

        默认收藏夹带 default_key，(owner_id, default_key) 唯一约束保证并发时只插入一条，
        插入冲突时重新读取胜出的那一条。
        """
        require_text(owner, "用户ID")

        existing = self.lists.get(FavoriteList.owner_id == owner,
                                  order_by=(FavoriteList.created_at, FavoriteList.id))
        if existing is not None:
            return existing

        favorite_list = FavoriteList(
            id=new_id(),
            name=self.default_name,
            description=self.default_description,
            owner_id=owner,
            default_key=DEFAULT_LIST_KEY,
            created_at=utc_now(),
        )
        try:
            self.lists.insert(favorite_list)
        except ConflictError:
            winner = self.lists.get(FavoriteList.owner_id == owner, FavoriteList.default_key == DEFAULT_LIST_KEY)
            if winner is None:
                raise
            logger.info(f"默认收藏夹已由并发请求创建: {winner.id}")
            return winner

        logger.success(f"为用户 {owner} 创建默认收藏夹")
        return favorite_list

    # ---------------- 收藏项 ----------------

    def add_item(self, list_id, listing_id, acting_user) -> bool:
        return self.try_add_item(list_id, listing_id, acting_user).ok

    def try_add_item(self, list_id, listing_id, acting_user) -> Outcome:
        """
        收藏车源
        :return: 失败时 kind 为 NOT_FOUND(收藏夹或车源不存在) / ACCESS_DENIED / CONFLICT(已收藏)
        :raises InvalidArgumentError: ID为空
        """
        require_text(list_id, "收藏夹ID")
        require_text(listing_id, "车源ID")
        require_text(acting_user, "用户ID")

        checked = self._check_list(list_id, acting_user)
        if not checked:
            logger.warning(f"收藏失败: {checked.message}")
            return checked
        if not self.listings.exists(Listing.id == listing_id, Listing.is_active.is_(True)):
            logger.warning(f"收藏失败，车源不存在或已下架: {listing_id}")
            return Outcome.not_found(f"车源不存在: {listing_id}")
        if self.items.exists(FavoriteItem.favorite_list_id == list_id, FavoriteItem.listing_id == listing_id):
            return Outcome.conflict(f"车源 {listing_id} 已在收藏夹中")

        item = FavoriteItem(id=new_id(), favorite_list_id=list_id, listing_id=listing_id, added_at=utc_now())
        try:
            self.items.insert(item)
        except ConflictError:
            # 并发重复收藏由唯一约束拦截
            return Outcome.conflict(f"车源 {listing_id} 已在收藏夹中")

        logger.info(f"收藏夹 {list_id} 新增车源 {listing_id}")
        return Outcome.success(item)

    def remove_item(self, list_id, listing_id, acting_user) -> bool:
        return self.try_remove_item(list_id, listing_id, acting_user).ok

    def try_remove_item(self, list_id, listing_id, acting_user) -> Outcome:
        require_text(list_id, "收藏夹ID")
        require_text(listing_id, "车源ID")

        with atomic():
            checked = self._check_list(list_id, acting_user)
            if not checked:
                logger.warning(f"取消收藏失败: {checked.message}")
                return checked

            item = self.items.get(FavoriteItem.favorite_list_id == list_id, FavoriteItem.listing_id == listing_id)
            if item is None:
                return Outcome.not_found(f"收藏夹 {list_id} 中没有车源 {listing_id}")
            self.items.delete(item)

        logger.info(f"收藏夹 {list_id} 移除车源 {listing_id}")
        return Outcome.success(listing_id)

    # ---------------- 查询 ----------------

    def is_list_owner(self, list_id, user_id) -> bool:
        if not list_id or not user_id:
            return False
        return self.lists.exists(FavoriteList.id == list_id, FavoriteList.owner_id == user_id)

    def is_in_favorites(self, listing_id, acting_user, list_id=None) -> bool:
        """车源是否在用户的收藏夹中；传 list_id 时只检查该收藏夹"""
        if not listing_id or not acting_user:
            return False
        criteria = [FavoriteItem.listing_id == listing_id,
                    FavoriteItem.favorite_list_id.in_(self._owned_list_ids(acting_user))]
        if list_id is not None:
            criteria.append(FavoriteItem.favorite_list_id == list_id)
        return self.items.exists(*criteria)

    def lists_containing(self, listing_id, acting_user) -> List[FavoriteList]:
        """用户收藏了该车源的收藏夹，按名称排序"""
        if not listing_id or not acting_user:
            return []
        containing = select(FavoriteItem.favorite_list_id).where(FavoriteItem.listing_id == listing_id)
        return self.lists.get_all(FavoriteList.owner_id == acting_user,
                                  FavoriteList.id.in_(containing),
                                  order_by=(FavoriteList.name, FavoriteList.id))

    def count_in_list(self, list_id, acting_user) -> int:
        if not self.is_list_owner(list_id, acting_user):
            return 0
        return self.items.count(FavoriteItem.favorite_list_id == list_id)

    def total_favorites_for_user(self, acting_user) -> int:
        if not acting_user:
            return 0
        return self.items.count(FavoriteItem.favorite_list_id.in_(self._owned_list_ids(acting_user)))

    def get_list_listings(self, list_id, acting_user) -> List[Listing]:
        """收藏夹中的在售车源，最近收藏的在前；不是所有者时返回空列表"""
        if not self.is_list_owner(list_id, acting_user):
            return []

        listing_ids = self.items.values(FavoriteItem.listing_id,
                                        FavoriteItem.favorite_list_id == list_id,
                                        order_by=(FavoriteItem.added_at.desc(), FavoriteItem.id))
        if not listing_ids:
            return []

        listings = self.listings.get_all(Listing.id.in_(listing_ids), Listing.is_active.is_(True),
                                         options=(selectinload(Listing.images),))
        by_id = {listing.id: listing for listing in listings}
        return [by_id[listing_id] for listing_id in listing_ids if listing_id in by_id]
