"""
车源图片排序管理

维护每个车源图片的展示顺序(display_order，从0开始)和封面图：
车源有图片时恰好一张是封面，删除封面后顺序最小的图片自动成为封面。
所有多步修改都在同一个事务中完成，并锁定所属车源行。
"""
from enum import Enum
from typing import Iterable, List, Mapping, Optional
from urllib.parse import urlparse

from ..models import Listing, ListingImage
from ..models.base import new_id
from ..repository import Repository, atomic
from ..utils.errors import AccessDeniedError, ErrorKind, Outcome, optional_text, require_text
from ..utils.logger import get_logger

logger = get_logger(__name__)


class ReorderMode(Enum):
    """图片重排校验模式"""
    PARTIAL = 'partial'  # 只传部分图片时，未出现的图片保持原顺序
    STRICT = 'strict'    # 必须传入车源全部图片的一个排列

    @classmethod
    def parse(cls, value) -> 'ReorderMode':
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().lower()
        for member in cls:
            if member.value == text:
                return member
        logger.warning(f"未知的图片排序模式: {value}，使用 partial")
        return cls.PARTIAL


class ImageOrderingManager:
    """车源图片管理"""

    def __init__(self, reorder_mode=ReorderMode.PARTIAL,
                 images: Optional[Repository] = None,
                 listings: Optional[Repository] = None):
        self.reorder_mode = ReorderMode.parse(reorder_mode)
        self.images = images or Repository(ListingImage)
        self.listings = listings or Repository(Listing)

    @classmethod
    def from_config(cls, config: Mapping) -> 'ImageOrderingManager':
        return cls(reorder_mode=config.get('IMAGE_REORDER_MODE', ReorderMode.PARTIAL.value))

    # ---------------- 权限检查 ----------------

    def _owned_listing(self, listing_id, acting_user, lock=False) -> Outcome:
        """acting_user 是否为在售车源的发布者；lock=True 时锁定车源行直到事务结束"""
        listing = None
        if listing_id:
            listing = self.listings.get(Listing.id == listing_id, Listing.is_active.is_(True), for_update=lock)
        if listing is None:
            return Outcome.not_found(f"车源不存在: {listing_id}")
        if not acting_user or listing.owner_id != acting_user:
            return Outcome.access_denied(f"用户 {acting_user} 不是车源 {listing_id} 的发布者")
        return Outcome.success(listing)

    def _owned_image(self, image_id, acting_user, lock=False) -> Outcome:
        image = self.images.get(ListingImage.id == image_id) if image_id else None
        if image is None:
            return Outcome.not_found(f"图片不存在: {image_id}")
        owned = self._owned_listing(image.listing_id, acting_user, lock=lock)
        if not owned:
            return owned
        return Outcome.success(image)

    def is_image_owner(self, image_id, user_id) -> bool:
        return bool(self._owned_image(image_id, user_id))

    # ---------------- 添加 ----------------

    def add(self, listing_id, image_url, description, acting_user) -> ListingImage:
        """
        追加一张图片到车源末尾，车源的第一张图片自动成为封面
        :raises AccessDeniedError: 车源不存在/已下架或不属于 acting_user (cause 记录真实原因)
        """
        return self.add_batch(listing_id, [{"image_url": image_url, "description": description}], acting_user)[0]

    def add_batch(self, listing_id, images: Iterable[Mapping], acting_user) -> List[ListingImage]:
        """
        批量追加图片，只做一次权限检查；
        只有车源原本没有图片时，本批第一张才会成为封面
        :param images: [{"image_url": ..., "description": ...}, ...]
        """
        require_text(listing_id, "车源ID")
        payloads = list(images or [])
        for payload in payloads:
            require_text(payload.get('image_url'), "图片地址")
        if not payloads:
            return []

        with atomic():
            owned = self._owned_listing(listing_id, acting_user, lock=True)
            if not owned:
                logger.warning(f"添加图片被拒绝: {owned.message}")
                raise AccessDeniedError(f"无权为车源 {listing_id} 添加图片", cause=owned.kind)

            start = self.image_count(listing_id)
            created = [
                ListingImage(
                    id=new_id(),
                    listing_id=listing_id,
                    image_url=payload['image_url'].strip(),
                    description=optional_text(payload.get('description')),
                    is_primary=(start == 0 and index == 0),
                    display_order=start + index,
                )
                for index, payload in enumerate(payloads)
            ]
            self.images.insert_all(created)

        logger.success(f"车源 {listing_id} 新增 {len(created)} 张图片")
        return created

    # ---------------- 删除 ----------------

    def delete(self, image_id, acting_user) -> bool:
        return self.try_delete(image_id, acting_user).ok

    def try_delete(self, image_id, acting_user) -> Outcome:
        """删除图片；删除的是封面时，把顺序最小的剩余图片设为封面"""
        with atomic():
            owned = self._owned_image(image_id, acting_user, lock=True)
            if not owned:
                logger.warning(f"删除图片失败: {owned.message}")
                return owned

            image = owned.value
            listing_id, was_primary = image.listing_id, image.is_primary
            self.images.delete(image)

            if was_primary:
                successor = self.images.get(ListingImage.listing_id == listing_id,
                                            order_by=(ListingImage.display_order, ListingImage.id))
                if successor is not None:
                    successor.is_primary = True
                    self.images.update(successor)
                    logger.info(f"车源 {listing_id} 的封面改为图片 {successor.id}")

        logger.info(f"图片已删除: {image_id}")
        return Outcome.success(image_id)

    # ---------------- 封面 ----------------

    def set_primary(self, image_id, acting_user) -> bool:
        return self.try_set_primary(image_id, acting_user).ok

    def try_set_primary(self, image_id, acting_user) -> Outcome:
        """先清除车源其他封面标记，再设置目标图片"""
        with atomic():
            owned = self._owned_image(image_id, acting_user, lock=True)
            if not owned:
                logger.warning(f"设置封面失败: {owned.message}")
                return owned

            image = owned.value
            others = self.images.get_all(ListingImage.listing_id == image.listing_id,
                                         ListingImage.is_primary.is_(True),
                                         ListingImage.id != image.id)
            for other in others:
                other.is_primary = False
                self.images.update(other)
            image.is_primary = True
            self.images.update(image)

        logger.info(f"车源 {image.listing_id} 的封面设置为 {image_id}")
        return Outcome.success(image)

    def get_primary(self, listing_id) -> Optional[ListingImage]:
        """封面图；没有封面标记时取顺序最小的图片"""
        if not listing_id:
            return None
        return self.images.get(ListingImage.listing_id == listing_id,
                               order_by=(ListingImage.is_primary.desc(),
                                         ListingImage.display_order,
                                         ListingImage.id))

    # ---------------- 排序 ----------------

    def reorder(self, listing_id, ordered_ids, acting_user) -> bool:
        return self.try_reorder(listing_id, ordered_ids, acting_user).ok

    def try_reorder(self, listing_id, ordered_ids, acting_user) -> Outcome:
        """
        按 ordered_ids 的顺序设置 display_order = 下标
        partial 模式下未出现的图片保持原顺序；strict 模式要求正好是全部图片的一个排列
        """
        ordered_ids = list(ordered_ids or [])
        with atomic():
            owned = self._owned_listing(listing_id, acting_user, lock=True)
            if not owned:
                logger.warning(f"图片排序失败: {owned.message}")
                return owned

            images = {image.id: image for image in
                      self.images.get_all(ListingImage.listing_id == listing_id)}

            if not all(isinstance(image_id, str) for image_id in ordered_ids):
                return Outcome.failure(ErrorKind.INVALID_ARGUMENT, "图片ID必须是字符串")
            if len(set(ordered_ids)) != len(ordered_ids):
                return Outcome.failure(ErrorKind.INVALID_ARGUMENT, "图片ID重复")
            unknown = [image_id for image_id in ordered_ids if image_id not in images]
            if unknown:
                logger.warning(f"图片排序失败，图片不属于车源 {listing_id}: {unknown}")
                return Outcome.failure(ErrorKind.INVALID_ARGUMENT,
                                       f"图片不属于该车源: {', '.join(map(str, unknown))}")
            if self.reorder_mode is ReorderMode.STRICT and set(ordered_ids) != set(images):
                return Outcome.failure(ErrorKind.INVALID_ARGUMENT, "必须提供该车源全部图片的顺序")

            for index, image_id in enumerate(ordered_ids):
                image = images[image_id]
                image.display_order = index
                self.images.update(image)

        logger.info(f"车源 {listing_id} 图片顺序已更新: {ordered_ids}")
        return Outcome.success(ordered_ids)

    # ---------------- 其他 ----------------

    def get_image(self, image_id) -> Optional[ListingImage]:
        if not image_id:
            return None
        return self.images.get(ListingImage.id == image_id)

    def get_listing_images(self, listing_id) -> List[ListingImage]:
        if not listing_id:
            return []
        return self.images.get_all(ListingImage.listing_id == listing_id,
                                   order_by=(ListingImage.display_order, ListingImage.id))

    def image_count(self, listing_id) -> int:
        return self.images.count(ListingImage.listing_id == listing_id)

    def update_description(self, image_id, description, acting_user) -> ListingImage:
        """
        修改图片说明
        :raises AccessDeniedError: 图片不存在或不属于 acting_user
        """
        owned = self._owned_image(image_id, acting_user)
        if not owned:
            logger.warning(f"修改图片说明被拒绝: {owned.message}")
            raise AccessDeniedError(f"无权修改图片 {image_id}", cause=owned.kind)

        image = owned.value
        image.description = optional_text(description)
        return self.images.update(image)

    @staticmethod
    def validate_image_url(url) -> bool:
        """只接受 http/https 的绝对地址"""
        if not url:
            return False
        try:
            parsed = urlparse(str(url).strip())
            return parsed.scheme in ('http', 'https') and bool(parsed.netloc)
        except Exception as e:
            logger.warning(f"图片地址校验异常: {url} ({str(e)})")
            return False
