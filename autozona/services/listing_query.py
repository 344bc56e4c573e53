"""
车源查询引擎

负责把可选的筛选条件组合成查询谓词，并完成排序、分页、统计，
以及车源的创建、整体更新和软删除。只返回在售(is_active)车源，
发布者自己的车源列表除外。
"""
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload

from ..models import Listing, User, FuelType, Color, Transmission, BodyType
from ..models.base import new_id, utc_now
from ..repository import Repository
from ..utils.errors import InvalidArgumentError, Outcome, optional_text, require_text
from ..utils.logger import get_logger

logger = get_logger(__name__)


class SortField(Enum):
    """分页排序字段，无法识别的取值按创建时间排序"""
    PRICE = 'price'
    YEAR = 'year'
    MILEAGE = 'mileage'
    MAKE = 'make'
    MODEL = 'model'
    UPDATED = 'updated'
    CREATED = 'created'

    @classmethod
    def parse(cls, value) -> 'SortField':
        if isinstance(value, cls):
            return value
        text = str(value or '').lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.CREATED

    @property
    def column(self):
        return {
            SortField.PRICE: Listing.price,
            SortField.YEAR: Listing.year,
            SortField.MILEAGE: Listing.mileage,
            SortField.MAKE: Listing.make,
            SortField.MODEL: Listing.model,
            SortField.UPDATED: Listing.updated_at,
            SortField.CREATED: Listing.created_at,
        }[self]


class SortOrder(Enum):
    """排序方向：未传时默认降序；只有 desc(不区分大小写)为降序，其他任何取值都按升序"""
    ASC = 'asc'
    DESC = 'desc'

    @classmethod
    def parse(cls, value) -> 'SortOrder':
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.DESC
        return cls.DESC if str(value).lower() == 'desc' else cls.ASC


def _parse_int(args: Mapping, key: str) -> Optional[int]:
    value = optional_text(args.get(key))
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"参数 {key} 必须是整数: {value}")


def _parse_decimal(args: Mapping, key: str) -> Optional[Decimal]:
    value = optional_text(args.get(key))
    if value is None:
        return None
    try:
        number = Decimal(value)
    except InvalidOperation:
        raise InvalidArgumentError(f"参数 {key} 必须是数字: {value}")
    if not number.is_finite():
        raise InvalidArgumentError(f"参数 {key} 必须是数字: {value}")
    return number


def _parse_enum(enum_cls, args: Mapping, key: str):
    value = optional_text(args.get(key))
    if value is None:
        return None
    member = enum_cls.parse(value)
    if member is None:
        raise InvalidArgumentError(f"参数 {key} 取值无效: {value}，可选值: {', '.join(enum_cls.values())}")
    return member


@dataclass
class ListingFilters:
    """车源筛选条件，所有字段可选，存在的条件之间为 AND 关系"""
    make: Optional[str] = None
    model: Optional[str] = None
    city: Optional[str] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    price_from: Optional[Decimal] = None
    price_to: Optional[Decimal] = None
    max_mileage: Optional[int] = None
    fuel: Optional[FuelType] = None
    body_type: Optional[BodyType] = None
    transmission: Optional[Transmission] = None
    color: Optional[Color] = None

    @classmethod
    def from_args(cls, args: Mapping) -> 'ListingFilters':
        """从请求参数解析筛选条件，格式错误时抛出 InvalidArgumentError"""
        return cls(
            make=optional_text(args.get('make')),
            model=optional_text(args.get('model')),
            city=optional_text(args.get('city')),
            year_from=_parse_int(args, 'year_from'),
            year_to=_parse_int(args, 'year_to'),
            price_from=_parse_decimal(args, 'price_from'),
            price_to=_parse_decimal(args, 'price_to'),
            max_mileage=_parse_int(args, 'max_mileage'),
            fuel=_parse_enum(FuelType, args, 'fuel'),
            body_type=_parse_enum(BodyType, args, 'body_type'),
            transmission=_parse_enum(Transmission, args, 'transmission'),
            color=_parse_enum(Color, args, 'color'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """当前生效的筛选条件(用于回显)"""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Decimal):
                value = float(value)
            data[f.name] = value
        return data

    def criteria(self) -> list:
        """组合查询谓词，始终只包含在售车源"""
        conds = [Listing.is_active.is_(True)]

        # 文本条件：不区分大小写的包含匹配
        make, model, city = optional_text(self.make), optional_text(self.model), optional_text(self.city)
        if make:
            conds.append(func.lower(Listing.make).contains(make.lower(), autoescape=True))
        if model:
            conds.append(func.lower(Listing.model).contains(model.lower(), autoescape=True))
        if city:
            conds.append(Listing.owner.has(func.lower(User.city).contains(city.lower(), autoescape=True)))

        # 范围条件：闭区间
        if self.year_from is not None:
            conds.append(Listing.year >= self.year_from)
        if self.year_to is not None:
            conds.append(Listing.year <= self.year_to)
        if self.price_from is not None:
            conds.append(Listing.price >= self.price_from)
        if self.price_to is not None:
            conds.append(Listing.price <= self.price_to)
        if self.max_mileage is not None:
            conds.append(Listing.mileage <= self.max_mileage)

        # 分类条件：精确匹配
        for column, value in ((Listing.fuel, self.fuel), (Listing.body_type, self.body_type),
                              (Listing.transmission, self.transmission), (Listing.color, self.color)):
            if value is not None:
                conds.append(column == (value.value if isinstance(value, Enum) else value))

        return conds


def _enum_value(enum_cls, value, field):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    member = enum_cls.parse(value)
    if member is None:
        raise InvalidArgumentError(f"{field} 取值无效: {value}，可选值: {', '.join(enum_cls.values())}")
    return member.value


def _number(value, field, cast):
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = cast(str(value).strip()) if cast is Decimal else cast(value)
    except (TypeError, ValueError, InvalidOperation):
        raise InvalidArgumentError(f"{field} 必须是数字: {value}")
    if isinstance(number, Decimal) and not number.is_finite():
        raise InvalidArgumentError(f"{field} 必须是数字: {value}")
    if number < 0:
        raise InvalidArgumentError(f"{field} 不能为负数")
    return number


def apply_listing_payload(listing: Listing, data: Mapping) -> Listing:
    """
    用请求数据整体覆盖车源字段(未提供的可选字段会被清空)
    :raises InvalidArgumentError: 数字或枚举格式错误
    """
    listing.make = optional_text(data.get('make'))
    listing.model = optional_text(data.get('model'))
    listing.year = _number(data.get('year'), 'year', int)
    listing.price = _number(data.get('price'), 'price', Decimal)
    listing.mileage = _number(data.get('mileage'), 'mileage', int)
    listing.fuel = _enum_value(FuelType, data.get('fuel'), 'fuel')
    listing.color = _enum_value(Color, data.get('color'), 'color')
    listing.transmission = _enum_value(Transmission, data.get('transmission'), 'transmission')
    listing.body_type = _enum_value(BodyType, data.get('body_type'), 'body_type')
    listing.description = optional_text(data.get('description'))
    return listing


class ListingQueryEngine:
    """车源查询引擎"""

    @staticmethod
    def _detail_options():
        return selectinload(Listing.images), joinedload(Listing.owner)

    def __init__(self, listings: Optional[Repository] = None):
        self.listings = listings or Repository(Listing)

    # ---------------- 搜索与分页 ----------------

    def search(self, filters: Optional[ListingFilters] = None) -> List[Listing]:
        """按条件搜索在售车源，最新发布的在前；无结果时返回空列表"""
        filters = filters or ListingFilters()
        return self.listings.get_all(
            *filters.criteria(),
            order_by=(Listing.created_at.desc(), Listing.id),
            options=self._detail_options(),
        )

    def paginate(self, filters: Optional[ListingFilters] = None, page: int = 1, page_size: int = 20,
                 sort_by=SortField.CREATED, sort_order=None) -> Tuple[List[Listing], int]:
        """
        分页查询
        :param page: 页码，从1开始；小于1时偏移量按0处理(调用方负责校正页码)
        :param sort_by: 排序字段，无法识别时按创建时间
        :param sort_order: 排序方向，None 为降序，'desc' 为降序，其他为升序
        :return: (当前页车源, 符合条件的总数)
        """
        filters = filters or ListingFilters()
        criteria = filters.criteria()
        total_count = self.listings.count(*criteria)

        if page_size <= 0:
            return [], total_count
        offset = max((page - 1) * page_size, 0)
        if offset >= total_count:
            return [], total_count

        field, order = SortField.parse(sort_by), SortOrder.parse(sort_order)
        ordering = field.column.desc() if order is SortOrder.DESC else field.column.asc()
        items = self.listings.get_all(
            *criteria,
            order_by=(ordering, Listing.id),
            options=self._detail_options(),
            offset=offset,
            limit=page_size,
        )
        logger.debug(f"分页查询: page={page} size={page_size} sort={field.value}/{order.value} total={total_count}")
        return items, total_count

    # ---------------- 只读查询 ----------------

    def get_by_id(self, listing_id) -> Optional[Listing]:
        """获取在售车源详情，图片按展示顺序排列并附带发布者"""
        if not listing_id:
            return None
        return self.listings.get(Listing.id == listing_id, Listing.is_active.is_(True),
                                 options=self._detail_options())

    def get_all_active(self) -> List[Listing]:
        return self.listings.get_all(Listing.is_active.is_(True),
                                     order_by=(Listing.created_at.desc(), Listing.id),
                                     options=self._detail_options())

    def get_user_listings(self, user_id) -> List[Listing]:
        """用户自己的全部车源(包括已下架的)"""
        require_text(user_id, "用户ID")
        return self.listings.get_all(Listing.owner_id == user_id,
                                     order_by=(Listing.created_at.desc(), Listing.id),
                                     options=(selectinload(Listing.images),))

    def recent_listings(self, count: int = 10) -> List[Listing]:
        return self.listings.get_all(Listing.is_active.is_(True),
                                     order_by=(Listing.created_at.desc(), Listing.id),
                                     options=self._detail_options(), limit=count)

    def featured_listings(self, count: int = 6) -> List[Listing]:
        """首页推荐：最新发布且至少有一张图片的在售车源"""
        return self.listings.get_all(Listing.is_active.is_(True), Listing.images.any(),
                                     order_by=(Listing.created_at.desc(), Listing.id),
                                     options=self._detail_options(), limit=count)

    def available_makes(self) -> List[str]:
        """在售车源的品牌(去重，保留原始大小写，按字母排序)"""
        return self.listings.values(Listing.make, Listing.is_active.is_(True), Listing.make != '',
                                    distinct=True, order_by=(Listing.make,))

    def available_models(self, make) -> List[str]:
        """指定品牌(不区分大小写)下在售车源的车型"""
        make = optional_text(make)
        if make is None:
            return []
        return self.listings.values(Listing.model,
                                    Listing.is_active.is_(True),
                                    Listing.model != '',
                                    func.lower(Listing.make) == make.lower(),
                                    distinct=True, order_by=(Listing.model,))

    def is_owner(self, listing_id, user_id) -> bool:
        return bool(self.check_owner(listing_id, user_id))

    def check_owner(self, listing_id, user_id) -> Outcome:
        """区分 车源不存在 与 不是发布者 两种情况"""
        listing = self.listings.get(Listing.id == listing_id, Listing.is_active.is_(True)) if listing_id else None
        if listing is None:
            return Outcome.not_found(f"车源不存在: {listing_id}")
        if not user_id or listing.owner_id != user_id:
            return Outcome.access_denied(f"用户 {user_id} 不是车源 {listing_id} 的发布者")
        return Outcome.success(listing)

    # ---------------- 统计 ----------------

    def total_active_count(self) -> int:
        return self.listings.count(Listing.is_active.is_(True))

    def user_active_count(self, user_id) -> int:
        return self.listings.count(Listing.owner_id == user_id, Listing.is_active.is_(True))

    def average_price(self) -> Decimal:
        """在售且有价格车源的平均价，没有时返回0"""
        prices = self.listings.values(Listing.price, Listing.is_active.is_(True), Listing.price > 0)
        if not prices:
            return Decimal('0')
        total = sum((Decimal(str(p)) for p in prices), Decimal('0'))
        return (total / len(prices)).quantize(Decimal('0.01'))

    def make_statistics(self) -> Dict[str, int]:
        """按品牌统计，数量多的在前"""
        groups = self.listings.group_counts(Listing.make, Listing.is_active.is_(True), Listing.make != '')
        return dict(sorted(groups, key=lambda kv: (-kv[1], kv[0])))

    def body_type_statistics(self) -> Dict[str, int]:
        """按车身类型统计，数量多的在前"""
        groups = self.listings.group_counts(Listing.body_type, Listing.is_active.is_(True),
                                            Listing.body_type.isnot(None))
        return dict(sorted(groups, key=lambda kv: (-kv[1], kv[0])))

    def year_statistics(self) -> Dict[int, int]:
        """按年份统计，新年份在前"""
        groups = self.listings.group_counts(Listing.year, Listing.is_active.is_(True), Listing.year.isnot(None))
        return dict(sorted(groups, key=lambda kv: -kv[0]))

    def statistics(self) -> Dict[str, Any]:
        return {
            "total_active": self.total_active_count(),
            "average_price": self.average_price(),
            "makes": self.make_statistics(),
            "body_types": self.body_type_statistics(),
            "years": self.year_statistics(),
        }

    # ---------------- 写操作 ----------------

    def _validate(self, listing: Listing):
        if missing_fields := listing.missing_required_fields():
            raise InvalidArgumentError(f"缺少必填字段: {', '.join(missing_fields)}")
        require_text(listing.owner_id, "发布者ID")

    def create(self, listing: Listing) -> Listing:
        """创建车源：分配新ID、写入时间戳、强制在售"""
        self._validate(listing)
        now = utc_now()
        listing.id = new_id()
        listing.created_at = now
        listing.updated_at = now
        listing.is_active = True

        listing = self.listings.insert(listing)
        logger.success(f"车源创建成功: {listing.id} (用户 {listing.owner_id})")
        return listing

    def update(self, listing: Listing) -> Listing:
        """整体覆盖更新车源，更新时间戳"""
        self._validate(listing)
        listing.updated_at = utc_now()
        listing = self.listings.update(listing)
        logger.info(f"车源更新成功: {listing.id}")
        return listing

    def soft_delete(self, listing_id) -> bool:
        """软删除：只把车源标记为下架，不删除记录"""
        listing = self.listings.get(Listing.id == listing_id, Listing.is_active.is_(True)) if listing_id else None
        if listing is None:
            logger.warning(f"软删除失败，车源不存在或已下架: {listing_id}")
            return False

        listing.is_active = False
        listing.updated_at = utc_now()
        self.listings.update(listing)
        logger.info(f"车源已下架: {listing_id}")
        return True
