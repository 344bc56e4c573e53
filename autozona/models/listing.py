from decimal import Decimal
from enum import Enum
from ..extensions import db
from .base import new_id, utc_now, enum_values

class ListingEnum(Enum):
    """车源属性枚举基类"""

    @classmethod
    def values(cls):
        return enum_values(cls)

    @classmethod
    def parse(cls, value):
        """
        按取值或名称(不区分大小写)解析枚举
        :return: 枚举成员，无法识别时返回None
        """
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        return None

class FuelType(ListingEnum):
    """燃料类型"""
    REGULAR = 'regular'
    MIDGRADE = 'midgrade'
    PREMIUM = 'premium'
    DIESEL = 'diesel'
    BIODIESEL = 'biodiesel'
    E10 = 'e10'
    E15 = 'e15'
    E85 = 'e85'
    ELECTRIC = 'electric'
    HYBRID_GASOLINE = 'hybrid_gasoline'
    HYBRID_DIESEL = 'hybrid_diesel'
    PLUGIN_HYBRID = 'plugin_hybrid'
    NATURAL_GAS = 'natural_gas'
    PROPANE = 'propane'
    HYDROGEN = 'hydrogen'

class Color(ListingEnum):
    """车身颜色"""
    BLACK = 'black'
    WHITE = 'white'
    SILVER = 'silver'
    GRAY = 'gray'
    RED = 'red'
    BLUE = 'blue'
    GREEN = 'green'
    YELLOW = 'yellow'
    ORANGE = 'orange'
    BROWN = 'brown'
    BEIGE = 'beige'
    GOLD = 'gold'
    PURPLE = 'purple'
    OTHER = 'other'

class Transmission(ListingEnum):
    """变速箱类型"""
    MANUAL = 'manual'
    AUTOMATIC = 'automatic'
    SEMI_AUTOMATIC = 'semi_automatic'
    CVT = 'cvt'

class BodyType(ListingEnum):
    """车身类型"""
    SEDAN = 'sedan'
    HATCHBACK = 'hatchback'
    WAGON = 'wagon'
    SUV = 'suv'
    COUPE = 'coupe'
    CONVERTIBLE = 'convertible'
    PICKUP = 'pickup'
    VAN = 'van'
    MINIVAN = 'minivan'

class Listing(db.Model):
    """
    车源表
    +--------------+----------------+------+-----+---------+--------------------------+
    | Field        | Type           | Null | Key | Default | Comment                  |
    +--------------+----------------+------+-----+---------+--------------------------+
    | id           | String(36)     | NO   | PRI | uuid4   | 车源ID                   |
    | make         | String(50)     | NO   | MUL | NULL    | 品牌                     |
    | model        | String(50)     | NO   |     | NULL    | 车型                     |
    | year         | Integer        | NO   | MUL | NULL    | 年份                     |
    | price        | Numeric(12,2)  | NO   | MUL | NULL    | 价格                     |
    | mileage      | Integer        | NO   |     | NULL    | 里程                     |
    | fuel         | Enum           | NO   |     | NULL    | 燃料类型                 |
    | color        | Enum           | YES  |     | NULL    | 颜色                     |
    | transmission | Enum           | YES  |     | NULL    | 变速箱                   |
    | body_type    | Enum           | YES  |     | NULL    | 车身类型                 |
    | description  | Text           | YES  |     | NULL    | 描述                     |
    | is_active    | Boolean        | NO   | MUL | True    | 是否在售(软删除标记)     |
    | owner_id     | String(36)     | NO   | MUL | NULL    | 发布者ID                 |
    | created_at   | DateTime       | NO   |     | now     | 创建时间                 |
    | updated_at   | DateTime       | NO   |     | now     | 更新时间                 |
    +--------------+----------------+------+-----+---------+--------------------------+
    """
    __tablename__ = 'listings'
    __table_args__ = {'comment': '车源表'}

    REQUIRED_FIELDS = ('make', 'model', 'year', 'price', 'mileage', 'fuel')

    id = db.Column(db.String(36), primary_key=True, default=new_id, comment='车源ID')
    make = db.Column(db.String(50), nullable=False, index=True, comment='品牌')
    model = db.Column(db.String(50), nullable=False, comment='车型')
    year = db.Column(db.Integer, nullable=False, index=True, comment='年份')
    price = db.Column(db.Numeric(12, 2), nullable=False, index=True, comment='价格')
    mileage = db.Column(db.Integer, nullable=False, comment='里程')
    fuel = db.Column(db.Enum(*FuelType.values(), name='fuel_type_enum'), nullable=False, comment='燃料类型')
    color = db.Column(db.Enum(*Color.values(), name='color_enum'), nullable=True, comment='颜色')
    transmission = db.Column(db.Enum(*Transmission.values(), name='transmission_enum'), nullable=True, comment='变速箱')
    body_type = db.Column(db.Enum(*BodyType.values(), name='body_type_enum'), nullable=True, comment='车身类型')
    description = db.Column(db.Text, nullable=True, comment='描述')
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True, comment='是否在售')
    owner_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True, comment='发布者ID')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, comment='创建时间')
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, comment='更新时间')

    # 关联关系(仅用于预加载，业务查询一律按外键列进行)
    owner = db.relationship('User')
    images = db.relationship('ListingImage', order_by='ListingImage.display_order',
                             cascade='all, delete-orphan', passive_deletes=True)

    def __repr__(self):
        return f'<Listing {self.id}: {self.year} {self.make} {self.model}>'

    def missing_required_fields(self):
        """返回为空的必填字段列表"""
        missing = []
        for field in self.REQUIRED_FIELDS:
            value = getattr(self, field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)
        return missing

    def to_dict(self, include_images=False, include_owner=False):
        """序列化为字典"""
        data = {
            "listing_id": self.id,
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "price": float(self.price) if isinstance(self.price, Decimal) else self.price,
            "mileage": self.mileage,
            "fuel": self.fuel,
            "color": self.color,
            "transmission": self.transmission,
            "body_type": self.body_type,
            "description": self.description,
            "is_active": self.is_active,
            "owner_id": self.owner_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_images:
            data["images"] = [image.to_dict() for image in self.images]
        if include_owner:
            data["owner"] = self.owner.to_dict() if self.owner else None
        return data
