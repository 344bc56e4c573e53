from ..extensions import db
from .base import new_id, utc_now

# 默认收藏夹的固定标识，配合 (owner_id, default_key) 唯一约束保证每个用户最多一个
DEFAULT_LIST_KEY = 'default'

class FavoriteList(db.Model):
    """
    收藏夹表
    +-------------+--------------+------+-----+---------+------------------------------+
    | Field       | Type         | Null | Key | Default | Comment                      |
    +-------------+--------------+------+-----+---------+------------------------------+
    | id          | String(36)   | NO   | PRI | uuid4   | 收藏夹ID                     |
    | name        | String(100)  | NO   |     | NULL    | 名称                         |
    | description | String(255)  | YES  |     | NULL    | 描述                         |
    | owner_id    | String(36)   | NO   | MUL | NULL    | 所属用户ID                   |
    | default_key | String(20)   | YES  |     | NULL    | 默认收藏夹标识(普通收藏夹为空)|
    | created_at  | DateTime     | NO   |     | now     | 创建时间                     |
    +-------------+--------------+------+-----+---------+------------------------------+
    """
    __tablename__ = 'favorite_lists'
    __table_args__ = (
        db.UniqueConstraint('owner_id', 'default_key', name='uq_favorite_list_owner_default'),
        {'comment': '收藏夹表'}
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id, comment='收藏夹ID')
    name = db.Column(db.String(100), nullable=False, comment='名称')
    description = db.Column(db.String(255), nullable=True, comment='描述')
    owner_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True, comment='所属用户ID')
    default_key = db.Column(db.String(20), nullable=True, comment='默认收藏夹标识')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, comment='创建时间')

    # 删除收藏夹时级联删除收藏项
    items = db.relationship('FavoriteItem', order_by='FavoriteItem.added_at', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<FavoriteList {self.id}: {self.name}>'

    @property
    def is_default(self):
        return self.default_key == DEFAULT_LIST_KEY

    def to_dict(self, include_items=False):
        data = {
            "list_id": self.id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
            "is_default": self.is_default,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "item_count": len(self.items),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

class FavoriteItem(db.Model):
    """
    收藏项表，(favorite_list_id, listing_id) 在同一收藏夹内唯一
    +------------------+--------------+------+-----+---------+----------------+
    | Field            | Type         | Null | Key | Default | Comment        |
    +------------------+--------------+------+-----+---------+----------------+
    | id               | String(36)   | NO   | PRI | uuid4   | 收藏项ID       |
    | favorite_list_id | String(36)   | NO   | MUL | NULL    | 收藏夹ID       |
    | listing_id       | String(36)   | NO   | MUL | NULL    | 车源ID         |
    | added_at         | DateTime     | NO   |     | now     | 收藏时间       |
    +------------------+--------------+------+-----+---------+----------------+
    """
    __tablename__ = 'favorite_items'
    __table_args__ = (
        db.UniqueConstraint('favorite_list_id', 'listing_id', name='uq_favorite_item_list_listing'),
        {'comment': '收藏项表'}
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id, comment='收藏项ID')
    favorite_list_id = db.Column(db.String(36), db.ForeignKey('favorite_lists.id', ondelete='CASCADE'), nullable=False, index=True, comment='收藏夹ID')
    listing_id = db.Column(db.String(36), db.ForeignKey('listings.id', ondelete='CASCADE'), nullable=False, index=True, comment='车源ID')
    added_at = db.Column(db.DateTime, nullable=False, default=utc_now, comment='收藏时间')

    def __repr__(self):
        return f'<FavoriteItem list={self.favorite_list_id} listing={self.listing_id}>'

    def to_dict(self):
        return {
            "item_id": self.id,
            "list_id": self.favorite_list_id,
            "listing_id": self.listing_id,
            "added_at": self.added_at.isoformat() if self.added_at else None,
        }
