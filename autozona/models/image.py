from ..extensions import db
from .base import new_id

class ListingImage(db.Model):
    """
    车源图片表
    +---------------+--------------+------+-----+---------+------------------------+
    | Field         | Type         | Null | Key | Default | Comment                |
    +---------------+--------------+------+-----+---------+------------------------+
    | id            | String(36)   | NO   | PRI | uuid4   | 图片ID                 |
    | listing_id    | String(36)   | YES  | MUL | NULL    | 所属车源ID             |
    | image_url     | String(500)  | NO   |     | NULL    | 图片地址               |
    | description   | String(255)  | YES  |     | NULL    | 图片说明               |
    | is_primary    | Boolean      | NO   |     | False   | 是否封面图             |
    | display_order | Integer      | NO   |     | 0       | 展示顺序(从0开始)      |
    +---------------+--------------+------+-----+---------+------------------------+
    """
    __tablename__ = 'listing_images'
    __table_args__ = {'comment': '车源图片表'}

    id = db.Column(db.String(36), primary_key=True, default=new_id, comment='图片ID')
    listing_id = db.Column(db.String(36), db.ForeignKey('listings.id', ondelete='CASCADE'), nullable=True, index=True, comment='所属车源ID')
    image_url = db.Column(db.String(500), nullable=False, comment='图片地址')
    description = db.Column(db.String(255), nullable=True, comment='图片说明')
    is_primary = db.Column(db.Boolean, nullable=False, default=False, comment='是否封面图')
    display_order = db.Column(db.Integer, nullable=False, default=0, comment='展示顺序')

    def __repr__(self):
        return f'<ListingImage {self.id}: listing={self.listing_id} order={self.display_order}>'

    def to_dict(self):
        return {
            "image_id": self.id,
            "listing_id": self.listing_id,
            "image_url": self.image_url,
            "description": self.description,
            "is_primary": self.is_primary,
            "display_order": self.display_order,
        }
