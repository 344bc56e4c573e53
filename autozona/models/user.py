from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash, check_password_hash
from ..extensions import db
from ..utils.logger import get_logger
from .base import new_id, utc_now

class User(db.Model):
    """
    用户表
    +---------------+--------------+------+-----+---------+----------------------+
    | Field         | Type         | Null | Key | Default | Comment              |
    +---------------+--------------+------+-----+---------+----------------------+
    | id            | String(36)   | NO   | PRI | uuid4   | 用户ID               |
    | username      | String(50)   | NO   | UNI | NULL    | 用户名               |
    | email         | String(120)  | YES  | UNI | NULL    | 邮箱                 |
    | first_name    | String(50)   | NO   |     | NULL    | 名                   |
    | last_name     | String(50)   | NO   |     | NULL    | 姓                   |
    | city          | String(100)  | NO   | MUL | NULL    | 所在城市(按城市筛选) |
    | password_hash | String(255)  | NO   |     | NULL    | 加密密码             |
    | is_active     | Boolean      | NO   |     | True    | 账号是否可用         |
    | created_at    | DateTime     | NO   |     | now     | 注册时间             |
    +---------------+--------------+------+-----+---------+----------------------+
    """
    __tablename__ = 'users'
    __table_args__ = {'comment': '用户表'}

    id = db.Column(db.String(36), primary_key=True, default=new_id, comment='用户ID')
    username = db.Column(db.String(50), nullable=False, unique=True, comment='用户名')
    email = db.Column(db.String(120), nullable=True, unique=True, comment='邮箱')
    first_name = db.Column(db.String(50), nullable=False, comment='名')
    last_name = db.Column(db.String(50), nullable=False, comment='姓')
    city = db.Column(db.String(100), nullable=False, index=True, comment='所在城市')
    password_hash = db.Column(db.String(255), nullable=False, comment='加密密码')
    is_active = db.Column(db.Boolean, nullable=False, default=True, comment='账号是否可用')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, comment='注册时间')

    def __repr__(self):
        return f'<User {self.id}: {self.username}>'

    # 密码加密处理
    @property
    def password(self):
        raise AttributeError('password is not a readable attribute')

    @password.setter
    def password(self, password):
        self.password_hash = generate_password_hash(password)

    def verify_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def full_name(self):
        return f'{self.first_name} {self.last_name}'.strip()

    def to_dict(self):
        """公开的用户资料(不含敏感字段)"""
        return {
            "user_id": self.id,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "city": self.city,
        }

    @staticmethod
    def create_user(data):
        """
        创建用户信息（封装业务逻辑）
        :param data: 包含用户信息的字典
        :return: (user_object, error_message)
        """
        logger = get_logger(__name__)

        required_fields = ['username', 'password', 'first_name', 'last_name', 'city']
        if missing_fields := [f for f in required_fields if not str(data.get(f) or '').strip()]:
            return None, f"缺少必填字段: {', '.join(missing_fields)}"

        try:
            user = User(
                username=data['username'].strip(),
                email=(data.get('email') or '').strip() or None,
                first_name=data['first_name'].strip(),
                last_name=data['last_name'].strip(),
                city=data['city'].strip(),
                password=data['password'],
            )
            db.session.add(user)
            db.session.commit()

            return user, None
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"创建用户失败: {str(e)}")
            return None, "创建用户失败"
