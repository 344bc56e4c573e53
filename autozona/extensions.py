from flask import jsonify
from flask_sqlalchemy import SQLAlchemy # SQLAlchemy用于ORM
from flask_migrate import Migrate # 数据库迁移工具
from flask_cors import CORS # CORS用于跨域资源共享
from flask_jwt_extended import JWTManager # JWT用于身份验证
from .utils.logger import get_logger

db = SQLAlchemy()
migrate = Migrate()
cors = CORS()
jwt = JWTManager()

def register_extensions(app):
    """Register Flask extensions."""
    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    jwt.init_app(app)

    # 设置JWT的回调函数
    from .models import User
    @jwt.user_lookup_loader
    def user_lookup_callback(_jwt_header, jwt_data):
        user = db.session.get(User, jwt_data["sub"])
        # 已停用的账号视为不存在
        return user if user is not None and user.is_active else None

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        """
        处理过期的JWT token
        当JWT token过期时自动调用

        参数:
            jwt_header: JWT头部信息 (dict)
            jwt_payload: JWT有效载荷 (dict)

        返回:
            JSON响应: 包含错误信息的JSON响应
        """
        logger = get_logger(__name__)
        logger.warning(f"Token已过期: {jwt_payload.get('sub')}")
        return jsonify({
            "code": 401,
            "message": "Token已过期，请重新登录",
            "data": None
        }), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        """处理无效的JWT token"""
        logger = get_logger(__name__)
        logger.warning(f"Token无效: {reason}")
        return jsonify({
            "code": 401,
            "message": "Token无效，请重新登录",
            "data": None
        }), 401

    @jwt.unauthorized_loader
    def missing_token_callback(reason):
        """请求未携带Token"""
        return jsonify({
            "code": 401,
            "message": "缺少认证信息，请先登录",
            "data": None
        }), 401

    @jwt.user_lookup_error_loader
    def user_lookup_error_callback(_jwt_header, jwt_data):
        """Token对应的用户不存在"""
        logger = get_logger(__name__)
        logger.warning(f"Token对应用户不存在: {jwt_data.get('sub')}")
        return jsonify({
            "code": 401,
            "message": "用户不存在，请重新登录",
            "data": None
        }), 401
