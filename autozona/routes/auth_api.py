from flask import Blueprint, request
from flask_jwt_extended import create_access_token, jwt_required, current_user
from ..models import User
from ..utils.logger import get_logger, log_requests
from ..utils.Response import ApiResponse

auth_bp = Blueprint('auth_api', __name__)

@auth_bp.route('/register', methods=['POST'])
@log_requests()
def register():
    """用户注册"""
    logger = get_logger(__name__)
    data = request.get_json(silent=True)

    # 检查请求体是否为空
    if not data:
        return ApiResponse.error("请求体不能为空").to_json_response()

    # 检查用户名和邮箱是否已存在
    username = str(data.get('username') or '').strip()
    if username and User.query.filter_by(username=username).first():
        logger.warning(f"用户名已被注册: {username}")
        return ApiResponse.error("用户名已被注册", code=409).to_json_response()

    email = str(data.get('email') or '').strip()
    if email and User.query.filter_by(email=email).first():
        logger.warning(f"邮箱已被注册: {email}")
        return ApiResponse.error("邮箱已被注册", code=409).to_json_response()

    user, error = User.create_user(data)
    if error:
        logger.error(f"用户注册失败: {error}")
        return ApiResponse.error(error).to_json_response()

    logger.info(f"用户注册成功: {user.id, user.username}")
    return ApiResponse.created("用户注册成功", data={"user_id": user.id}).to_json_response()

@auth_bp.route('/login', methods=['POST'])
@log_requests()
def login():
    """用户登录"""
    logger = get_logger(__name__)
    data = request.get_json(silent=True) or {}

    username = data.get('username')
    password = data.get('password')

    # 查找用户并校验密码
    user = User.query.filter_by(username=username).first() if username else None
    if not user or not password or not user.verify_password(password) or not user.is_active:
        logger.warning(f"用户名或密码错误: {username}")
        return ApiResponse.error("用户名或密码错误", code=401).to_json_response()

    # 创建JWT token，identity 为用户ID
    access_token = create_access_token(
        identity=user.id,
        additional_claims={"username": user.username}
    )

    logger.info(f"用户登录成功: {user.id, user.username}")
    return ApiResponse.success("登录成功", data={
        "user": user.to_dict(),
        "access_token": access_token,
    }).to_json_response()

@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    """当前登录用户信息"""
    return ApiResponse.success("获取用户信息成功", data=current_user.to_dict()).to_json_response()
