from flask import Blueprint
from sqlalchemy import text
from ..extensions import db
from ..utils.Response import ApiResponse

# 创建蓝图实例
main_bp = Blueprint('main', __name__)

# 定义路由
@main_bp.route('/')
def index():
    """首页路由"""
    return ApiResponse.success("Welcome to the AutoZona API!").to_json_response()

@main_bp.route('/health')
def health():
    """健康检查，顺带检查数据库连接"""
    db.session.execute(text('SELECT 1'))
    return ApiResponse.success("ok", data={"database": "up"}).to_json_response()
