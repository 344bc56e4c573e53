from werkzeug.exceptions import HTTPException
from ..extensions import db
from ..utils.errors import ServiceError
from ..utils.logger import get_logger
from ..utils.Response import ApiResponse
from .main import main_bp as main_blueprint
from .auth_api import auth_bp as auth_blueprint
from .listing_api import listing_bp as listing_blueprint
from .image_api import image_bp as image_blueprint
from .favorites_api import favorites_bp as favorites_blueprint

def register_blueprints(app):
    """注册所有蓝图"""
    app.register_blueprint(main_blueprint, url_prefix='/api')
    app.register_blueprint(auth_blueprint, url_prefix='/api/auth')
    app.register_blueprint(listing_blueprint, url_prefix='/api/listings')
    app.register_blueprint(image_blueprint, url_prefix='/api/images')
    app.register_blueprint(favorites_blueprint, url_prefix='/api/favorites')

def register_error_handlers(app):
    """业务异常统一转换为 ApiResponse"""

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        logger = get_logger(__name__)
        logger.warning(f"业务异常 [{error.kind.value}]: {error.message}")
        db.session.rollback()
        return ApiResponse.from_error(error).to_json_response()

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        if isinstance(error, HTTPException):
            return ApiResponse.error(error.description, code=error.code).to_json_response()

        logger = get_logger(__name__)
        db.session.rollback()
        logger.error(f"未处理的异常: {str(error)}", exc_info=True)
        return ApiResponse.error("服务器内部错误", code=500).to_json_response()
