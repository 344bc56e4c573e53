import os, logging, json
from logging import addLevelName
from logging.handlers import RotatingFileHandler
from flask import current_app, request
from typing import Optional, Any, Dict
from functools import wraps

"""
日志的使用方法

方式1：直接使用Flask应用日志记录器
current_app.logger.debug("Using app logger directly")

# 方式2：获取模块专属日志记录器 (推荐)
logger = get_logger(__name__)
logger.info(f"开始创建车源: {listing.make} {listing.model}")
logger.success("车源创建成功")
logger.error(f"车源创建失败: {str(e)}", exc_info=True)

日志输出效果
2025-05-01 16:20:12,345 - autozona.services.listing_query - INFO - 开始创建车源: Toyota Corolla (listing_query.py:15)
"""

# 首先定义SUCCESS级别 (介于WARNING和INFO之间)
SUCCESS_LEVEL_NUM = 25
logging.SUCCESS = SUCCESS_LEVEL_NUM  # 添加SUCCESS级别
addLevelName(SUCCESS_LEVEL_NUM, 'SUCCESS')  # 注册级别名称

# 修改Logger类添加success方法
def success(self, msg, *args, **kwargs):
    if self.isEnabledFor(SUCCESS_LEVEL_NUM):
        self._log(SUCCESS_LEVEL_NUM, msg, args, **kwargs)

logging.Logger.success = success

class ColorFormatter(logging.Formatter):
    """带颜色的控制台日志格式化器"""
    grey = "\x1b[38;20m"
    yellow = "\x1b[33;20m"
    green = "\x1b[32;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s (%(filename)s:%(lineno)d)"

    FORMATS = {
        logging.DEBUG: grey + format_str + reset,
        logging.INFO: grey + format_str + reset,
        logging.SUCCESS: green + format_str + reset,
        logging.WARNING: yellow + format_str + reset,
        logging.ERROR: red + format_str + reset,
        logging.CRITICAL: bold_red + format_str + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)

def setup_app_logger(app=None, max_bytes: int = 10*1024*1024, backup_count: int = 3):
    """
    配置Flask应用日志记录器

    应用记录器名为包名(autozona)，各模块通过 get_logger(__name__) 拿到的
    autozona.* 子记录器会传播到这里配置的处理器上。

    :param app: Flask应用实例
    :param max_bytes: 单个日志文件最大字节数
    :param backup_count: 保留的备份文件数
    """
    if app is None:
        app = current_app

    # 移除旧处理器(测试中会多次创建应用)
    for handler in list(app.logger.handlers):
        handler.close()
        app.logger.removeHandler(handler)

    # 文件处理器 (轮转日志)，LOG_DIR 为空时只输出到控制台
    log_dir = app.config.get('LOG_DIR')
    if log_dir:
        full_log_dir = log_dir if os.path.isabs(log_dir) else os.path.join(app.root_path, log_dir)
        os.makedirs(full_log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=os.path.join(full_log_dir, 'app.log'),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        app.logger.addHandler(file_handler)

    # 控制台处理器 (带颜色)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ColorFormatter())
    app.logger.addHandler(console_handler)

    app.logger.setLevel(app.config.get('LOG_LEVEL', 'DEBUG'))

    # 禁止传播到父记录器
    app.logger.propagate = False

    app.logger.info("Logger setup completed")

def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    获取一个配置好的日志记录器

    :param name: 记录器名称 (通常使用 __name__)
    :return: 配置好的Logger实例
    """
    if name is None:
        return current_app.logger

    # autozona.* 记录器继承应用记录器的处理器和级别
    return logging.getLogger(name)

def _mask_sensitive_data(data: Any, sensitive_fields: tuple) -> Any:
    """脱敏敏感数据"""
    if isinstance(data, dict):
        return {k: '***MASKED***' if k in sensitive_fields else _mask_sensitive_data(v, sensitive_fields)
                for k, v in data.items()}
    elif isinstance(data, (list, tuple)):
        return [_mask_sensitive_data(item, sensitive_fields) for item in data]
    return data

def log_requests(logger: Optional[logging.Logger] = None,
                 log_level: int = logging.INFO,
                 max_body_length: int = 1000,
                 sensitive_fields: tuple = ('password', 'access_token', 'refresh_token')):
    """
    装饰器，自动记录视图函数的请求和响应摘要

    使用示例:
    @listings_bp.route('', methods=['GET'])
    @log_requests()
    def list_listings():
        return ApiResponse.success(...).to_json_response(200)
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            log = logger or get_logger(f.__module__)

            # 记录请求
            request_info: Dict[str, Any] = {
                'method': request.method,
                'path': request.path,
                'args': _mask_sensitive_data(dict(request.args), sensitive_fields),
                'remote_addr': request.remote_addr,
            }
            if request.is_json:
                body = request.get_json(silent=True)
                request_info['json_body'] = _mask_sensitive_data(body, sensitive_fields)
            log.log(log_level, "Request received:\n%s",
                    json.dumps(request_info, indent=2, ensure_ascii=False, default=str)[:max_body_length])

            # 执行视图函数
            response = f(*args, **kwargs)

            # 记录响应 (视图返回 (response, status) 元组)
            body, status = response if isinstance(response, tuple) else (response, None)
            response_data = body.get_json(silent=True) if hasattr(body, 'get_json') else None
            if isinstance(response_data, dict) and 'code' in response_data:
                log_msg = {
                    'status': 'SUCCESS' if 200 <= response_data['code'] < 400 else 'ERROR',
                    'code': response_data['code'],
                    'message': response_data.get('message'),
                    'http_status': status,
                }
            else:
                log_msg = {'http_status': status}
            log.log(log_level, "Response:\n%s", json.dumps(log_msg, indent=2, ensure_ascii=False))

            return response
        return decorated_function
    return decorator
