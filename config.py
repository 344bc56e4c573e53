# 配置文件
import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv() # 加载.env文件中的环境变量

class Config:
    """基础配置"""
    SECRET_KEY = os.getenv("SECRET_KEY", "autozona-development-secret-key-change-me")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///autozona.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    DEBUG = os.getenv("DEBUG", "False") == "True"
    TESTING = os.getenv("TESTING", "False") == "True"

    # 日志配置
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

    # JWT 配置
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)  # Token有效期1小时
    JWT_TOKEN_LOCATION = ['headers']  # 从请求头获取Token

    # 车源列表配置
    LISTINGS_PAGE_SIZE = int(os.getenv("LISTINGS_PAGE_SIZE", "12"))  # 列表页默认每页条数
    MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))           # 每页条数上限

    # 图片排序校验模式: partial(允许只传部分图片) / strict(必须是完整排列)
    IMAGE_REORDER_MODE = os.getenv("IMAGE_REORDER_MODE", "partial")

    # 默认收藏夹
    DEFAULT_FAVORITES_LIST_NAME = "My Favorites"
    DEFAULT_FAVORITES_LIST_DESCRIPTION = "My favorite cars"

class DevelopmentConfig(Config):
    """开发环境配置"""
    ENV = "development"
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URL", "sqlite:///dev.db")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=3)  # 开发环境延长有效期

class TestingConfig(Config):
    """测试环境配置"""
    ENV = "testing"
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = False  # 测试时关闭SQL日志
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=300)  # 测试环境短有效期
    LOG_LEVEL = "INFO"
    LOG_DIR = None  # 测试时不写日志文件

class ProductionConfig(Config):
    """生产环境配置"""
    ENV = "production"
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("PROD_DATABASE_URL", "sqlite:///prod.db")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")  # 生产环境必须显式配置
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=30)  # 生产环境较短有效期
    LOG_LEVEL = "INFO"
