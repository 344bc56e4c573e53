import uuid
from datetime import datetime, timezone

def new_id() -> str:
    """生成实体主键(36位uuid字符串)"""
    return str(uuid.uuid4())

def utc_now() -> datetime:
    """当前UTC时间(不带时区，与数据库DateTime列保持一致)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def enum_values(enum_cls):
    """枚举的取值列表，用于 db.Enum 列定义"""
    return [member.value for member in enum_cls]
