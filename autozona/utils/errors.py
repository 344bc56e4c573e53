"""
业务错误分类

服务层对外保持 布尔值/None 的返回约定，同时通过 Outcome 和异常的 kind
字段保留真实原因(未找到 / 无权限 / 参数无效 / 冲突 / 存储故障)，供日志和测试使用。
"""
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    """错误类型枚举"""
    NOT_FOUND = 'not_found'                # 资源不存在或已下架
    ACCESS_DENIED = 'access_denied'        # 资源存在但不属于当前用户
    INVALID_ARGUMENT = 'invalid_argument'  # 必填参数为空或格式错误
    CONFLICT = 'conflict'                  # 重复插入(如重复收藏)
    STORE_FAILURE = 'store_failure'        # 数据库操作异常

    @classmethod
    def values(cls):
        return [member.value for member in cls]


class ServiceError(Exception):
    """服务层异常基类"""
    kind = ErrorKind.STORE_FAILURE
    http_status = 500

    def __init__(self, message: str, cause: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        # 合并上报时记录真实原因，例如 AccessDenied 实际是 NotFound
        self.cause = cause or self.kind


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404


class AccessDeniedError(ServiceError):
    kind = ErrorKind.ACCESS_DENIED
    http_status = 403


class InvalidArgumentError(ServiceError):
    kind = ErrorKind.INVALID_ARGUMENT
    http_status = 400


class ConflictError(ServiceError):
    kind = ErrorKind.CONFLICT
    http_status = 409


class StoreFailureError(ServiceError):
    kind = ErrorKind.STORE_FAILURE
    http_status = 500


class Outcome:
    """
    操作结果

    成功时为真值并携带 value；失败时为假值并携带 kind/message。
    布尔接口直接返回 outcome.ok，需要区分原因的调用方使用 try_* 方法拿到完整结果。
    """
    __slots__ = ('ok', 'kind', 'message', 'value')

    def __init__(self, ok: bool, kind: Optional[ErrorKind] = None, message: str = '', value: Any = None):
        self.ok = ok
        self.kind = kind
        self.message = message
        self.value = value

    def __bool__(self):
        return self.ok

    def __repr__(self):
        if self.ok:
            return f'<Outcome ok value={self.value!r}>'
        return f'<Outcome {self.kind.value}: {self.message}>'

    @classmethod
    def success(cls, value: Any = None) -> 'Outcome':
        return cls(True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> 'Outcome':
        return cls(False, kind=kind, message=message)

    @classmethod
    def not_found(cls, message: str) -> 'Outcome':
        return cls.failure(ErrorKind.NOT_FOUND, message)

    @classmethod
    def access_denied(cls, message: str) -> 'Outcome':
        return cls.failure(ErrorKind.ACCESS_DENIED, message)

    @classmethod
    def conflict(cls, message: str) -> 'Outcome':
        return cls.failure(ErrorKind.CONFLICT, message)


def require_text(value: Optional[str], field: str) -> str:
    """校验必填字符串参数，空白时抛出 InvalidArgumentError"""
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{field} 不能为空")
    return str(value)


def optional_text(value) -> Optional[str]:
    """去掉首尾空白，空字符串视为未填写"""
    if value is None:
        return None
    return str(value).strip() or None


_ERRORS_BY_KIND = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.ACCESS_DENIED: AccessDeniedError,
    ErrorKind.INVALID_ARGUMENT: InvalidArgumentError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.STORE_FAILURE: StoreFailureError,
}


def error_from_outcome(outcome: Outcome) -> ServiceError:
    """把失败的 Outcome 转换成对应的业务异常，供接口层抛出"""
    return _ERRORS_BY_KIND[outcome.kind](outcome.message)
