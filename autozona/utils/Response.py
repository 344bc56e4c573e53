from flask import jsonify
from typing import Optional, Any, Dict

class ApiResponse:
    """统一API响应格式"""
    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        self.code = code
        self.message = message
        self.data = data if data is not None else {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data
        }

    def to_json_response(self, http_status: Optional[int] = None):
        """将响应转换为JSON格式，默认HTTP状态码与业务码一致"""
        return jsonify(self.to_dict()), http_status or self.code

    @classmethod
    def success(cls, message: str = "成功", data: Optional[Any] = None) -> 'ApiResponse':
        """成功响应"""
        return cls(200, message, data)

    @classmethod
    def created(cls, message: str = "创建成功", data: Optional[Any] = None) -> 'ApiResponse':
        """创建成功响应"""
        return cls(201, message, data)

    @classmethod
    def error(cls, message: str = "失败", code: int = 400, data: Optional[Any] = None) -> 'ApiResponse':
        """错误响应"""
        return cls(code, message, data)

    @classmethod
    def from_error(cls, error) -> 'ApiResponse':
        """由业务异常(ServiceError)构造错误响应"""
        return cls(error.http_status, error.message, {"kind": error.kind.value})
