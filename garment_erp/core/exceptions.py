"""业务异常

服务层抛出，由接口层统一转换为 HTTPException
"""

from fastapi import HTTPException


class BusinessError(Exception):
    """业务异常基类"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BusinessRuleError(BusinessError):
    """违反业务规则（如发货数量超过订单数量）"""
    status_code = 400


class NotFoundError(BusinessError):
    """记录不存在"""
    status_code = 404


class DuplicateError(BusinessError):
    """唯一约束冲突"""
    status_code = 409


def to_http(exc: BusinessError) -> HTTPException:
    """转换为 HTTP 异常"""
    return HTTPException(status_code=exc.status_code, detail=exc.message)
