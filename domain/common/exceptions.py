"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class ItemNotFoundException(BusinessException):
    def __init__(self, item_id: Optional[int] = None):
        details = {"item_id": item_id} if item_id is not None else None
        super().__init__(
            code=BusinessCode.ITEM_NOT_FOUND,
            message="Item not found",
            error_type="ItemNotFound",
            details=details,
        )


class OutOfStockException(BusinessException):
    def __init__(self, item_id: int, *, reference: Optional[str] = None):
        details: dict = {"item_id": item_id}
        if reference is not None:
            details["reference"] = reference
        super().__init__(
            code=BusinessCode.OUT_OF_STOCK,
            message="Item is out of stock",
            error_type="OutOfStock",
            details=details,
        )
        self.item_id = item_id
        self.reference = reference


class PaymentNotFoundException(BusinessException):
    def __init__(self, payment_id: Optional[int] = None):
        details = {"payment_id": payment_id} if payment_id is not None else None
        super().__init__(
            code=BusinessCode.PAYMENT_NOT_FOUND,
            message="Payment not found",
            error_type="PaymentNotFound",
            details=details,
        )


class UnknownReferenceException(BusinessException):
    def __init__(self, reference: str):
        super().__init__(
            code=BusinessCode.UNKNOWN_REFERENCE,
            message="No payment matches this reference",
            error_type="UnknownReference",
            details={"reference": reference},
            field="reference",
        )
        self.reference = reference


class OrderNotFoundException(BusinessException):
    def __init__(self, order_id: Optional[int] = None):
        details = {"order_id": order_id} if order_id is not None else None
        super().__init__(
            code=BusinessCode.ORDER_NOT_FOUND,
            message="Order not found",
            error_type="OrderNotFound",
            details=details,
        )


class OrderAlreadyExistsException(BusinessException):
    def __init__(self, payment_id: int):
        super().__init__(
            code=BusinessCode.ORDER_ALREADY_EXISTS,
            message="An order already exists for this payment",
            error_type="OrderAlreadyExists",
            details={"payment_id": payment_id},
        )


class InvalidOrderStateException(BusinessException):
    def __init__(self, order_id: Optional[int], status: str, action: str):
        super().__init__(
            code=BusinessCode.INVALID_ORDER_STATE,
            message=f"Cannot {action} an order that is {status}",
            error_type="InvalidOrderState",
            details={"order_id": order_id, "status": status, "action": action},
        )


class AccessDeniedException(BusinessException):
    def __init__(self, message: str = "You are not allowed to access this resource"):
        super().__init__(
            code=BusinessCode.FORBIDDEN,
            message=message,
            error_type="AccessDenied",
        )


class SellerNotVerifiedException(BusinessException):
    def __init__(self, seller_id: int):
        super().__init__(
            code=BusinessCode.SELLER_NOT_VERIFIED,
            message="Seller has not completed bank verification",
            error_type="SellerNotVerified",
            details={"seller_id": seller_id},
        )


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class SignatureInvalidException(BusinessException):
    def __init__(self, provider: str = "unknown"):
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message="Invalid webhook signature",
            error_type="SignatureInvalid",
            details={"provider": provider},
        )
