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


# ---- 支付相关异常 ----

class PaymentValidationError(BusinessException):
    """调用方输入不合法（不会自动重试）"""

    def __init__(self, message: str, *, field: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.VALIDATION_ERROR,
            message=message,
            error_type="PaymentValidationError",
            details=details,
            field=field,
        )


class PaymentConfigurationError(BusinessException):
    """支付凭据缺失，需运维处理"""

    def __init__(self, message: str, *, provider: str):
        super().__init__(
            code=PaymentCode.CONFIGURATION_ERROR,
            message=message,
            error_type="PaymentConfigurationError",
            details={"provider": provider},
        )


class PaymentProviderError(BusinessException):
    """支付渠道返回错误或无法解析的响应，调用方可自行退避重试"""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        reference: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        full_details = {"provider": provider, "reference": reference, "status_code": status_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="PaymentProviderError",
            details=full_details,
        )
        self.provider = provider
        self.reference = reference
        self.status_code = status_code


class PaymentNotFoundError(BusinessException):
    """支付渠道不存在该交易引用"""

    def __init__(self, reference: str, *, provider: str, message: str = "Transaction reference not found"):
        super().__init__(
            code=PaymentCode.TRANSACTION_NOT_FOUND,
            message=message,
            error_type="PaymentNotFound",
            details={"provider": provider, "reference": reference},
        )
        self.reference = reference


class PromotionPersistenceError(BusinessException):
    """推广状态写入失败（支付已确认时由编排器转换为警告）"""

    def __init__(self, message: str, *, property_id: Optional[str] = None):
        details = {"property_id": property_id} if property_id else None
        super().__init__(
            code=PaymentCode.PERSISTENCE_ERROR,
            message=message,
            error_type="PromotionPersistenceError",
            details=details,
        )
        self.property_id = property_id


class PromotionsDisabledError(BusinessException):
    def __init__(self):
        super().__init__(
            code=PaymentCode.PROMOTIONS_DISABLED,
            message="Listing promotions are currently disabled",
            error_type="PromotionsDisabled",
        )


class PromotionTierNotFoundError(BusinessException):
    def __init__(self, tier_id: str):
        super().__init__(
            code=PaymentCode.TIER_NOT_FOUND,
            message=f"Promotion tier {tier_id} not found",
            error_type="PromotionTierNotFound",
            details={"tier_id": tier_id},
            field="tier_id",
        )
