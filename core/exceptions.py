"""
全局异常处理器：把业务异常、参数校验异常与未捕获异常渲染为统一响应
"""
import traceback
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status

from core.logging_config import get_logger
from core.response import Response, error_response, exception_response
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)


_CODE_TO_HTTP_STATUS = {
    BusinessCode.PARAM_ERROR: http_status.HTTP_400_BAD_REQUEST,
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.CONFLICT: http_status.HTTP_409_CONFLICT,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    PaymentCode.PROVIDER_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    PaymentCode.CONFIGURATION_ERROR: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    PaymentCode.TRANSACTION_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    PaymentCode.PERSISTENCE_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    PaymentCode.PROMOTIONS_DISABLED: http_status.HTTP_409_CONFLICT,
    PaymentCode.TIER_NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
}

# HTTPException 状态码 -> 业务码
_HTTP_STATUS_TO_CODE = {
    404: BusinessCode.NOT_FOUND,
    409: BusinessCode.CONFLICT,
    500: BusinessCode.SYSTEM_ERROR,
    503: BusinessCode.SERVICE_UNAVAILABLE,
}


def business_code_to_http_status(code: int) -> int:
    """根据业务码映射HTTP状态码（默认400）"""
    return _CODE_TO_HTTP_STATUS.get(code, http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _render(status_code: int, body: Response, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


async def business_exception_handler(request: Request, exc: BusinessException) -> JSONResponse:
    status_code = business_code_to_http_status(exc.code)
    log = logger.error if status_code >= 500 else logger.info
    log("business_exception", error_type=exc.error_type, code=int(exc.code), message=exc.message)
    return _render(status_code, exception_response(exc, _request_id(request)))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    # loc 首项为 body/query/path
    field = ".".join(str(loc) for loc in first.get("loc", ())[1:])
    body = error_response(
        BusinessCode.PARAM_VALIDATION_ERROR,
        f"Validation failed: {first.get('msg', 'unknown')}",
        error_type="ValidationError",
        details={"errors": [{k: v for k, v in e.items() if k not in ("ctx", "input")} for e in errors]},
        field=field or None,
        request_id=_request_id(request),
    )
    return _render(http_status.HTTP_422_UNPROCESSABLE_ENTITY, body)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    body = error_response(
        _HTTP_STATUS_TO_CODE.get(exc.status_code, BusinessCode.BUSINESS_ERROR),
        str(exc.detail),
        error_type="HTTPError",
        details={"status_code": exc.status_code},
        request_id=_request_id(request),
    )
    return _render(exc.status_code, body, headers=getattr(exc, "headers", None))


def register_exception_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""
    app.add_exception_handler(BusinessException, business_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = _request_id(request)
        logger.error("unhandled_exception", request_id=request_id, error=str(exc), exc_info=True)
        details = {"exception": str(exc), "traceback": traceback.format_exc()} if app.debug else None
        body = error_response(
            BusinessCode.SYSTEM_ERROR,
            "Internal server error",
            error_type="SystemError",
            details=details,
            request_id=request_id,
        )
        return _render(http_status.HTTP_500_INTERNAL_SERVER_ERROR, body)
