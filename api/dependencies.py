"""
API依赖项 - 认证与应用服务装配
"""
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from application.ports.payment_gateway import PaymentGateway
from application.services.checkout_service import CheckoutService
from application.services.order_service import OrderApplicationService
from application.services.payment_service import PaymentQueryService
from application.services.settlement_service import SettlementService
from application.services.token_service import AuthenticatedUser, TokenService
from infrastructure.external.payments import get_payment_gateway
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

# HTTP Bearer for direct API calls
http_bearer = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication",
    auto_error=False,
)


async def get_token(
    bearer_token: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> str:
    """从 Bearer token 中提取 token"""
    if bearer_token and bearer_token.credentials:
        return bearer_token.credentials

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_service() -> TokenService:
    return TokenService()


async def get_current_user(
    token: str = Depends(get_token),
    tokens: TokenService = Depends(get_token_service),
) -> AuthenticatedUser:
    """获取当前登录用户"""
    return tokens.verify_access_token(token)


def get_uow_factory():
    """Unit of Work 工厂（测试中可通过 dependency_overrides 替换）"""
    return SQLAlchemyUnitOfWork


async def get_gateway() -> AsyncGenerator[PaymentGateway, None]:
    gateway = get_payment_gateway()
    try:
        yield gateway
    finally:
        close = getattr(gateway, "aclose", None)
        if callable(close):
            await close()


async def get_checkout_service(
    uow_factory=Depends(get_uow_factory),
    gateway: PaymentGateway = Depends(get_gateway),
) -> CheckoutService:
    return CheckoutService(uow_factory=uow_factory, gateway=gateway)


async def get_settlement_service(
    uow_factory=Depends(get_uow_factory),
    gateway: PaymentGateway = Depends(get_gateway),
) -> SettlementService:
    return SettlementService(uow_factory=uow_factory, gateway=gateway)


async def get_payment_query_service(uow_factory=Depends(get_uow_factory)) -> PaymentQueryService:
    return PaymentQueryService(uow_factory=uow_factory)


async def get_order_service(uow_factory=Depends(get_uow_factory)) -> OrderApplicationService:
    return OrderApplicationService(uow_factory=uow_factory)
