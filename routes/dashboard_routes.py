"""
Role-gated dashboard endpoints.

GET /buyer/dashboard   — buyers only
GET /seller/dashboard  — sellers only
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from dependencies import route_guards
from schemas.dto.responses.auth import DashboardResponse, UserProfileResponse
from schemas.dto.responses.common import ErrorResponse
from schemas.models.user import UserDoc
from shared.validators import ROLE_BUYER, ROLE_SELLER

router = APIRouter(
    tags=["dashboard"],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)

guards = route_guards(
    {
        "buyer_dashboard": [ROLE_BUYER],
        "seller_dashboard": [ROLE_SELLER],
    }
)


def _dashboard(user: UserDoc, title: str) -> JSONResponse:
    content = DashboardResponse(
        message=f"Welcome to the {title} dashboard, {user.name}",
        user=UserProfileResponse.from_user(user),
    )
    return JSONResponse(content=content.model_dump(by_alias=True, mode="json"))


@router.get("/buyer/dashboard")
async def buyer_dashboard(
    user: UserDoc = Depends(guards["buyer_dashboard"]),
) -> JSONResponse:
    return _dashboard(user, "buyer")


@router.get("/seller/dashboard")
async def seller_dashboard(
    user: UserDoc = Depends(guards["seller_dashboard"]),
) -> JSONResponse:
    return _dashboard(user, "seller")
