"""Account session endpoints: sign-in, activation and bearer token renewal."""

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from newsroom_api.api.dependencies import (
    AccountSvc,
    AppSettings,
    BearerIdentity,
    read_json_body,
)
from newsroom_api.api.models import ActivationJSON, TokenJSON, success
from newsroom_api.domain.exceptions import Unauthenticated, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["accounts"])

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


@router.post("/v1/signin")
async def signin(request: Request, service: AccountSvc) -> JSONResponse:
    """Mail a one-time activation link, creating the account if needed.

    Accepts a JSON or form-encoded body with ``email`` and an optional
    ``destination``. Responds 201 for a new account and 200 otherwise.
    """
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type == "application/json":
        data = await read_json_body(request)
    elif content_type in FORM_CONTENT_TYPES:
        form = await request.form()
        data = {key: value for key, value in form.items() if isinstance(value, str)}
    else:
        raise ValidationError("body", "expected a JSON or form-encoded body")

    account, created = await service.signin(data)
    return success(
        {"email": account.email},
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@router.get("/v1/activate")
async def activate(
    service: AccountSvc,
    email: str | None = None,
    token: str | None = None,
) -> JSONResponse:
    """Redeem an activation credential for a bearer token."""
    identity = service.activate(email, token)
    bearer = service.bearer.issue(identity)
    return success(ActivationJSON(id=identity.user_id, email=identity.email, jwt=bearer))


@router.get("/v2/auth/activate")
async def activate_with_cookie(
    service: AccountSvc,
    settings: AppSettings,
    request: Request,
    email: str | None = None,
    token: str | None = None,
    destination: str | None = None,
) -> RedirectResponse:
    """Redeem an activation credential and hand the session over as a cookie.

    Always redirects to the (allow-listed) destination. The ``id_token``
    cookie is only set when the credential is valid.
    """
    target = service.safe_destination(destination)
    response = RedirectResponse(target, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    try:
        identity = service.activate(email, token)
    except Unauthenticated as e:
        logger.info("cookie_activation_failed", reason=e.message)
        return response

    cookie = settings.cookie
    response.set_cookie(
        key=cookie.name,
        value=request.app.state.id_token_format.issue(identity),
        domain=cookie.domain,
        secure=cookie.secure,
        httponly=True,
        samesite=cookie.samesite,
    )
    return response


@router.get("/v1/token/{user_id}")
async def renew_token(user_id: int, identity: BearerIdentity, service: AccountSvc) -> JSONResponse:
    """Issue a fresh bearer token for the holder of a valid one."""
    token = service.renew(identity, user_id)
    return success(TokenJSON(token=token))
