import logging
import secrets
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request, Security
from fastapi.exceptions import RequestValidationError
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth_service, user_service
from .config import Settings
from .context import AppContext, build_context
from .errors import AppError, unauthorized
from .response import failure, success
from .user import CreateUserRequest, RefreshTokenRequest

# Configure root logger for the entire application
root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)

# Remove all existing handlers
for handler in root_logger.handlers[:]:
    root_logger.removeHandler(handler)

formatter = logging.Formatter('%(levelname)s: %(message)s')
console_handler = logging.StreamHandler()
console_handler.setFormatter(formatter)

root_logger.addHandler(console_handler)
logger = logging.getLogger("hhgate.main")

security = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def require_api_token(
    ctx: AppContext = Depends(get_context),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> None:
    """Guard protected routes with ``Authorization: Bearer <API_TOKEN>``.

    Disabled when no API_TOKEN is configured.
    """
    expected = ctx.settings.api_token
    if not expected:
        return
    if not credentials or not credentials.credentials:
        raise unauthorized("No token provided")
    if not secrets.compare_digest(credentials.credentials, expected):
        raise unauthorized("Invalid token")


router = APIRouter(prefix="/api")


@router.get("/health")
async def health():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/auth/hh")
async def initiate_auth(ctx: AppContext = Depends(get_context)):
    """Return the hh.ru authorization URL the client should open."""
    result = auth_service.generate_authorization_url(ctx)
    return success(result, "Authorization URL generated")


@router.get("/auth/callback")
async def auth_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    ctx: AppContext = Depends(get_context),
):
    """Handle the hh.ru redirect: exchange the code and store the user."""
    # TODO: persist the state issued by /auth/hh and reject callbacks that do not echo it
    user = await auth_service.handle_callback(ctx, code, error)
    return success(user.to_json(), "Authorization successful", 201)


@router.post("/auth/refresh", dependencies=[Depends(require_api_token)])
async def refresh(body: RefreshTokenRequest, ctx: AppContext = Depends(get_context)):
    result = await auth_service.refresh_token(ctx, body.user_id)
    return success(result, "Token refreshed successfully")


@router.post("/users", dependencies=[Depends(require_api_token)])
async def create_user(body: CreateUserRequest, ctx: AppContext = Depends(get_context)):
    user = await user_service.create_user(ctx, body)
    return success(user.to_json(), "User created successfully", 201)


@router.get("/users", dependencies=[Depends(require_api_token)])
async def list_users(ctx: AppContext = Depends(get_context)):
    users = await user_service.get_all_users(ctx)
    return success([u.to_json() for u in users], "Users retrieved successfully")


@router.get("/users/{user_id}", dependencies=[Depends(require_api_token)])
async def get_user(user_id: str, ctx: AppContext = Depends(get_context)):
    user = await user_service.get_user_by_id(ctx, user_id)
    return success(user.to_json(), "User retrieved successfully")


def _show_details(request: Request) -> bool:
    ctx = getattr(request.app.state, "context", None)
    return ctx is not None and not ctx.settings.is_production


async def app_error_handler(request: Request, exc: AppError):
    logger.error("Error occurred: %s %s -> %s: %s", request.method, request.url.path, exc.kind.name, exc.message)
    stack = "".join(traceback.format_exception(exc)) if _show_details(request) else None
    return failure(exc.message, exc.status_code, stack=stack)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        # Drop the leading "body"/"query" location segment
        loc = [str(part) for part in err.get("loc", ())][1:]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return failure("Validation failed", 400, errors=errors)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return failure(f"Route {request.url.path} not found", 404)
    return failure(str(exc.detail), exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    details: Dict[str, Any] = {}
    if _show_details(request):
        details = {"error": str(exc), "stack": "".join(traceback.format_exception(exc))}
    return failure("Internal server error", 500, **details)


def create_app(context: Optional[AppContext] = None) -> FastAPI:
    """Create the API app.

    When ``context`` is omitted it is built from the environment at startup,
    so missing configuration stops the process before it serves requests.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "context", None) is None:
            app.state.context = build_context(Settings.from_env())
        root_logger.setLevel(app.state.context.settings.log_level)
        logger.info("hhgate started in %s mode", app.state.context.settings.app_env)
        yield
        await app.state.context.users.store.close()

    app = FastAPI(
        title="hhgate",
        description="hh.ru OAuth gateway and user store",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.context = context
    app.include_router(router)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    return app


app = create_app()


def main(host: str = "0.0.0.0", port: Optional[int] = None):
    """Main entry point for the application."""
    settings = Settings.from_env()
    uvicorn.run(create_app(build_context(settings)), host=host, port=port or settings.port)


if __name__ == "__main__":
    main()
