from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Callable, Optional

import structlog
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import crud, errors, schemas
from .config import Settings
from .database import create_engine, create_sessionmaker, get_db, init_models
from .security import PasswordHasher
from .sessions import (
    Identity,
    SessionManager,
    clear_session_cookie,
    get_current_user,
    get_session_manager,
    session_token,
    set_session_cookie,
)

logger = structlog.get_logger(__name__)


async def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def _error_response(exc: errors.ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def api_error_handler(request: Request, exc: errors.ApiError):
    return _error_response(exc)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            field = "body"
        else:
            field = ".".join(str(part) for part in error.get("loc", ()) if part != "body") or "body"
        details.append({"field": field, "message": error.get("msg", "")})
    return _error_response(errors.ValidationError("Dados inválidos", details=details))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error_response(errors.NotFound())
    if exc.status_code == 405:
        return _error_response(errors.MethodNotAllowed())
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": "HTTPError", "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def pool_timeout_handler(request: Request, exc: PoolTimeoutError):
    logger.error("db_pool_exhausted", path=request.url.path, exc_info=exc)
    return _error_response(errors.ServiceUnavailable())


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("database_error", path=request.url.path, method=request.method, exc_info=exc)
    return _error_response(errors.InternalError())


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", path=request.url.path, method=request.method, exc_info=exc)
    return _error_response(errors.InternalError())


def create_app(
    settings: Optional[Settings] = None,
    session_manager: Optional[SessionManager] = None,
    today: Callable[[], date] = date.today,
) -> FastAPI:
    settings = settings or Settings()
    session_manager = session_manager or SessionManager(
        secret=settings.session_secret,
        ttl_seconds=settings.session_ttl_hours * 60 * 60,
    )
    engine = create_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_models(engine)
        logger.info("database_ready", dialect=engine.dialect.name)
        yield
        await engine.dispose()
        logger.info("database_pool_closed")

    app = FastAPI(title="Finance Tracker API", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessionmaker = create_sessionmaker(engine)
    app.state.session_manager = session_manager
    app.state.hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.today = today

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept", "Authorization"],
    )

    app.add_exception_handler(errors.ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(PoolTimeoutError, pool_timeout_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    @app.get("/api/health", response_model=schemas.HealthOut)
    async def health():
        return {
            "status": "OK",
            "message": "Servidor está funcionando",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/api/cadastrar", response_model=schemas.UserEnvelope)
    async def register(
        payload: schemas.UserCreate,
        db: AsyncSession = Depends(get_db),
        hasher: PasswordHasher = Depends(get_hasher),
    ):
        user = await crud.create_user(db, payload, hasher)
        logger.info("user_registered", user_id=user.id)
        return {"success": True, "message": "Cadastro realizado com sucesso!", "user": user}

    @app.post("/api/login", response_model=schemas.UserEnvelope)
    async def login(
        payload: schemas.LoginRequest,
        request: Request,
        response: Response,
        db: AsyncSession = Depends(get_db),
        hasher: PasswordHasher = Depends(get_hasher),
    ):
        user = await crud.authenticate_user(db, payload.email, payload.password, hasher)
        if user is None:
            logger.info("login_failed")
            raise errors.Unauthenticated("E-mail ou senha incorretos.")

        manager = get_session_manager(request)
        identity = Identity(user_id=user.id, name=user.name, email=user.email)
        token = manager.create(identity)
        set_session_cookie(response, request.app.state.settings, manager, token)
        logger.info("login_succeeded", user_id=user.id)
        return {"success": True, "message": "Login realizado com sucesso!", "user": identity.to_public()}

    @app.post("/api/logout", response_model=schemas.MessageOut)
    async def logout(request: Request, response: Response):
        manager = get_session_manager(request)
        token = session_token(request)
        identity = manager.resolve(token)
        manager.destroy(token)
        clear_session_cookie(response, request.app.state.settings)
        if identity is not None:
            logger.info("logout", user_id=identity.user_id)
        return {"success": True, "message": "Logout realizado com sucesso"}

    @app.get("/api/usuario", response_model=schemas.UserEnvelope, response_model_exclude_none=True)
    async def current_user(identity: Identity = Depends(get_current_user)):
        return {"success": True, "user": identity.to_public()}

    @app.get("/api/transacoes", response_model=schemas.TransactionsList)
    async def list_transactions(
        identity: Identity = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        transactions = await crud.get_transactions_for_user(db, owner_id=identity.user_id)
        return {"success": True, "transactions": transactions}

    @app.post("/api/transacoes", response_model=schemas.TransactionEnvelope)
    async def create_transaction(
        payload: schemas.TransactionCreate,
        identity: Identity = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        tx = await crud.create_transaction(db, owner_id=identity.user_id, tx=payload)
        logger.info("transaction_created", user_id=identity.user_id, transaction_id=tx.id, kind=tx.kind)
        return {"success": True, "message": "Transação criada com sucesso!", "transaction": tx}

    @app.get("/api/dashboard", response_model=schemas.DashboardEnvelope)
    async def dashboard(
        request: Request,
        identity: Identity = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ):
        totals = await crud.get_dashboard(db, owner_id=identity.user_id, today=request.app.state.today)
        return {
            "success": True,
            "balance": float(totals.balance),
            "income30": float(totals.income30),
            "expense30": float(totals.expense30),
        }
