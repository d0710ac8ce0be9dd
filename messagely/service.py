"""HTTP API for registering users and exchanging direct messages."""

from __future__ import annotations

import functools
import json
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, TypeVar

import anyio
from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import Settings, load_settings
from .credentials import CredentialStore
from .database import Database
from .directory import UserDirectory
from .errors import MessagelyError
from .messages import MessageStore
from .messaging import MessagingService
from .security import TokenAuth
from .tokens import TokenSigner

logger = logging.getLogger("messagely.service")

T = TypeVar("T")


class _Request(BaseModel):
    @field_validator("*")
    @classmethod
    def _require_utf8(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise ValueError("Text must be valid UTF-8") from exc
        return value


class LoginRequest(_Request):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=256)


class RegisterRequest(_Request):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1, max_length=256)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=32)


class SendMessageRequest(_Request):
    to_username: str = Field(..., min_length=1, max_length=64)
    body: str = Field(..., min_length=1, max_length=10_000)


class TokenResponse(BaseModel):
    token: str


class _View(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UserSummaryView(_View):
    username: str
    first_name: str
    last_name: str
    phone: str


class UserProfileView(UserSummaryView):
    join_at: datetime
    last_login_at: Optional[datetime]


class SentMessageView(_View):
    id: int
    to_user: UserSummaryView
    body: str
    sent_at: datetime
    read_at: Optional[datetime]


class ReceivedMessageView(_View):
    id: int
    from_user: UserSummaryView
    body: str
    sent_at: datetime
    read_at: Optional[datetime]


class MessageRecordView(_View):
    id: int
    from_username: str
    to_username: str
    body: str
    sent_at: datetime


class MessageDetailView(_View):
    id: int
    body: str
    sent_at: datetime
    read_at: Optional[datetime]
    from_user: UserSummaryView
    to_user: UserSummaryView


class ReadReceiptView(_View):
    id: int
    read_at: datetime


class UserListResponse(BaseModel):
    users: List[UserSummaryView]


class UserResponse(BaseModel):
    user: UserProfileView


class SentMessagesResponse(BaseModel):
    messages: List[SentMessageView]


class ReceivedMessagesResponse(BaseModel):
    messages: List[ReceivedMessageView]


class MessageRecordResponse(BaseModel):
    message: MessageRecordView


class MessageDetailResponse(BaseModel):
    message: MessageDetailView


class ReadReceiptResponse(BaseModel):
    message: ReadReceiptView


class _EscapedJSONResponse(JSONResponse):
    """Renders JSON with all non-ASCII text escaped."""

    def render(self, content: object) -> bytes:
        return json.dumps(content, ensure_ascii=True, allow_nan=False, separators=(",", ":")).encode("ascii")


async def _run_sync(func: Callable[..., T], *args: object) -> T:
    """Run a blocking store call on a worker thread."""

    return await anyio.to_thread.run_sync(functools.partial(func, *args))


def build_messaging_service(database: Database, settings: Settings) -> MessagingService:
    if not settings.secret_key:
        raise RuntimeError("MESSAGELY_SECRET_KEY must be configured to issue session tokens")

    signer = TokenSigner(
        settings.secret_key,
        algorithm=settings.token_algorithm,
        ttl=settings.token_ttl,
    )
    return MessagingService(
        credentials=CredentialStore(database, bcrypt_rounds=settings.bcrypt_rounds),
        directory=UserDirectory(database),
        messages=MessageStore(database),
        signer=signer,
    )


def register_api_routes(
    app: FastAPI,
    service: MessagingService,
    *,
    current_user: Callable[..., object],
) -> None:
    """Expose the JSON API endpoints on the provided FastAPI application."""

    @app.exception_handler(MessagelyError)
    async def handle_messagely_error(request: Request, exc: MessagelyError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _EscapedJSONResponse(
            status_code=422,
            content={"detail": jsonable_encoder(exc.errors())},
        )

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/auth/login", response_model=TokenResponse)
    async def login(request: LoginRequest) -> TokenResponse:
        token = await _run_sync(service.login, request.username, request.password)
        return TokenResponse(token=token)

    @app.post(
        "/auth/register",
        status_code=status.HTTP_201_CREATED,
        response_model=TokenResponse,
    )
    async def register(request: RegisterRequest) -> TokenResponse:
        token = await _run_sync(
            service.register,
            request.username,
            request.password,
            request.first_name,
            request.last_name,
            request.phone,
        )
        return TokenResponse(token=token)

    @app.get("/users", response_model=UserListResponse)
    async def list_users(caller: str = Depends(current_user)) -> UserListResponse:
        users = await _run_sync(service.list_users)
        return UserListResponse(users=[UserSummaryView.model_validate(user) for user in users])

    @app.get("/users/{username}", response_model=UserResponse)
    async def get_user(username: str, caller: str = Depends(current_user)) -> UserResponse:
        profile = await _run_sync(service.get_user, username, caller)
        return UserResponse(user=UserProfileView.model_validate(profile))

    @app.get("/users/{username}/from", response_model=SentMessagesResponse)
    async def messages_from(username: str, caller: str = Depends(current_user)) -> SentMessagesResponse:
        messages = await _run_sync(service.messages_from, username, caller)
        return SentMessagesResponse(
            messages=[SentMessageView.model_validate(message) for message in messages]
        )

    @app.get("/users/{username}/to", response_model=ReceivedMessagesResponse)
    async def messages_to(username: str, caller: str = Depends(current_user)) -> ReceivedMessagesResponse:
        messages = await _run_sync(service.messages_to, username, caller)
        return ReceivedMessagesResponse(
            messages=[ReceivedMessageView.model_validate(message) for message in messages]
        )

    @app.post(
        "/messages",
        status_code=status.HTTP_201_CREATED,
        response_model=MessageRecordResponse,
    )
    async def send_message(
        request: SendMessageRequest,
        caller: str = Depends(current_user),
    ) -> MessageRecordResponse:
        record = await _run_sync(service.send_message, caller, request.to_username, request.body)
        return MessageRecordResponse(message=MessageRecordView.model_validate(record))

    @app.get("/messages/{message_id}", response_model=MessageDetailResponse)
    async def get_message(message_id: int, caller: str = Depends(current_user)) -> MessageDetailResponse:
        detail = await _run_sync(service.get_message, message_id, caller)
        return MessageDetailResponse(message=MessageDetailView.model_validate(detail))

    @app.post("/messages/{message_id}/read", response_model=ReadReceiptResponse)
    async def mark_message_read(
        message_id: int,
        caller: str = Depends(current_user),
    ) -> ReadReceiptResponse:
        receipt = await _run_sync(service.mark_message_read, message_id, caller)
        return ReadReceiptResponse(message=ReadReceiptView.model_validate(receipt))


def create_app(
    *,
    database: Database | None = None,
    settings: Settings | None = None,
    initialize_database: bool = True,
) -> FastAPI:
    """Instantiate the FastAPI application for the messaging service."""

    app_settings = settings or load_settings()
    db = database or Database(app_settings.database_path)
    if initialize_database:
        db.initialize()

    service = build_messaging_service(db, app_settings)

    app = FastAPI(
        title="Messagely API",
        version="0.1.0",
        description="Direct messages between registered users.",
    )
    app.state.database = db
    app.state.settings = app_settings
    app.state.messaging = service

    if app_settings.token_ttl is None:
        logger.warning("Session tokens are issued without an expiry. Set token_ttl_seconds to limit their lifetime.")

    register_api_routes(app, service, current_user=TokenAuth(service.signer))
    return app


__all__ = ["build_messaging_service", "create_app", "register_api_routes"]
