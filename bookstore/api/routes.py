"""HTTP route definitions for the bookstore service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from fastapi import APIRouter, Depends, Header, Request, status
from pydantic import BaseModel, EmailStr, Field

from ..domain.account import Principal
from ..domain.book import Book
from ..domain.contracts import CreateBookInput, LoginInput, RegisterInput
from ..domain.service import AccountService, BookService
from ..errors import RateLimited
from ..security.guard import AccessGuard
from ..security.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


class RegisterRequest(BaseModel):
    """Payload accepted when registering an account."""

    username: str
    email: EmailStr
    password: str = Field(..., repr=False)


class RegisterResponse(BaseModel):
    message: str = "user registered successfully"
    email: str


class LoginRequest(BaseModel):
    """Credentials exchanged for a bearer token."""

    email: EmailStr
    password: str = Field(..., repr=False)


class UserSummary(BaseModel):
    id: str
    email: str
    name: str


class LoginResponse(BaseModel):
    """Login response containing the bearer token and the account summary."""

    message: str = "login successful"
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserSummary


class CreateBookRequest(BaseModel):
    """Payload accepted when adding a book to the catalog."""

    title: str
    author: str
    genre: str
    description: str | None = None


class BookResponse(BaseModel):
    """Serialised representation of a ``Book``."""

    id: str
    title: str
    author: str
    genre: str
    description: str | None
    created_by: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, book: Book) -> "BookResponse":
        return cls(
            id=book.book_id,
            title=book.title,
            author=book.author,
            genre=book.genre,
            description=book.description,
            created_by=book.created_by,
            created_at=isoformat(book.created_at),
            updated_at=isoformat(book.updated_at),
        )


class CreateBookResponse(BaseModel):
    message: str = "book created successfully"
    book: BookResponse


@dataclass(frozen=True, slots=True)
class Authorization:
    """Principal plus the instant its token was accepted."""

    principal: Principal
    authorized_at: datetime


def get_account_service(request: Request) -> AccountService:
    """Resolve the ``AccountService`` stored on the FastAPI application state."""
    return request.app.state.account_service


def get_book_service(request: Request) -> BookService:
    return request.app.state.book_service


def get_clock(request: Request) -> Callable[[], datetime]:
    return getattr(request.app.state, "clock", utc_now)


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def require_principal(
    request: Request,
    authorization: str | None = Header(default=None),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> Authorization:
    """Authenticate the bearer token on a protected request."""
    guard: AccessGuard = request.app.state.access_guard
    now = clock()
    principal = guard.authenticate(authorization, now)
    return Authorization(principal=principal, authorized_at=now)


def _enforce_rate_limit(limiter: RateLimiter, action: str, email: str) -> None:
    if not limiter.allow(action, email):
        logger.warning("%s rate limit exceeded", action)
        raise RateLimited()


@router.get("/health", tags=["health"])
def health() -> dict[str, str]:
    """Return a minimal readiness indicator."""
    return {"status": "ok"}


@router.post(
    "/users/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: RegisterRequest,
    service: AccountService = Depends(get_account_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RegisterResponse:
    """Register an account; the password is hashed before it is stored."""
    _enforce_rate_limit(limiter, "register", payload.email)
    receipt = service.register(
        RegisterInput(
            display_name=payload.username,
            email=payload.email,
            password=payload.password,
        )
    )
    return RegisterResponse(email=receipt.email)


@router.post("/users/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_account_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> LoginResponse:
    """Exchange email and password for a signed bearer token."""
    _enforce_rate_limit(limiter, "login", payload.email)
    result = service.login(LoginInput(email=payload.email, password=payload.password), clock())
    limiter.reset("login", payload.email)
    return LoginResponse(
        token=result.token,
        expires_in=result.expires_in,
        user=UserSummary(id=result.account_id, email=result.email, name=result.display_name),
    )


@router.post(
    "/books",
    response_model=CreateBookResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_book(
    payload: CreateBookRequest,
    auth: Authorization = Depends(require_principal),
    service: BookService = Depends(get_book_service),
) -> CreateBookResponse:
    """Create a book attributed to the authenticated account."""
    book = service.create_book(
        auth.principal,
        CreateBookInput(
            title=payload.title,
            author=payload.author,
            genre=payload.genre,
            description=payload.description,
        ),
        auth.authorized_at,
    )
    return CreateBookResponse(book=BookResponse.from_domain(book))
