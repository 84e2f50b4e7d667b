"""
FastAPI main application for the Book Review API.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.auth import (
    RateLimiter, SessionStore, client_key, get_rate_limit_headers,
    rate_limit, require_identity,
)
from api.config import APIConfig, config as default_api_config
from api.models import (
    APIResponse, BookListData, BookResponse, HealthResponse,
    LoginRequest, RegisterRequest, ReviewRequest, ReviewsData, TokenData,
)
from api.responses import send_error, send_success
from library.accounts import AccountStore
from library.catalog import CatalogStore
from library.errors import (
    AlreadyExists, InternalFailure, LibraryError, LoginFailed,
    NotFound, RateLimitExceeded,
)
from library.models import Identity
from library.reviews import ReviewWorkflow
from library.tokens import TokenAuthenticator
from utilities.config import LibraryConfig, config as default_library_config
from utilities.logger import AuditLogger

# Setup logging
logger = structlog.get_logger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}

DESCRIPTION = """
A small REST API for reviewing books from a fixed catalog.

## Features

* **Accounts**: register and log in with a username and password
* **Catalog**: browse books by id, author or title
* **Reviews**: one review per user per book; only the author may delete it

## Authentication

Log in to receive a signed token valid for one hour. Depending on deployment,
send it back as a bearer token:

```
Authorization: Bearer your_token_here
```

or rely on the `sessionId` cookie set by the login response.
"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(
        "Starting Book Review API",
        books=app.state.catalog.count(),
        auth_transport=app.state.api_config.auth_transport,
    )

    yield

    logger.info("Shutting down Book Review API")


router = APIRouter()


# Health check endpoint (no authentication or rate limit)
@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=request.app.state.api_config.api_version,
        books=request.app.state.catalog.count(),
        accounts=request.app.state.accounts.count(),
    )


# Account endpoints. Hashing is CPU-bound, so these run on the threadpool.
@router.post(
    "/register",
    response_model=APIResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit(
        "registration", "Too many registration attempts, please try again later."
    ))],
    tags=["Accounts"],
)
def register(body: RegisterRequest, request: Request):
    """
    Register a new account.

    - **username**: letters and digits, 1-30 characters
    - **password**: at least 8 characters with upper-case, lower-case and a digit
    """
    accounts: AccountStore = request.app.state.accounts
    audit: AuditLogger = request.app.state.audit

    if accounts.exists(body.username):
        audit.log_registration(body.username, success=False, reason="exists")
        raise AlreadyExists()

    if not accounts.create(body.username, body.password):
        if accounts.exists(body.username):
            audit.log_registration(body.username, success=False, reason="exists")
            raise AlreadyExists()
        audit.log_registration(body.username, success=False, reason="internal")
        raise InternalFailure("Failed to register user")

    audit.log_registration(body.username, success=True)
    return send_success(message="User registered successfully!")


@router.post("/login", response_model=APIResponse, response_model_exclude_none=True, tags=["Accounts"])
def login(body: LoginRequest, request: Request, response: Response):
    """
    Log in and receive a signed access token.

    Only failed attempts count towards the login rate limit.
    """
    state = request.app.state
    api_config: APIConfig = state.api_config
    limiter: RateLimiter = state.rate_limiters["login"]
    key = f"{client_key(request)}:{body.username}"

    if limiter.is_limited(key):
        raise RateLimitExceeded(
            "Too many authentication attempts, please try again later.",
            retry_after=limiter.window_seconds,
            headers=get_rate_limit_headers(limiter, key),
        )

    if not state.accounts.authenticate(body.username, body.password):
        limiter.record(key)
        state.audit.log_login(body.username, success=False)
        raise LoginFailed()

    credential = state.authenticator.issue(body.username)

    if api_config.auth_transport == "session":
        # A re-login replaces the caller's previous session
        state.sessions.destroy(request.cookies.get(api_config.session_cookie_name))
        session_id = state.sessions.create(credential.token, body.username)
        response.set_cookie(
            key=api_config.session_cookie_name,
            value=session_id,
            max_age=api_config.session_max_age,
            httponly=True,
            secure=api_config.session_secure,
            samesite="strict",
        )

    state.audit.log_login(body.username, success=True)
    token_data = TokenData(token=credential.token, expires_at=credential.expires_at)
    return send_success(token_data.model_dump(), "Login successful")


@router.post("/logout", response_model=APIResponse, response_model_exclude_none=True, tags=["Accounts"])
async def logout(request: Request, response: Response):
    """
    Log out.

    Destroys the server-held session; bearer tokens cannot be revoked and
    simply expire.
    """
    state = request.app.state
    api_config: APIConfig = state.api_config
    username = None

    if api_config.auth_transport == "session":
        session_id = request.cookies.get(api_config.session_cookie_name)
        username = state.sessions.get_username(session_id)
        state.sessions.destroy(session_id)
        response.delete_cookie(api_config.session_cookie_name)

    state.audit.log_logout(username)
    return send_success(message="Logout successful")


# Book endpoints
books_router = APIRouter(
    prefix="/books",
    tags=["Books"],
    dependencies=[Depends(rate_limit("books", "Too many book operations, please slow down."))],
)


@books_router.get("", response_model=APIResponse, response_model_exclude_none=True)
async def get_books(request: Request):
    """Get every book in the catalog."""
    books = request.app.state.catalog.list_all()
    data = BookListData(books=[BookResponse.from_book(book) for book in books])
    return send_success(data.model_dump(), "Books retrieved successfully")


@books_router.get("/author/{author}", response_model=APIResponse, response_model_exclude_none=True)
async def get_books_by_author(author: str, request: Request):
    """Get books by author (exact, case-sensitive match)."""
    books = request.app.state.catalog.get_by_author(author)
    if not books:
        raise NotFound("No books found by this author")

    data = BookListData(books=[BookResponse.from_book(book) for book in books])
    return send_success(data.model_dump(), "Books retrieved successfully")


@books_router.get("/title/{title}", response_model=APIResponse, response_model_exclude_none=True)
async def get_books_by_title(title: str, request: Request):
    """Get books by title (whole title, any case)."""
    books = request.app.state.catalog.get_by_title(title)
    if not books:
        raise NotFound("No books found with this title")

    data = BookListData(books=[BookResponse.from_book(book) for book in books])
    return send_success(data.model_dump(), "Books retrieved successfully")


@books_router.get("/{book_id}", response_model=APIResponse, response_model_exclude_none=True)
async def get_book(book_id: str, request: Request):
    """
    Get a single book by ID.

    - **book_id**: Catalog key
    """
    book = request.app.state.catalog.get_by_id(book_id)
    if book is None:
        raise NotFound("Book not found")

    return send_success(BookResponse.from_book(book).model_dump(), "Book retrieved successfully")


@books_router.get("/{book_id}/reviews", response_model=APIResponse, response_model_exclude_none=True)
async def get_book_reviews(book_id: str, request: Request):
    """Get every review of a book."""
    reviews = request.app.state.catalog.get_reviews(book_id)
    if reviews is None:
        raise NotFound("Book not found")
    if not reviews:
        raise NotFound("No reviews found for this book")

    return send_success(ReviewsData(reviews=reviews).model_dump(), "Reviews retrieved successfully")


@books_router.put("/{book_id}/reviews", response_model=APIResponse, response_model_exclude_none=True)
async def add_book_review(
    book_id: str,
    body: ReviewRequest,
    request: Request,
    identity: Identity = Depends(require_identity),
):
    """
    Add or replace your review of a book.

    Requires authentication. A second review by the same user overwrites the first.
    """
    workflow: ReviewWorkflow = request.app.state.reviews
    try:
        workflow.add_review(identity, book_id, body.review)
    except LibraryError:
        request.app.state.audit.log_review_change("add", book_id, identity.username, success=False)
        raise

    request.app.state.audit.log_review_change("add", book_id, identity.username, success=True)
    return send_success(message="Review added successfully")


@books_router.delete("/{book_id}/reviews", response_model=APIResponse, response_model_exclude_none=True)
async def delete_book_review(
    book_id: str,
    request: Request,
    identity: Identity = Depends(require_identity),
):
    """
    Delete your review of a book.

    Requires authentication. Only the caller's own review can be deleted.
    """
    workflow: ReviewWorkflow = request.app.state.reviews
    try:
        workflow.delete_review(identity, book_id)
    except LibraryError:
        request.app.state.audit.log_review_change("delete", book_id, identity.username, success=False)
        raise

    request.app.state.audit.log_review_change("delete", book_id, identity.username, success=True)
    return send_success(message="Review deleted successfully")


def _register_exception_handlers(app: FastAPI) -> None:
    """Map every failure onto the response envelope."""

    def include_error(request: Request) -> bool:
        return request.app.state.library_config.is_development()

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        """Handle taxonomy errors raised by the workflow and auth layer."""
        headers = dict(getattr(request.state, "rate_limit_headers", {}))
        if isinstance(exc, RateLimitExceeded):
            headers.update(exc.headers)
            headers["Retry-After"] = str(exc.retry_after)
        return send_error(
            exc.message,
            exc.status_code,
            error={"type": type(exc).__name__, "detail": exc.detail},
            include_error=include_error(request),
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions, including unknown routes."""
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == status.HTTP_404_NOT_FOUND and message == "Not Found":
            message = f"Route not found: {request.url.path}"
        return send_error(message, exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request body and parameter validation errors."""
        errors = exc.errors()
        missing = [str(err["loc"][-1]) for err in errors if err.get("type") == "missing"]
        if missing:
            message = f"Missing required field(s): {', '.join(missing)}"
        else:
            message = ", ".join(str(err.get("msg", "")).removeprefix("Value error, ") for err in errors)
        # Drop "input" and "ctx": they echo submitted passwords and hold exception objects
        details = [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in errors]
        return send_error(
            message or "Validation failed",
            status.HTTP_400_BAD_REQUEST,
            error=details,
            include_error=include_error(request),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return send_error(
            InternalFailure.default_message,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            error={"type": type(exc).__name__, "detail": str(exc)},
            include_error=include_error(request),
        )


def create_app(
    api_settings: Optional[APIConfig] = None,
    library_settings: Optional[LibraryConfig] = None,
) -> FastAPI:
    """
    Build the application with its own stores.

    Args:
        api_settings: HTTP-layer settings (defaults to the global APIConfig)
        library_settings: Core settings (defaults to the global LibraryConfig)
    """
    api_settings = api_settings or default_api_config
    library_settings = library_settings or default_library_config

    app = FastAPI(
        title=api_settings.api_title,
        description=DESCRIPTION,
        version=api_settings.api_version,
        license_info={
            "name": "MIT",
            "url": "https://opensource.org/licenses/MIT",
        },
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        dependencies=[Depends(rate_limit("general", "Too many requests from this IP, please try again later."))],
    )

    if library_settings.environment == "production" and not api_settings.secret_key_from_environment():
        logger.warning("Using a generated signing secret in production; set SECRET_KEY")

    app.state.api_config = api_settings
    app.state.library_config = library_settings
    app.state.audit = AuditLogger().bind_context(service=api_settings.api_title)
    app.state.accounts = AccountStore(hash_rounds=library_settings.password_hash_rounds)
    app.state.catalog = CatalogStore()
    app.state.reviews = ReviewWorkflow(app.state.catalog)
    app.state.authenticator = TokenAuthenticator(
        secret_key=api_settings.secret_key,
        algorithm=api_settings.algorithm,
        lifetime=timedelta(minutes=api_settings.access_token_expire_minutes),
    )
    app.state.sessions = SessionStore(max_age_seconds=api_settings.session_max_age)
    app.state.rate_limiters = {
        "general": RateLimiter(api_settings.rate_limit_max, api_settings.rate_limit_window, "general"),
        "login": RateLimiter(api_settings.login_rate_limit_max, api_settings.login_rate_limit_window, "login"),
        "registration": RateLimiter(
            api_settings.registration_rate_limit_max,
            api_settings.registration_rate_limit_window,
            "registration",
        ),
        "books": RateLimiter(api_settings.books_rate_limit_max, api_settings.books_rate_limit_window, "books"),
    }

    if library_settings.seed_default_account:
        app.state.accounts.create(
            library_settings.default_account_username,
            library_settings.default_account_password,
        )
        if not library_settings.default_account_password_from_environment():
            logger.warning(
                "Seeded default account with a generated password; set DEFAULT_ACCOUNT_PASSWORD to log in as it",
                username=library_settings.default_account_username,
            )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=api_settings.cors_origins,
        allow_credentials=api_settings.cors_allow_credentials,
        allow_methods=api_settings.cors_allow_methods,
        allow_headers=api_settings.cors_allow_headers,
    )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response

    _register_exception_handlers(app)
    app.include_router(router)
    app.include_router(books_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=default_api_config.host,
        port=default_api_config.port,
        reload=default_library_config.debug,
        log_level="info"
    )
