import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.middleware.base import BaseHTTPMiddleware

from auth import issue_token, request_settings, require_admin, require_auth, require_owner_or_admin
from config import Settings, get_settings
from database import Stores, connect
from errors import NotFoundError, TravelBlogError, ValidationError, store_errors
from schemas import (
    Account,
    BlogPost,
    BlogRequest,
    Booking,
    BookingRequest,
    Claims,
    LoginRequest,
    SignupRequest,
    missing,
)

logger = logging.getLogger(__name__)


# Logging

def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration. Bodies and headers are never logged."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logging.getLogger("travel_blog.access").log(
            level, "%s %s %d %.1fms", request.method, request.url.path, status, duration_ms
        )
        return response


# Dependencies

def get_stores(request: Request) -> Stores:
    return request.app.state.stores


# Exception handlers

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(TravelBlogError)
    async def handle_app_error(request: Request, exc: TravelBlogError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_bad_body(request: Request, exc: RequestValidationError):
        logger.info("Malformed body on %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"message": "Invalid request body"})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


# Routes

def register_routes(app: FastAPI) -> None:

    @app.get("/")
    def root(stores: Stores = Depends(get_stores)):
        return {"message": "Travel Blog API running", "database": stores.backend}

    # Auth

    @app.post("/api/signup", status_code=201)
    def signup(payload: SignupRequest, stores: Stores = Depends(get_stores)):
        if missing(payload.name, payload.email, payload.password):
            raise ValidationError("All fields are required")
        account = Account(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            role=payload.role or "user",
        )
        with store_errors("Error registering user"):
            stores.accounts.create(account)
        logger.info("Registered account %s (%s)", account.email, account.role)
        return {"message": "User registered successfully"}

    @app.post("/api/login")
    def login(
        payload: LoginRequest,
        stores: Stores = Depends(get_stores),
        settings: Settings = Depends(request_settings),
    ):
        with store_errors("Error logging in"):
            user = stores.accounts.find_by_email(payload.email) if payload.email else None
        if not user or payload.password is None or user.get("password") != payload.password:
            raise ValidationError("Invalid email or password")
        claims = Claims(name=user["name"], email=user["email"], role=user.get("role") or "user")
        token = issue_token(claims, settings)
        return {"message": "Login successful", "token": token, "user": claims.model_dump()}

    # Bookings

    @app.get("/api/bookings")
    def list_bookings(stores: Stores = Depends(get_stores)):
        with store_errors("Failed to fetch bookings"):
            return stores.bookings.list_all()

    @app.post("/api/bookings", status_code=201)
    def create_booking(
        payload: BookingRequest,
        claims: Claims = Depends(require_auth),
        stores: Stores = Depends(get_stores),
    ):
        if missing(payload.name, payload.email, payload.people, payload.city, payload.price):
            raise ValidationError("All fields required")
        booking = Booking(
            name=payload.name,
            email=payload.email,
            people=payload.people,
            city=payload.city,
            price=payload.price,
            user=claims.email,
        )
        with store_errors("Failed to save booking"):
            saved = stores.bookings.create(booking)
        return {"message": "Booking confirmed", "booking": saved}

    @app.get("/api/admin/bookings")
    def list_bookings_admin(
        claims: Claims = Depends(require_admin),
        stores: Stores = Depends(get_stores),
    ):
        with store_errors("Error fetching bookings"):
            return stores.bookings.list_all()

    @app.delete("/api/admin/bookings/{booking_id}")
    def delete_booking(
        booking_id: str,
        claims: Claims = Depends(require_admin),
        stores: Stores = Depends(get_stores),
    ):
        with store_errors("Error deleting booking"):
            deleted = stores.bookings.delete(booking_id)
        if not deleted:
            raise NotFoundError("Booking not found")
        logger.info("Booking %s deleted by %s", booking_id, claims.email)
        return {"message": "Booking cancelled successfully"}

    # Users (admin only)

    @app.get("/api/admin/users")
    def list_users(
        claims: Claims = Depends(require_admin),
        stores: Stores = Depends(get_stores),
    ):
        with store_errors("Error fetching users"):
            return stores.accounts.list_public()

    # Blogs

    @app.get("/api/blogs")
    def list_blogs(stores: Stores = Depends(get_stores)):
        with store_errors("Failed to fetch blogs"):
            return stores.blogs.list_recent()

    @app.post("/api/blogs", status_code=201)
    def create_blog(
        payload: BlogRequest,
        claims: Claims = Depends(require_auth),
        stores: Stores = Depends(get_stores),
    ):
        if missing(payload.title, payload.content):
            raise ValidationError("Title and content are required")
        post = BlogPost(
            title=payload.title,
            content=payload.content,
            author=claims.name,
            email=claims.email,
        )
        with store_errors("Error creating blog"):
            saved = stores.blogs.create(post)
        return {"message": "Blog created", "blog": saved}

    @app.delete("/api/blogs/{blog_id}")
    def delete_blog(
        blog_id: str,
        claims: Claims = Depends(require_auth),
        stores: Stores = Depends(get_stores),
    ):
        with store_errors("Error deleting blog"):
            blog = stores.blogs.get(blog_id)
            if not blog:
                raise NotFoundError("Blog not found")
            require_owner_or_admin(claims, blog.get("email"), "Not authorized to delete this blog")
            stores.blogs.delete(blog_id)
        return {"message": "Blog deleted"}


# App factory

def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    """Build the API around an explicit Settings object.

    `db` defaults to the MongoDB database named by the settings (or the
    in-memory store when no DATABASE_URL is configured).
    """
    settings = settings or get_settings()
    if db is None:
        db = connect(settings)
    stores = Stores.build(db)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        logger.info("Travel Blog API starting (database: %s)", stores.backend)
        try:
            stores.accounts.ensure_indexes()
        except PyMongoError as exc:
            logger.warning("Could not create unique index on users.email: %s", exc)
        yield
        if db is not None:
            db.client.close()
        logger.info("Shutdown complete")

    app = FastAPI(title="Travel Blog API", lifespan=lifespan)
    app.state.settings = settings
    app.state.stores = stores

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)
    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
