"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the Q&A admin backend.
Controllers are intentionally thin: they accept validated requests,
delegate to services, and return JSON responses.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET /users
- POST, GET /categories; GET /categories/latest;
  GET, PUT, DELETE /categories/{id}
- POST, GET /avatars; GET, PUT, DELETE /avatars/{id}
- POST, GET /qa; GET, PUT, DELETE /qa/{id}
- GET /health
"""

import json
import logging
import time
import uuid
from typing import Annotated, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from sqlmodel import Session

from . import models, schemas, services
from .auth import get_current_user
from .config import settings
from .database import create_db_and_tables, get_session
from .utils.rate_limit import InMemoryRateLimiter

app = FastAPI(title="Q&A Admin API")
logger = logging.getLogger("qa_admin.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)
login_rate_limiter = InMemoryRateLimiter()

# ids beyond a signed 64-bit integer cannot reach the store
RowIdPath = Annotated[int, Path(ge=1, le=schemas.MAX_ROW_ID)]

# Wide-open CORS keeps a locally served admin frontend working without extra config in dev.
if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    context = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(context, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    context["status_code"] = response.status_code
    context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(context, ensure_ascii=True))
    return response


def _error_response(status_code: int, detail: str, errors: Optional[list] = None) -> JSONResponse:
    body = schemas.ErrorOut(detail=detail, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.model_dump())


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [{"field": _field_name(e.get("loc", ())), "message": e.get("msg", "invalid value")} for e in exc.errors()]
    detail = errors[0]["message"] if errors else "invalid request"
    return _error_response(422, detail, errors)


@app.exception_handler(services.InvalidReferenceError)
async def invalid_reference_handler(request: Request, exc: services.InvalidReferenceError):
    return _error_response(422, exc.message, [{"field": exc.field, "message": exc.message}])


@app.exception_handler(services.NotFoundError)
async def not_found_handler(request: Request, exc: services.NotFoundError):
    return _error_response(404, str(exc))


@app.exception_handler(services.PersistenceError)
async def persistence_error_handler(request: Request, exc: services.PersistenceError):
    status_code = 409 if isinstance(exc, services.ConflictError) else 500
    return _error_response(status_code, str(exc))


def _enforce_login_rate_limit(request: Request) -> None:
    key = f"{request.client.host if request.client else 'unknown'}:{request.url.path}"
    allowed, retry_after = login_rate_limiter.allow(
        key, settings.LOGIN_RATE_LIMIT_PER_MIN, settings.LOGIN_RATE_LIMIT_WINDOW_SECONDS
    )
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail=f"rate limit exceeded; retry after {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


@app.post('/auth/register', response_model=schemas.UserOut)
def register(payload: schemas.RegisterIn, db: Session = Depends(get_session)):
    """Register a new admin user (idempotent).

    Returns the existing user if the username is already taken.
    """
    user = services.AuthService(db).register(payload.username, payload.password)
    return schemas.UserOut.model_validate(user)


@app.post('/auth/login', response_model=schemas.TokenOut)
def login(payload: schemas.RegisterIn, request: Request, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id` and `username` and is signed
    using the configured JWT secret.
    """
    _enforce_login_rate_limit(request)
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return schemas.TokenOut(access_token=token)


@app.get('/users', response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return [schemas.UserOut.model_validate(u) for u in services.AuthService(db).list_users()]


# Categories

@app.post('/categories', response_model=schemas.CategoryOut, status_code=201)
def create_category(payload: schemas.CategoryIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    row = services.CategoryService(db).create(payload)
    return schemas.CategoryOut.model_validate(row)


@app.get('/categories', response_model=List[schemas.CategoryOut])
def list_categories(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List every category, sorted by name ascending."""
    return [schemas.CategoryOut.model_validate(c) for c in services.CategoryService(db).list_all()]


@app.get('/categories/latest', response_model=Optional[schemas.CategoryOut])
def latest_category(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Return the most recently created category, or null when there are none."""
    row = services.CategoryService(db).latest()
    return schemas.CategoryOut.model_validate(row) if row else None


@app.get('/categories/{category_id}', response_model=schemas.CategoryOut)
def get_category(category_id: RowIdPath, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return schemas.CategoryOut.model_validate(services.CategoryService(db).get(category_id))


@app.put('/categories/{category_id}', response_model=schemas.CategoryOut)
def update_category(category_id: RowIdPath, payload: schemas.CategoryIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Overwrite a category. An omitted `image` clears the stored one."""
    row = services.CategoryService(db).update(category_id, payload)
    return schemas.CategoryOut.model_validate(row)


@app.delete('/categories/{category_id}', response_model=schemas.CategoryOut)
def delete_category(category_id: RowIdPath, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Delete a category and return it.

    Categories still referenced by questions are refused with 409.
    """
    return schemas.CategoryOut.model_validate(services.CategoryService(db).delete(category_id))


# Avatars

@app.post('/avatars', response_model=schemas.AvatarOut, status_code=201)
def create_avatar(payload: schemas.AvatarIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return schemas.AvatarOut.model_validate(services.AvatarService(db).create(payload))


@app.get('/avatars', response_model=List[schemas.AvatarOut])
def list_avatars(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List every avatar, sorted by id ascending."""
    return [schemas.AvatarOut.model_validate(a) for a in services.AvatarService(db).list_all()]


@app.get('/avatars/{avatar_id}', response_model=schemas.AvatarOut)
def get_avatar(avatar_id: RowIdPath, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return schemas.AvatarOut.model_validate(services.AvatarService(db).get(avatar_id))


@app.put('/avatars/{avatar_id}', response_model=schemas.AvatarOut)
def update_avatar(avatar_id: RowIdPath, payload: schemas.AvatarIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return schemas.AvatarOut.model_validate(services.AvatarService(db).update(avatar_id, payload))


@app.delete('/avatars/{avatar_id}', response_model=schemas.AvatarOut)
def delete_avatar(avatar_id: RowIdPath, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return schemas.AvatarOut.model_validate(services.AvatarService(db).delete(avatar_id))


# Questions

@app.post('/qa', response_model=schemas.QAOut, status_code=201)
def create_question(payload: schemas.QAIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Create an active question in an existing category."""
    return schemas.QAOut.model_validate(services.QAService(db).create(payload))


@app.get('/qa', response_model=List[schemas.QAOut])
def list_questions(db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """List every question with its category, newest first."""
    return [schemas.QAOut.model_validate(q) for q in services.QAService(db).list_all()]


@app.get('/qa/{question_id}', response_model=schemas.QAOut)
def get_question(question_id: RowIdPath, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return schemas.QAOut.model_validate(services.QAService(db).get(question_id))


@app.put('/qa/{question_id}', response_model=schemas.QAOut)
def update_question(question_id: RowIdPath, payload: schemas.QAUpdate, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Overwrite every field of a question, `is_active` included."""
    return schemas.QAOut.model_validate(services.QAService(db).update(question_id, payload))


@app.delete('/qa/{question_id}', response_model=schemas.QAOut)
def delete_question(question_id: RowIdPath, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    return schemas.QAOut.model_validate(services.QAService(db).delete(question_id))


@app.get("/", response_class=HTMLResponse)
def home():
    """Minimal homepage for quick manual testing."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="UTF-8" />
      <title>Q&amp;A Admin API</title>
      <style>
        body { font-family: Arial, sans-serif; margin: 32px; }
        a { color: #0a6; }
        .card { max-width: 640px; padding: 16px; border: 1px solid #ddd; border-radius: 8px; }
      </style>
    </head>
    <body>
      <div class="card">
        <h1>Q&amp;A Admin API</h1>
        <ul>
          <li><a href="/docs">Swagger UI</a></li>
        </ul>
        <p>Use <code>/auth/register</code> + <code>/auth/login</code> to get a token, then manage
        <code>/categories</code>, <code>/avatars</code> and <code>/qa</code>.</p>
      </div>
    </body>
    </html>
    """


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
