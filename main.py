import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Body, Depends, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError
from pymongo.errors import DuplicateKeyError, PyMongoError
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

import auth
import database
from auth import Capability, get_current_admin
from database import (
    create_document,
    delete_document,
    get_document,
    get_document_by_id,
    get_documents,
    parse_object_id,
    update_document,
)
from errors import NotFound, RateLimited, UnsupportedMediaType, ValidationError
from ratelimit import limiter, login_rate_limit
from resources import RESOURCES, BlogResource, Collection, Resource
from schemas import LoginRequest, ReorderRequest, Token, UploadResult
from uploads import DEFAULT_FOLDER, MAX_UPLOAD_BYTES, upload_image

logger = logging.getLogger("portfolio")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGIN", "http://localhost:3000").split(",") if o.strip()]

LOGIN_PATH = "/api/admin/login"


# ==================
# FastAPI app config
# ==================
@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        database.ensure_indexes()
    except PyMongoError:
        logger.exception("MongoDB unavailable at start-up")
        raise
    yield


app = FastAPI(title="Portfolio API", lifespan=lifespan)


app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# added after the limiter so 429 responses still carry CORS headers
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# ==============
# Error handling
# ==============
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    body = {"message": exc.detail}
    body.update(getattr(exc, "extra", None) or {})
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


# must stay sync, SlowAPIMiddleware calls it without awaiting
@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    key = request.client.host if request.client else "unknown"
    if request.url.path == LOGIN_PATH:
        logger.info("Login rate limit hit for %s", key)
        error = RateLimited("Too many login attempts")
    else:
        logger.info("Rate limit hit for %s", key)
        error = RateLimited()
    return JSONResponse({"message": error.detail}, status_code=error.status_code)


def describe_errors(errors) -> str:
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query"))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "Invalid value"))
    return "; ".join(parts) or "Invalid request"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"message": describe_errors(exc.errors())}, status_code=400)


@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: PyMongoError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"message": "Database error"}, status_code=500)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"message": "Internal server error"}, status_code=500)


# =========
# Utilities
# =========
def validate_document(resource: Resource, data: dict) -> dict:
    try:
        return resource.schema.model_validate(data).model_dump()
    except SchemaError as e:
        raise ValidationError(describe_errors(e.errors()))


def check_unique(resource: Resource, data: dict, exclude_id: Optional[str] = None):
    for field in resource.unique_fields:
        query = {field: data.get(field)}
        if exclude_id:
            query["_id"] = {"$ne": parse_object_id(exclude_id)}
        if get_document(resource.name, query):
            raise ValidationError(f"{field} '{data.get(field)}' already exists")


def query_filters(resource: Resource, request: Request) -> dict:
    filters = {}
    for field in resource.query_filters:
        value = request.query_params.get(field)
        if not value:
            continue
        annotation = resource.schema.model_fields[field].annotation
        try:
            filters[field] = TypeAdapter(annotation).validate_python(value)
        except SchemaError as e:
            raise ValidationError(f"{field}: {describe_errors(e.errors())}")
    return filters


def collection_router(resource: Resource) -> APIRouter:
    """CRUD + reorder routes shared by every collection."""
    router = APIRouter(prefix=f"/api/{resource.collection.value}", tags=[resource.collection.value])
    schema = resource.schema
    name = resource.name

    # registered before /{item_id} so "reorder" is never taken for an id
    @router.put("/reorder")
    def reorder_items(payload: ReorderRequest, _: Capability = Depends(get_current_admin)):
        failed = []
        for item in payload.items:
            # independent writes, nothing is rolled back
            if update_document(name, item.id, {"order": item.order}) is None:
                failed.append(item.id)
        if failed:
            logger.warning("Reorder of %s left %d item(s) unchanged", name, len(failed))
            raise ValidationError("Some items could not be reordered", failed=failed)
        return {"message": "Updated", "updated": len(payload.items)}

    if not isinstance(resource, BlogResource):
        @router.get("")
        def list_items(request: Request):
            return get_documents(name, query_filters(resource, request), sort=resource.sort)

    @router.post("", status_code=201)
    def create_item(payload: schema, _: Capability = Depends(get_current_admin)):
        data = payload.model_dump()
        resource.before_save(data, previous=None, supplied=payload.model_dump(exclude_unset=True))
        check_unique(resource, data)
        try:
            new_id = create_document(name, data)
        except DuplicateKeyError:
            raise ValidationError("Duplicate value for a unique field")
        return get_document_by_id(name, new_id)

    @router.put("/{item_id}")
    def update_item(item_id: str, payload: dict = Body(...), _: Capability = Depends(get_current_admin)):
        existing = get_document_by_id(name, item_id)
        if not existing:
            raise NotFound()
        merged = {k: v for k, v in existing.items() if k in schema.model_fields}
        merged.update(payload)
        data = validate_document(resource, merged)
        resource.before_save(data, previous=existing, supplied=payload)
        check_unique(resource, data, exclude_id=item_id)
        try:
            updated = update_document(name, item_id, data)
        except DuplicateKeyError:
            raise ValidationError("Duplicate value for a unique field")
        if not updated:
            raise NotFound()
        return updated

    @router.delete("/{item_id}")
    def delete_item(item_id: str, _: Capability = Depends(get_current_admin)):
        if not delete_document(name, item_id):
            raise NotFound()
        return {"message": "Deleted"}

    return router


def blog_router(resource: BlogResource) -> APIRouter:
    router = collection_router(resource)

    @router.get("")
    def list_published_posts():
        return get_documents(resource.name, resource.public_filter, sort=resource.public_sort)

    @router.get("/all")
    def list_all_posts(_: Capability = Depends(get_current_admin)):
        return get_documents(resource.name, sort=resource.sort)

    @router.get("/{slug}")
    def get_post(slug: str):
        post = get_document(resource.name, {"slug": slug.lower(), **resource.public_filter})
        if not post:
            raise NotFound()
        return post

    return router


# ======
# Routes
# ======
@app.get("/")
@limiter.exempt
def root():
    return {"status": "ok", "service": "portfolio-api"}


@app.get("/test")
@limiter.exempt
def test_database():
    collections = database.db.list_collection_names()
    return {"backend": "running", "database": database.db.name, "collections": collections[:10]}


@app.get("/api/health")
def health():
    return {"status": "OK"}


# Auth
@app.post(LOGIN_PATH, response_model=Token)
@limiter.limit(login_rate_limit)
def login(request: Request, data: LoginRequest):
    return Token(token=auth.login(data.password))


# Uploads
@app.post("/api/upload", response_model=UploadResult)
async def upload(
    image: UploadFile = File(...),
    folder: str = DEFAULT_FOLDER,
    _: Capability = Depends(get_current_admin),
):
    if not (image.content_type or "").startswith("image/"):
        raise UnsupportedMediaType()
    data = await image.read(MAX_UPLOAD_BYTES + 1)
    if not data:
        raise ValidationError("No image file provided")
    if len(data) > MAX_UPLOAD_BYTES:
        raise ValidationError("Image exceeds the 10MB limit")
    return await run_in_threadpool(upload_image, data, folder)


# Content collections
for _collection, _resource in RESOURCES.items():
    if _collection is Collection.BLOG:
        app.include_router(blog_router(_resource))
    else:
        app.include_router(collection_router(_resource))


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    port = int(os.getenv("PORT", 5002))
    uvicorn.run(app, host="0.0.0.0", port=port)
