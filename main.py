import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from errors import InternalError, ServiceError, ValidationError
from routes import auth_router, equipment_router, maintenance_router, parts_router
from settings import CORS_ORIGINS, LOG_LEVEL, UPLOAD_DIR
from validation import format_error

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        try:
            database.init_indexes(database.db)
        except PyMongoError:
            logger.exception("Could not ensure indexes; continuing without them")
    else:
        logger.warning("DATABASE_URL is not set; API calls will fail with 500")
    yield


app = FastAPI(title="Farm Equipment Tracker", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    logger.error("Storage error on %s %s", request.method, request.url.path, exc_info=exc)
    error = InternalError("Storage unavailable")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    error = ValidationError([format_error(e) for e in exc.errors()])
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


app.include_router(auth_router, prefix="/api/auth", tags=["Auth"])
app.include_router(equipment_router, prefix="/api/equipment", tags=["Equipment"])
app.include_router(parts_router, prefix="/api/parts", tags=["Parts"])
app.include_router(maintenance_router, prefix="/api/maintenance", tags=["Maintenance"])

os.makedirs(UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")

static_path = os.path.join(os.path.dirname(__file__), "static")
app.mount("/app", StaticFiles(directory=static_path, html=True), name="app")


@app.get("/")
def read_root():
    return {"message": "Farm Equipment Tracker API running", "client": "/app/"}


@app.get("/api/health")
def health():
    response = {
        "backend": "running",
        "database": "not configured",
        "database_name": None,
        "collections": [],
    }
    if database.db is not None:
        response["database_name"] = database.db.name
        try:
            response["collections"] = database.db.list_collection_names()[:10]
            response["database"] = "connected"
        except PyMongoError as e:
            response["database"] = f"error: {str(e)[:50]}"
    return response


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
