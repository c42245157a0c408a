import contextlib
import logging
from typing import Optional, Union

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

import admin
import auth
from config import Settings, get_settings
from content import get_unit_content, list_units
from database import COLLECTIONS, connect, get_db, normalize_unit_numbers
from errors import ApiError, NotFoundError
from schemas import ApiUnitResponse, ApiUnitsResponse, SCHEMA_DEFS

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings):
    logging.basicConfig(level=settings.log_level.upper(), format='%(asctime)s - %(levelname)s - %(message)s')


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    """
    Build the API. Settings are read once here; pass db to run against an
    already-open database (tests) instead of connecting to DATABASE_URL.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        client = None
        if db is None:
            client, app.state.db = connect(settings)
            logger.info(f"Connected to database {settings.database_name}")
        if settings.normalize_unit_numbers:
            normalize_unit_numbers(app.state.db)
        yield
        if client is not None:
            client.close()

    app = FastAPI(title="Course Content Admin API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db

    app.middleware("http")(auth.admin_guard)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = errors[0]["msg"].removeprefix("Value error, ") if errors else "Invalid request"
        return JSONResponse(
            status_code=422,
            content={"error": message, "details": [{"loc": list(e["loc"]), "msg": e["msg"]} for e in errors]},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    app.include_router(auth.router)
    app.include_router(admin.router)

    @app.get("/")
    def root():
        return {"name": "Course Content Admin API", "status": "ok"}

    @app.get("/schema")
    def get_schema():
        return SCHEMA_DEFS

    @app.get("/test")
    def test_database(request: Request):
        response = {
            "backend": "✅ Running",
            "database": "❌ Not Available",
            "database_name": settings.database_name,
            "connection_status": "Not Connected",
            "collections": []
        }
        database = request.app.state.db
        try:
            if database is not None:
                response["database"] = "✅ Available"
                response["connection_status"] = "Connected"
                names = database.list_collection_names()
                response["collections"] = [n for n in names if n in COLLECTIONS]
        except Exception as e:
            response["database"] = f"⚠️ Error: {str(e)[:100]}"
        return response

    # Read API for external apps (not behind the admin session)
    @app.get("/units", response_model=Union[ApiUnitsResponse, ApiUnitResponse])
    def get_units(unit: Optional[int] = Query(None, ge=1), db: Database = Depends(get_db)):
        if unit is None:
            return {"units": list_units(db)}
        unit_data = get_unit_content(db, unit)
        if unit_data is None:
            raise NotFoundError("Unit not found")
        return unit_data

    return app


# The database connection is opened in lifespan, so building the app at import is cheap
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
