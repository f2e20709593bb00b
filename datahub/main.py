import logging
from contextlib import asynccontextmanager
from typing import Annotated, Optional
import uvicorn
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session

from datahub import config
from datahub.auth import require_api_key
from datahub.db.database import (
    create_dataset,
    delete_dataset,
    engine,
    get_dataset,
    get_dataset_stats,
    get_session,
    list_datasets,
    ping,
    update_dataset,
)
from datahub.db.search import (
    DEFAULT_LIMIT,
    clamp_limit,
    clamp_offset,
    parse_int,
    parse_search_request,
    search_datasets,
)
from datahub.errors import DatasetNotFound, NoFieldsToUpdate
from datahub.models import ApiKey
from datahub.models.service import (
    DatasetCreate,
    DatasetList,
    DatasetOut,
    DatasetUpdate,
)
from datahub.response import build_error_response, build_ok_response, error_handler

logger = logging.getLogger(__name__)

SessionDep = Annotated[Session, Depends(get_session)]
ApiKeyDep = Annotated[Optional[ApiKey], Depends(require_api_key)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    config.configure_logging()
    logger.info("DataHub API starting")
    yield
    engine.dispose()
    logger.info("DataHub API stopped")


app = FastAPI(title="DataHub API", version="0.1.0", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return build_error_response(exc.status_code, exc.detail)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first["loc"] if part != "body")
        message = f"Invalid request: {first['msg']}"
        if field:
            message = f"Invalid request: {field}: {first['msg']}"
    else:
        message = "Invalid request"
    return build_error_response(status.HTTP_400_BAD_REQUEST, message)


@app.get("/")
def root():
    return {"status": "ok"}


@app.get("/health")
def health_check(session: SessionDep):
    try:
        ping(session)
    except Exception:
        logger.exception("Health check failed")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "error": "Database connection failed"},
        )
    return {"status": "healthy"}


@app.get("/api/datasets/search")
@error_handler("Search failed")
def search_datasets_endpoint(
    session: SessionDep,
    _: ApiKeyDep,
    q: Optional[str] = None,
    source_type: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    owner: Optional[str] = None,
    tags: Optional[str] = None,
    fuzzy: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
):
    request = parse_search_request(
        q,
        source_type=source_type,
        status=status_filter,
        owner=owner,
        tags=tags,
        fuzzy=fuzzy,
        limit=limit,
        offset=offset,
    )
    return build_ok_response(search_datasets(session, request))


@app.get("/api/datasets/stats")
@error_handler("Failed to fetch stats")
def get_stats_endpoint(session: SessionDep, _: ApiKeyDep):
    return build_ok_response(get_dataset_stats(session))


@app.get("/api/datasets")
@error_handler("Failed to fetch datasets")
def list_datasets_endpoint(
    session: SessionDep,
    _: ApiKeyDep,
    source_type: Optional[str] = None,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    owner: Optional[str] = None,
    limit: Optional[str] = None,
    offset: Optional[str] = None,
):
    limit_value = clamp_limit(parse_int(limit, DEFAULT_LIMIT))
    offset_value = clamp_offset(parse_int(offset, 0))
    datasets, total = list_datasets(
        session,
        source_type=source_type,
        status=status_filter,
        owner=owner,
        limit=limit_value,
        offset=offset_value,
    )
    return build_ok_response(
        DatasetList(
            items=[DatasetOut.model_validate(d) for d in datasets],
            total=total,
            limit=limit_value,
            offset=offset_value,
        )
    )


@app.post("/api/datasets")
@error_handler("Failed to create dataset")
def create_dataset_endpoint(
    dataset: DatasetCreate, session: SessionDep, _: ApiKeyDep
):
    created = create_dataset(session, dataset)
    logger.info(f"Registered dataset {created.id} ({created.name})")
    return build_ok_response(
        DatasetOut.model_validate(created), status_code=status.HTTP_201_CREATED
    )


@app.get("/api/datasets/{dataset_id}")
@error_handler("Failed to fetch dataset")
def get_dataset_endpoint(dataset_id: str, session: SessionDep, _: ApiKeyDep):
    dataset = get_dataset(session, dataset_id)
    if dataset is None:
        raise DatasetNotFound()
    return build_ok_response(DatasetOut.model_validate(dataset))


@app.patch("/api/datasets/{dataset_id}")
@error_handler("Failed to update dataset")
def update_dataset_endpoint(
    dataset_id: str, updates: DatasetUpdate, session: SessionDep, _: ApiKeyDep
):
    fields = updates.model_dump(exclude_unset=True)
    if not fields:
        raise NoFieldsToUpdate()

    dataset = update_dataset(session, dataset_id, fields)
    if dataset is None:
        raise DatasetNotFound()
    return build_ok_response(DatasetOut.model_validate(dataset))


@app.delete("/api/datasets/{dataset_id}")
@error_handler("Failed to delete dataset")
def delete_dataset_endpoint(dataset_id: str, session: SessionDep, _: ApiKeyDep):
    if not delete_dataset(session, dataset_id):
        raise DatasetNotFound()
    logger.info(f"Deleted dataset {dataset_id}")
    return build_ok_response(status_code=status.HTTP_204_NO_CONTENT)


def start():
    """Start production server"""
    uvicorn.run(
        "datahub.main:app",
        host=config.HOST,
        port=config.PORT,
        proxy_headers=True,
        forwarded_allow_ips="*",
    )


def start_dev():
    """Start development server with hot reload"""
    uvicorn.run(
        "datahub.main:app",
        host=config.HOST,
        port=config.PORT,
        reload=True,
        reload_dirs=["datahub"],
    )


if __name__ == "__main__":
    start_dev()
