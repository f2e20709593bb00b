import logging
from functools import wraps
from typing import Optional
from fastapi import HTTPException, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from datahub.errors import ApiError, database_error_message

logger = logging.getLogger(__name__)


def error_handler(context: str):
    """Render route failures as ``{"error": ...}`` responses.

    Caller mistakes keep their own status and message. Anything else is logged
    in full and reported as a 500 whose message is ``"<context>: <classified>"``.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ApiError as e:
                return build_error_response(e.status_code, e.message)
            except HTTPException as e:
                return build_error_response(e.status_code, e.detail)
            except Exception as e:
                logger.exception(f"{context}")
                return build_error_response(
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    f"{context}: {database_error_message(e)}",
                )

        return wrapper

    return decorator


def build_error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def build_ok_response(
    data: Optional[BaseModel] = None, status_code: int = status.HTTP_200_OK
) -> Response:
    if data is None:
        return Response(status_code=status_code)
    return JSONResponse(status_code=status_code, content=data.model_dump(mode="json"))
