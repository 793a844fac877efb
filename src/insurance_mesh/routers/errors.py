"""Translation of mesh errors into HTTP errors.

Every error body has the shape ``{"error": {"code", "message", "details"}}``.
"""

import logging

from fastapi import HTTPException

from insurance_mesh.errors import MeshError

logger = logging.getLogger(__name__)

STATUS_CODES = {
    "unknown_action": 404,
    "unknown_agent": 404,
    "duplicate_action": 409,
    "duplicate_agent": 409,
    "ambiguous_action": 409,
    "cancelled": 409,
    "argument_error": 422,
    "incomplete_arguments": 422,
    "no_matching_action": 422,
    "action_failed": 500,
    "agent_unreachable": 502,
}


def to_http_exception(error: MeshError) -> HTTPException:
    """Build the HTTPException for a mesh error."""
    status_code = STATUS_CODES.get(error.code, 500)
    if status_code >= 500:
        logger.error(f"{error.code}: {error.message}")
    else:
        logger.debug(f"{error.code}: {error.message}")
    return HTTPException(status_code=status_code, detail={"error": error.to_dict()})
