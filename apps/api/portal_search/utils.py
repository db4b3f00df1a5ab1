"""Shared utilities."""

from fastapi.responses import JSONResponse

from portal_search.schemas import ErrorResponse


def normalize_embedding(vec: list[float], dim: int) -> list[float]:
    """Truncate or zero-pad vector to fixed dimension (must match document_chunks.embedding)."""
    if len(vec) < dim:
        return vec[:dim] + [0.0] * (dim - len(vec))
    return vec[:dim]


def error_response(status_code: int, message: str) -> JSONResponse:
    """The {success: false, error} envelope used by every endpoint."""
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())
