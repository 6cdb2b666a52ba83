from fastapi import HTTPException

from features.common.exceptions.game_exceptions import (
    GameError,
    InvalidRequestError,
    NotFoundError,
    PersistenceError
)

def to_http_exception(error: GameError) -> HTTPException:
    """Map a game error onto the HTTP status a client should see."""
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InvalidRequestError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=503, detail="Storage temporarily unavailable")
    return HTTPException(status_code=500, detail=str(error))
