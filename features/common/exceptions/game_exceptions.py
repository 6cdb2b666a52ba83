class GameError(Exception):
    """Base exception for game errors."""
    pass

class InvalidRequestError(GameError):
    """Raised when a request is rejected before any state changes."""
    pass

class StationNotFoundError(InvalidRequestError):
    """Raised when a city references an unknown tide station."""
    pass

class UnknownBuildingTypeError(InvalidRequestError):
    """Raised when a placement references an unknown building type."""
    pass

class PositionOccupiedError(InvalidRequestError):
    """Raised when a grid cell already holds a building."""
    pass

class OutOfBoundsError(InvalidRequestError):
    """Raised when a grid position lies outside the city grid."""
    pass

class InsufficientResourcesError(InvalidRequestError):
    """Raised when a city cannot afford a building."""
    pass

class NotFoundError(GameError):
    """Base exception for missing entities."""
    pass

class CityNotFoundError(NotFoundError):
    pass

class BuildingNotFoundError(NotFoundError):
    pass

class EventNotFoundError(NotFoundError):
    pass

class StormNotFoundError(NotFoundError):
    pass

class PersistenceError(GameError):
    """Raised when the store fails. Callers may retry."""
    pass
