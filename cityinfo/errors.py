from __future__ import annotations


class CityInfoError(Exception):
    """Base error. `message` is what the client sees, `detail` stays in the logs."""

    status_code = 500
    message = "Internal server error."

    def __init__(self, message: str | None = None, detail: str | None = None):
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(detail or self.message)


class CityNotFound(CityInfoError):
    status_code = 404
    message = "City not found"


class RecipeNotFound(CityInfoError):
    status_code = 404
    message = "Recipe not found"


class ValidationError(CityInfoError):
    status_code = 400
    message = "content required."


class UpstreamUnavailable(CityInfoError):
    status_code = 500
    message = "Cities provider unavailable."


class SchemaMismatch(CityInfoError):
    status_code = 500
    message = "Cities provider returned malformed data."
