from __future__ import annotations

import logging
import os
import re
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cityinfo import infos
from cityinfo.cities import CitiesClient
from cityinfo.errors import CityInfoError, RecipeNotFound
from cityinfo.infos import CityInfoResponse, RecipeOut
from cityinfo.recipes import RecipeStore, validate_content

logger = logging.getLogger(__name__)

APP_NAME = "City Infos API"
APP_VERSION = "0.1.0"

RECIPE_ID = re.compile(r"[0-9]+")

# ---------- Dependencies ----------
def get_recipes(request: Request) -> RecipeStore:
    return request.app.state.recipes

def get_cities(request: Request) -> CitiesClient:
    return request.app.state.cities

# ---------- Error mapping ----------
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})

async def _city_info_error(request: Request, exc: CityInfoError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail or exc.message,
        )
    return _error(exc.status_code, exc.message)

async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))

async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error.")

# ---------- Endpoints ----------
router = APIRouter()

@router.get("/health")
def health(request: Request):
    return {"ok": True, "name": APP_NAME, "version": request.app.version}

@router.get("/cities/{city_id}/infos", response_model=CityInfoResponse)
async def city_infos(
    city_id: str,
    cities: CitiesClient = Depends(get_cities),
    recipes: RecipeStore = Depends(get_recipes),
) -> CityInfoResponse:
    return await infos.get_city_info(city_id, cities, recipes)

@router.post("/cities/{city_id}/recipes", status_code=201, response_model=RecipeOut)
async def create_recipe(
    city_id: str,
    request: Request,
    cities: CitiesClient = Depends(get_cities),
    recipes: RecipeStore = Depends(get_recipes),
) -> RecipeOut:
    # Re-check upstream on every write; the store never holds recipes for unknown cities.
    await cities.ensure_city(city_id)

    try:
        payload: Any = await request.json()
    except ValueError:
        payload = None
    content = payload.get("content") if isinstance(payload, dict) else None
    recipe = recipes.create(city_id, validate_content(content))
    return RecipeOut(**recipe.to_dict())

@router.delete("/cities/{city_id}/recipes/{recipe_id}", status_code=204, response_class=Response)
async def delete_recipe(
    city_id: str,
    recipe_id: str,
    cities: CitiesClient = Depends(get_cities),
    recipes: RecipeStore = Depends(get_recipes),
) -> Response:
    await cities.ensure_city(city_id)

    # ASCII digits only
    if not RECIPE_ID.fullmatch(recipe_id):
        raise RecipeNotFound()
    if not recipes.delete(city_id, int(recipe_id)):
        raise RecipeNotFound()
    return Response(status_code=204)


def create_app(recipes: Optional[RecipeStore] = None, cities: Optional[CitiesClient] = None) -> FastAPI:
    app = FastAPI(title=APP_NAME, version=APP_VERSION)

    cors = os.environ.get("CITYINFO_CORS_ORIGINS")
    origins = [o.strip() for o in cors.split(",")] if cors else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CityInfoError, _city_info_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unexpected_error)

    app.state.recipes = recipes if recipes is not None else RecipeStore()
    app.state.cities = cities if cities is not None else CitiesClient()

    app.include_router(router)
    return app


app = create_app()
