from fastapi import APIRouter

from sitesearch.api.routes import indexing, search, statistics, utils

api_router = APIRouter()
api_router.include_router(indexing.router)
api_router.include_router(search.router)
api_router.include_router(statistics.router)
api_router.include_router(utils.router)
