from fastapi import APIRouter

from expense_tracker.api.routers import auth, categories, expenses, stats

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(categories.router)
api_router.include_router(expenses.router)
api_router.include_router(stats.router)
