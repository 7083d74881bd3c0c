from .auth_routes import router as auth_routes
from .book_routes import router as book_routes
from .recommendation_routes import router as recommendation_routes
from .review_routes import router as review_routes

__all__ = [
    'auth_routes',
    'book_routes',
    'recommendation_routes',
    'review_routes'
]
