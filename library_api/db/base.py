# Import all models so they are registered on SQLModel.metadata
from library_api.models.user_model import User  # noqa: F401
from library_api.models.book_model import Book  # noqa: F401
from library_api.models.activity_log_model import ActivityLog  # noqa: F401
