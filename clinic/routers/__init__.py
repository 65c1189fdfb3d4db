# clinic/routers/__init__.py
from . import health
from . import users
from . import session
from . import appointments

__all__ = ["health", "users", "session", "appointments"]
