"""FastAPI routers acting as controllers in the MVC architecture."""

from . import auth, devices, groups, invitations, schools, subjects, users

__all__ = ["auth", "devices", "groups", "invitations", "schools", "subjects", "users"]
