"""Identity helpers for requests authenticated upstream."""

from .decorators import current_user_id, login_required

__all__ = ["current_user_id", "login_required"]
