from .upload import Upload
from .user import User

__all__ = ["Upload", "User"]
