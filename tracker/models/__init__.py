from .database import init_db, get_db, get_db_path
from .profile import Profile
from .feedback import Feedback
from .group import Group

__all__ = ['init_db', 'get_db', 'get_db_path', 'Profile', 'Feedback', 'Group']
