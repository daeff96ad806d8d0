import logging
import uuid
from .database import get_db

logger = logging.getLogger(__name__)

class Profile:
    @staticmethod
    def add(username, role='user'):
        """Add a profile with its role. Returns the new profile id."""
        profile_id = str(uuid.uuid4())
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO profiles (id, username) VALUES (?, ?)
            ''', (profile_id, username.strip()))
            cursor.execute('''
                INSERT INTO user_roles (user_id, role) VALUES (?, ?)
            ''', (profile_id, role))
        return profile_id

    @staticmethod
    def get_all(conn):
        """All (id, username) pairs."""
        cursor = conn.cursor()
        cursor.execute('SELECT id, username FROM profiles')
        return [(row['id'], row['username']) for row in cursor.fetchall()]

    @staticmethod
    def get_all_roles(conn):
        """All (user_id, role) pairs."""
        cursor = conn.cursor()
        cursor.execute('SELECT user_id, role FROM user_roles')
        return [(row['user_id'], row['role']) for row in cursor.fetchall()]

    @staticmethod
    def get_by_id(user_id):
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT p.id, p.username, r.role
                FROM profiles p
                LEFT JOIN user_roles r ON r.user_id = p.id
                WHERE p.id = ?
            ''', (user_id,))

            row = cursor.fetchone()
            if row:
                return {
                    'id': row['id'],
                    'username': row['username'],
                    'role': row['role'],
                }
            return None

    @staticmethod
    def has_role(user_id, role):
        """Check whether a user holds the given role."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT 1 FROM user_roles
                WHERE user_id = ? AND role = ?
            ''', (user_id, role))
            return cursor.fetchone() is not None
