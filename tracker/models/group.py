import logging
from .database import get_db

logger = logging.getLogger(__name__)

class Group:
    @staticmethod
    def add(groupname, member_ids=()):
        """Create a group with its members."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('INSERT INTO team_groups (groupname) VALUES (?)', (groupname,))
            cursor.executemany('''
                INSERT OR IGNORE INTO group_members (groupname, user_id)
                VALUES (?, ?)
            ''', [(groupname, user_id) for user_id in member_ids])

    @staticmethod
    def member_average_grades(groupname):
        """Average grade received by each member; None for members without feedback."""
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT m.user_id, AVG(f.grade) AS avg_grade
                FROM group_members m
                LEFT JOIN feedback f ON f.target_user_id = m.user_id
                WHERE m.groupname = ?
                GROUP BY m.user_id
            ''', (groupname,))

            return [{'user_id': row['user_id'], 'avg_grade': row['avg_grade']}
                    for row in cursor.fetchall()]
