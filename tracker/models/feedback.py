import logging
import uuid
from .database import get_db

logger = logging.getLogger(__name__)

FEEDBACK_FIELDS = (
    'id', 'target_user_id', 'author_user_id', 'author_role', 'work_date',
    'job_rule', 'grade', 'review_subject', 'notes', 'created_at', 'updated_at',
)

def _to_dict(row):
    return {field: row[field] for field in FEEDBACK_FIELDS}

class Feedback:
    @staticmethod
    def exists(cursor, author_user_id, target_user_id, work_date, job_rule):
        """Check for a record with the same (author, target, date, job_rule)."""
        cursor.execute('''
            SELECT 1 FROM feedback
            WHERE author_user_id = ? AND target_user_id = ?
              AND work_date = ? AND job_rule = ?
        ''', (author_user_id, target_user_id, work_date, job_rule))
        return cursor.fetchone() is not None

    @staticmethod
    def add_if_absent(conn, record):
        """Insert one feedback record unless its uniqueness tuple is taken.

        The existence check and the insert share a single IMMEDIATE
        transaction, so two writers can't both pass the check. The row is
        committed before returning.

        Returns the new id, or None when a matching record already exists.
        Database failures propagate as sqlite3.Error.
        """
        cursor = conn.cursor()
        cursor.execute('BEGIN IMMEDIATE')
        try:
            if Feedback.exists(cursor, record['author_user_id'], record['target_user_id'],
                               record['work_date'], record['job_rule']):
                conn.rollback()
                return None

            feedback_id = str(uuid.uuid4())
            cursor.execute('''
                INSERT INTO feedback
                (id, target_user_id, author_user_id, author_role, work_date,
                 job_rule, grade, review_subject, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (
                feedback_id,
                record['target_user_id'],
                record['author_user_id'],
                record['author_role'],
                record['work_date'],
                record['job_rule'],
                record['grade'],
                record['review_subject'],
                record['notes'],
            ))
            conn.commit()
            return feedback_id
        except Exception:
            conn.rollback()
            raise

    @staticmethod
    def add(target_user_id, author_user_id, author_role, work_date, grade,
            review_subject, job_rule='other', notes=None):
        """Add a single feedback record. Returns its id."""
        with get_db() as conn:
            feedback_id = str(uuid.uuid4())
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO feedback
                (id, target_user_id, author_user_id, author_role, work_date,
                 job_rule, grade, review_subject, notes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ''', (feedback_id, target_user_id, author_user_id, author_role,
                  work_date, job_rule, grade, review_subject, notes))
            return feedback_id

    @staticmethod
    def get_for_target(target_user_id, date_from, date_to, author_role=None):
        """Grades for a subject within [date_from, date_to], oldest first."""
        query = '''
            SELECT work_date, grade, author_role
            FROM feedback
            WHERE target_user_id = ? AND work_date >= ? AND work_date <= ?
        '''
        params = [target_user_id, date_from, date_to]
        if author_role:
            query += ' AND author_role = ?'
            params.append(author_role)
        query += ' ORDER BY work_date ASC'

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [
                {'work_date': row['work_date'], 'grade': row['grade'], 'author_role': row['author_role']}
                for row in cursor.fetchall()
            ]

    @staticmethod
    def find_counterpart(target_user_id, work_date, author_role):
        """Opposite-role feedback for the same subject and date, if any."""
        counterpart_role = 'leader' if author_role == 'user' else 'user'

        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                SELECT * FROM feedback
                WHERE target_user_id = ? AND work_date = ? AND author_role = ?
                ORDER BY created_at, rowid
                LIMIT 1
            ''', (target_user_id, work_date, counterpart_role))

            row = cursor.fetchone()
            return _to_dict(row) if row else None
