"""
Service for bulk-importing historical feedback from CSV uploads.

Each data row is validated and reconciled on its own; a bad row is reported
and skipped, never aborting the batch. Rows that make it through are
committed one by one, so a later failure never undoes an earlier insert.
"""

import io
import logging
import re
import sqlite3

import pandas as pd

from config import (
    AUTHOR_ROLES,
    CSV_COLUMNS,
    DEFAULT_JOB_RULE,
    GRADE_MAX,
    GRADE_MIN,
)
from tracker.errors import MalformedInput, PermissionDenied
from tracker.models.database import get_db
from tracker.models.feedback import Feedback
from tracker.models.profile import Profile
from utils import is_iso_date, normalize_username

logger = logging.getLogger(__name__)

GRADE_PATTERN = re.compile(r"[+-]?[0-9]+")
DUPLICATE_REASON = 'Duplicate feedback for (author, target, date, job_rule)'


class RowRejected(Exception):
    """A single CSV row failed validation or reconciliation."""

    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class IdentityIndex:
    """
    Username and role lookups for one import run.

    Built from two bulk reads so resolving a row never costs a query.
    """

    def __init__(self, profiles, roles):
        self.username_to_id = {
            normalize_username(username): user_id for user_id, username in profiles
        }
        self.id_to_role = dict(roles)

    @classmethod
    def load(cls, conn):
        return cls(Profile.get_all(conn), Profile.get_all_roles(conn))

    def resolve(self, username):
        return self.username_to_id.get(normalize_username(username))

    def role_of(self, user_id):
        return self.id_to_role.get(user_id)


def parse_feedback_csv(csv_text: str) -> pd.DataFrame:
    """
    Parse uploaded CSV text into a frame with the fixed import columns.

    The header row is required and discarded; columns are taken by
    position. Every cell is read as text and missing cells become ''.
    The header is read as an ordinary line so that a row with more than
    the fixed number of fields fails tokenising wherever it sits.

    Raises:
        MalformedInput: the text is empty or can't be tokenised.
    """
    if not csv_text or not csv_text.strip():
        raise MalformedInput("CSV file is empty")

    try:
        df = pd.read_csv(
            io.StringIO(csv_text),
            header=None,
            names=CSV_COLUMNS,
            dtype=str,
            keep_default_na=False,
            index_col=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.error(f"Error reading CSV file: {e}")
        raise MalformedInput(f"Error reading CSV file: {e}")

    return df.iloc[1:].fillna('').reset_index(drop=True)


def _cell(row, column):
    value = row.get(column, '')
    if value is None:
        return ''
    return str(value).strip()


def _parse_grade(grade_str):
    if not grade_str:
        raise RowRejected('Missing grade')
    if not GRADE_PATTERN.fullmatch(grade_str):
        raise RowRejected(f'Grade must be an integer between {GRADE_MIN} and {GRADE_MAX}')
    grade = int(grade_str)
    if grade < GRADE_MIN or grade > GRADE_MAX:
        raise RowRejected(f'Grade must be an integer between {GRADE_MIN} and {GRADE_MAX}')
    return grade


def reconcile_row(row, index: IdentityIndex) -> dict:
    """
    Validate one CSV row and resolve its identities.

    Returns the feedback record ready for insertion.

    Raises:
        RowRejected: with a short human-readable reason.
    """
    user_username = _cell(row, 'user_username')
    author_username = _cell(row, 'author_username')
    author_role = _cell(row, 'author_role').lower()
    work_date = _cell(row, 'work_date')
    job_rule = _cell(row, 'job_rule') or DEFAULT_JOB_RULE
    grade_str = _cell(row, 'grade')
    review_subject = _cell(row, 'review_subject')
    notes = _cell(row, 'notes')

    if not user_username:
        raise RowRejected('Missing user_username')

    if author_role not in AUTHOR_ROLES:
        raise RowRejected('Invalid author_role (must be "user" or "leader")')

    if not work_date:
        raise RowRejected('Missing work_date')
    if not is_iso_date(work_date):
        raise RowRejected('Invalid date format (expected YYYY-MM-DD)')

    grade = _parse_grade(grade_str)

    target_user_id = index.resolve(user_username)
    if not target_user_id:
        raise RowRejected(f'Unknown user_username: {user_username}')

    if author_role == 'user':
        # A self-assessment may leave the author blank
        if not author_username:
            author_user_id = target_user_id
        else:
            author_user_id = index.resolve(author_username)
            if not author_user_id:
                raise RowRejected(f'Unknown author_username: {author_username}')
    else:
        if not author_username:
            raise RowRejected('author_username is required when author_role is "leader"')
        author_user_id = index.resolve(author_username)
        if not author_user_id:
            raise RowRejected(f'Unknown author_username: {author_username}')
        if index.role_of(author_user_id) != 'leader':
            raise RowRejected(f'User {author_username} is not a leader')

    return {
        'target_user_id': target_user_id,
        'author_user_id': author_user_id,
        'author_role': author_role,
        'work_date': work_date,
        'job_rule': job_rule,
        'grade': grade,
        'review_subject': review_subject,
        'notes': notes or None,
    }


def import_feedback_csv(csv_text: str, acting_user_id: str) -> dict:
    """
    Import feedback rows from CSV text on behalf of a leader.

    Returns:
        {'summary': {'total_rows', 'imported', 'skipped'},
         'errors': [{'row', 'reason'}, ...]}
        Row numbers are 1-based and count the header line.

    Raises:
        PermissionDenied: acting user is not a leader.
        MalformedInput: the file can't be parsed as CSV.
    """
    if not acting_user_id or not Profile.has_role(acting_user_id, 'leader'):
        raise PermissionDenied("Access denied: Leaders only")

    df = parse_feedback_csv(csv_text)
    total_rows = len(df)
    logger.info(f"Processing {total_rows} rows from CSV")

    imported = 0
    errors = []

    with get_db() as conn:
        index = IdentityIndex.load(conn)

        for i, row in df.iterrows():
            row_num = int(i) + 2  # 0-based index plus the header line

            try:
                record = reconcile_row(row, index)
                feedback_id = Feedback.add_if_absent(conn, record)
                if feedback_id is None:
                    raise RowRejected(DUPLICATE_REASON)
            except RowRejected as e:
                errors.append({'row': row_num, 'reason': e.reason})
                continue
            except sqlite3.Error as e:
                logger.warning(f"Error inserting row {row_num}: {e}")
                errors.append({'row': row_num, 'reason': f"Database error: {e}"})
                continue
            except Exception as e:
                logger.error(f"Error processing row {row_num}: {e}")
                errors.append({'row': row_num, 'reason': f"Processing error: {e}"})
                continue

            imported += 1
            logger.debug(f"Successfully imported row {row_num} as {feedback_id}")

    summary = {
        'total_rows': total_rows,
        'imported': imported,
        'skipped': total_rows - imported,
    }
    logger.info(f"Import complete: {summary}")

    return {'summary': summary, 'errors': errors}


def build_import_template() -> str:
    """
    Create sample CSV text with the correct import format.
    """
    sample_data = {
        'user_username': ['john_doe', 'jane_smith', 'bob_jones'],
        'author_username': ['leader_anna', '', 'leader_anna'],
        'author_role': ['leader', 'user', 'leader'],
        'work_date': ['2025-02-12', '2025-02-13', '2025-02-14'],
        'job_rule': ['Sales pitch', 'Client meeting', ''],
        'grade': [85, 90, 78],
        'review_subject': ['Confidence', 'Communication', 'Technical skills'],
        'notes': ['Great call', 'Excellent presentation', 'Good work'],
    }

    df = pd.DataFrame(sample_data, columns=CSV_COLUMNS)
    return df.to_csv(index=False)
