"""
Service computing per-date grade series for the feedback charts.

Feedback for a subject is split into the self bucket (author_role 'user')
and the leader bucket (author_role 'leader'), grouped by work_date and
averaged. Averages round half away from zero.
"""

import logging
import sqlite3
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from config import AUTHOR_ROLES, GRADE_BUCKET_THRESHOLD, SERIES_WINDOW_DAYS
from tracker.errors import InvalidParameter, MissingParameter, QueryError
from tracker.models.feedback import Feedback
from tracker.models.group import Group
from utils import parse_iso_date

logger = logging.getLogger(__name__)


def round_grade(total, count):
    """Nearest-integer average, halves rounded away from zero."""
    return int((Decimal(total) / Decimal(count)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def resolve_window(date_from=None, date_to=None, today=None):
    """
    Work out the inclusive [from, to] window as ISO strings.

    Defaults to the trailing SERIES_WINDOW_DAYS ending today.
    """
    today = today or date.today()
    try:
        to_date = parse_iso_date(date_to) if date_to else today
        from_date = parse_iso_date(date_from) if date_from else today - timedelta(days=SERIES_WINDOW_DAYS)
    except ValueError as e:
        raise InvalidParameter(str(e))
    return from_date.isoformat(), to_date.isoformat()


def _fetch(target_user_id, date_from, date_to, author_role=None, today=None):
    if not target_user_id:
        raise MissingParameter("target_user_id is required")

    from_str, to_str = resolve_window(date_from, date_to, today)
    try:
        rows = Feedback.get_for_target(target_user_id, from_str, to_str, author_role=author_role)
    except sqlite3.Error as e:
        logger.error(f"Error fetching feedback for {target_user_id}: {e}")
        raise QueryError(str(e))
    return rows, from_str, to_str


def group_by_date(rows):
    """Fold rows into {work_date: [sum, count]}."""
    groups = {}
    for row in rows:
        group = groups.setdefault(row['work_date'], [0, 0])
        group[0] += row['grade']
        group[1] += 1
    return groups


def to_points(groups):
    """Turn grouped sums into SeriesPoints sorted by date."""
    return [
        {'date': work_date, 'avg_grade': round_grade(total, count), 'count': count}
        for work_date, (total, count) in sorted(groups.items())
    ]


def split_by_role(rows):
    self_rows = [row for row in rows if row['author_role'] == 'user']
    leader_rows = [row for row in rows if row['author_role'] == 'leader']
    return self_rows, leader_rows


def compute_series(target_user_id, date_from=None, date_to=None, today=None):
    """
    Self and leader series as two independent arrays.

    Returns:
        {'self_reviews': [SeriesPoint], 'leader_reviews': [SeriesPoint]}
    """
    rows, from_str, to_str = _fetch(target_user_id, date_from, date_to, today=today)
    self_rows, leader_rows = split_by_role(rows)

    self_reviews = to_points(group_by_date(self_rows))
    leader_reviews = to_points(group_by_date(leader_rows))

    logger.info(
        f"Fetched {len(self_reviews)} self reviews and {len(leader_reviews)} leader reviews "
        f"for user {target_user_id} ({from_str} to {to_str})"
    )
    return {'self_reviews': self_reviews, 'leader_reviews': leader_reviews}


def compute_merged_series(target_user_id, date_from=None, date_to=None, today=None):
    """
    Self and leader averages on a shared date axis.

    Every date present in either bucket appears once; a bucket with no
    feedback on that date has a None average and a zero count.

    Returns:
        {'series': [{'date', 'self_avg', 'leader_avg', 'count_self', 'count_leader'}]}
    """
    rows, from_str, to_str = _fetch(target_user_id, date_from, date_to, today=today)
    self_rows, leader_rows = split_by_role(rows)
    self_groups = group_by_date(self_rows)
    leader_groups = group_by_date(leader_rows)

    series = []
    for work_date in sorted(set(self_groups) | set(leader_groups)):
        self_total, count_self = self_groups.get(work_date, (0, 0))
        leader_total, count_leader = leader_groups.get(work_date, (0, 0))
        series.append({
            'date': work_date,
            'self_avg': round_grade(self_total, count_self) if count_self else None,
            'leader_avg': round_grade(leader_total, count_leader) if count_leader else None,
            'count_self': count_self,
            'count_leader': count_leader,
        })

    logger.info(f"Merged {len(series)} dates for user {target_user_id} ({from_str} to {to_str})")
    return {'series': series}


def compute_self_series(target_user_id, date_from=None, date_to=None, today=None):
    """Self-review series only: {'series': [SeriesPoint]}."""
    rows, from_str, to_str = _fetch(target_user_id, date_from, date_to, author_role='user', today=today)
    series = to_points(group_by_date(rows))
    logger.info(f"Returning {len(series)} self review points for user {target_user_id}")
    return {'series': series}


def compute_grade_buckets(groupname):
    """
    Count group members whose overall average grade is below / at-or-above
    the bucket threshold. Members without any feedback are left out.
    """
    if not groupname:
        raise MissingParameter("Missing groupname parameter")

    try:
        member_avgs = Group.member_average_grades(groupname)
    except sqlite3.Error as e:
        logger.error(f"Error fetching group grades for {groupname}: {e}")
        raise QueryError("Failed to fetch group grades")

    graded = [m['avg_grade'] for m in member_avgs if m['avg_grade'] is not None]
    below = sum(1 for avg in graded if avg < GRADE_BUCKET_THRESHOLD)
    at_or_above = len(graded) - below

    return {
        'groupname': groupname,
        'buckets': [
            {'label': f'Below {GRADE_BUCKET_THRESHOLD}', 'count': below},
            {'label': f'{GRADE_BUCKET_THRESHOLD} and above', 'count': at_or_above},
        ],
    }


def find_counterpart(target_user_id, work_date, author_role):
    """Opposite-category feedback for the same subject and date, or None."""
    if not target_user_id:
        raise MissingParameter("target_user_id is required")
    if not work_date:
        raise MissingParameter("work_date is required")
    if author_role not in AUTHOR_ROLES:
        raise InvalidParameter('author_role must be "user" or "leader"')
    try:
        parse_iso_date(work_date)
    except ValueError as e:
        raise InvalidParameter(str(e))

    try:
        return Feedback.find_counterpart(target_user_id, work_date, author_role)
    except sqlite3.Error as e:
        logger.error(f"Failed to find counterpart: {e}")
        raise QueryError(str(e))
