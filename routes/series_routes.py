from flask import Blueprint, request, jsonify
import logging
from tracker.auth import login_required
from tracker.errors import FeedbackError
from tracker.services.series_service import (
    compute_series, compute_merged_series, compute_self_series,
    compute_grade_buckets, find_counterpart,
)

logger = logging.getLogger(__name__)

series_bp = Blueprint('series', __name__)

def _internal_error(e):
    logger.error(f"Unexpected error: {e}")
    return jsonify({'error': 'Internal server error'}), 500

@series_bp.route('/feedback-series', methods=['GET'])
@login_required
def feedback_series():
    """Self and leader series for a subject as two arrays."""
    try:
        result = compute_series(
            request.args.get('target_user_id', '').strip(),
            request.args.get('from', '').strip() or None,
            request.args.get('to', '').strip() or None,
        )
        return jsonify(result), 200
    except FeedbackError:
        raise
    except Exception as e:
        return _internal_error(e)

@series_bp.route('/feedback-series/merged', methods=['GET'])
@login_required
def feedback_series_merged():
    """Self and leader averages merged onto one date axis."""
    try:
        result = compute_merged_series(
            request.args.get('target_user_id', '').strip(),
            request.args.get('from', '').strip() or None,
            request.args.get('to', '').strip() or None,
        )
        return jsonify(result), 200
    except FeedbackError:
        raise
    except Exception as e:
        return _internal_error(e)

@series_bp.route('/feedback-self-series', methods=['GET', 'POST'])
@login_required
def feedback_self_series():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    try:
        result = compute_self_series(
            str(body.get('target_user_id') or '').strip(),
            str(body['from']) if body.get('from') else None,
            str(body['to']) if body.get('to') else None,
        )
        return jsonify(result), 200
    except FeedbackError:
        raise
    except Exception as e:
        return _internal_error(e)

@series_bp.route('/feedback/counterpart', methods=['GET'])
@login_required
def feedback_counterpart():
    try:
        counterpart = find_counterpart(
            request.args.get('target_user_id', '').strip(),
            request.args.get('work_date', '').strip(),
            request.args.get('author_role', '').strip().lower(),
        )
        return jsonify({'counterpart': counterpart}), 200
    except FeedbackError:
        raise
    except Exception as e:
        return _internal_error(e)

@series_bp.route('/group-grade-buckets', methods=['GET'])
@login_required
def group_grade_buckets():
    try:
        result = compute_grade_buckets(request.args.get('groupname', '').strip())
        return jsonify(result), 200
    except FeedbackError:
        raise
    except Exception as e:
        return _internal_error(e)
