from flask import Blueprint, request, jsonify, make_response, g
from werkzeug.utils import secure_filename
import os
import logging
from tracker.auth import login_required
from tracker.errors import FeedbackError
from tracker.models.profile import Profile
from tracker.services.import_service import import_feedback_csv, build_import_template
from config import ALLOWED_EXTENSIONS, MAX_FILE_SIZE, TEMPLATE_FILENAME

logger = logging.getLogger(__name__)

import_bp = Blueprint('import', __name__)

def allowed_file(filename):
    """Check if file has an allowed extension."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS

@import_bp.route('/import-feedbacks-csv', methods=['POST'])
@login_required
def upload_feedbacks_csv():
    """Bulk-import feedback from an uploaded CSV file (leaders only)."""
    if not Profile.has_role(g.user_id, 'leader'):
        logger.warning(f"Non-leader {g.user_id} attempted a CSV import")
        return jsonify({'error': 'Access denied: Leaders only'}), 403

    try:
        # Check if file was uploaded
        if 'file' not in request.files:
            return jsonify({'error': 'No file provided'}), 400

        file = request.files['file']

        if file.filename == '':
            return jsonify({'error': 'No file selected'}), 400

        if not allowed_file(secure_filename(file.filename)):
            return jsonify({'error': 'Invalid file type. Please upload a CSV file (.csv)'}), 400

        # Check file size
        file.seek(0, os.SEEK_END)
        file_size = file.tell()
        file.seek(0)

        if file_size > MAX_FILE_SIZE:
            return jsonify({
                'error': f'File too large. Maximum size is {MAX_FILE_SIZE / (1024*1024):.0f}MB'
            }), 400

        try:
            csv_text = file.read().decode('utf-8-sig')
        except UnicodeDecodeError:
            return jsonify({'error': 'File is not valid UTF-8 text'}), 400

        result = import_feedback_csv(csv_text, g.user_id)
        return jsonify(result), 200

    except FeedbackError:
        raise
    except Exception as e:
        logger.error(f"Import error: {e}")
        return jsonify({'error': str(e)}), 500

@import_bp.route('/import-feedbacks-csv/template', methods=['GET'])
@login_required
def download_template():
    """Download a sample CSV in the import format."""
    response = make_response(build_import_template())
    response.headers['Content-Type'] = 'text/csv; charset=utf-8'
    response.headers['Content-Disposition'] = f'attachment; filename={TEMPLATE_FILENAME}'
    return response
