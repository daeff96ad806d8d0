import os

# Database configuration
DATABASE_PATH = os.environ.get('FEEDBACK_DB_PATH', os.path.join('data', 'feedback.db'))

# Signing key for bearer credentials
SECRET_KEY = os.environ.get('SECRET_KEY', 'your_secret_key_change_in_production')

LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

# Upload configuration
ALLOWED_EXTENSIONS = {'csv'}
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

# Bulk import CSV layout (fixed order, header row required)
CSV_COLUMNS = [
    'user_username',
    'author_username',
    'author_role',
    'work_date',
    'job_rule',
    'grade',
    'review_subject',
    'notes',
]
TEMPLATE_FILENAME = 'feedback_import_template.csv'

# Feedback rules
AUTHOR_ROLES = ('user', 'leader')
DEFAULT_JOB_RULE = 'other'
GRADE_MIN = 1
GRADE_MAX = 100
REVIEW_SUBJECT_MAX_LENGTH = 50

# Charts
SERIES_WINDOW_DAYS = 90
GRADE_BUCKET_THRESHOLD = 70

# Launcher
SERVER_HOST = os.environ.get('FEEDBACK_HOST', '0.0.0.0')
SERVER_PORTS = (8000, 8080, 5000, 5001, 3000)
