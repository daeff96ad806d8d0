import sqlite3
import os
from contextlib import contextmanager
import logging

import config

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH

def get_db_path():
    """Get the database path and ensure the directory exists."""
    db_dir = os.path.dirname(DATABASE_PATH)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir)
    return DATABASE_PATH

def connect():
    conn = sqlite3.connect(get_db_path(), timeout=30)
    conn.row_factory = sqlite3.Row
    conn.execute('PRAGMA foreign_keys = ON')
    return conn

@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = None
    try:
        conn = connect()
        yield conn
        conn.commit()
    except Exception as e:
        if conn:
            conn.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        if conn:
            conn.close()

def init_db():
    """Initialize the database with all required tables."""
    with get_db() as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS profiles (
                id TEXT PRIMARY KEY,
                username TEXT NOT NULL UNIQUE,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS user_roles (
                user_id TEXT PRIMARY KEY REFERENCES profiles(id) ON DELETE CASCADE,
                role TEXT NOT NULL CHECK (role IN ('user', 'leader'))
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS feedback (
                id TEXT PRIMARY KEY,
                target_user_id TEXT NOT NULL REFERENCES profiles(id),
                author_user_id TEXT NOT NULL REFERENCES profiles(id),
                author_role TEXT NOT NULL CHECK (author_role IN ('user', 'leader')),
                work_date TEXT NOT NULL,
                job_rule TEXT NOT NULL DEFAULT 'other',
                grade INTEGER NOT NULL CHECK (grade BETWEEN 1 AND 100),
                review_subject TEXT NOT NULL
                    CHECK (length(review_subject) BETWEEN 1 AND 50),
                notes TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(author_user_id, target_user_id, work_date, job_rule)
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_feedback_target_date
            ON feedback(target_user_id, work_date)
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS team_groups (
                groupname TEXT PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS group_members (
                groupname TEXT NOT NULL REFERENCES team_groups(groupname) ON DELETE CASCADE,
                user_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
                PRIMARY KEY (groupname, user_id)
            )
        ''')

        conn.commit()
        logger.info("Database initialized successfully")
