import os
from dotenv import load_dotenv

load_dotenv()

def get_database_uri():
    """
    Build database URI from environment variables.
    Supports both DATABASE_URL (full connection string) and individual components.
    Individual components take precedence if DATABASE_URL is not set.
    """
    # First, check if DATABASE_URL is explicitly set
    database_url = os.getenv('DATABASE_URL')
    if database_url:
        return database_url

    # Otherwise, build from individual components
    db_host = os.getenv('DB_HOST', 'localhost')
    db_port = os.getenv('DB_PORT', '3306')
    db_user = os.getenv('DB_USER', 'englib')
    db_password = os.getenv('DB_PASSWORD', 'englib')
    db_name = os.getenv('DB_NAME', 'englib')

    return f'mysql+pymysql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}?charset=utf8mb4'

def get_extension_list(value):
    """Parse a comma-separated extension list into normalized '.ext' entries"""
    extensions = []
    for ext in value.split(','):
        ext = ext.strip().lower()
        if not ext:
            continue
        if not ext.startswith('.'):
            ext = f'.{ext}'
        extensions.append(ext)
    return extensions

class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = get_database_uri()
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'info')

    # Admin API guard; empty means the fronting proxy handles auth
    ADMIN_TOKEN = os.getenv('ADMIN_TOKEN', '')

    # Storage backend settings
    STORAGE_BACKEND = os.getenv('STORAGE_BACKEND', 'dropbox').lower()  # dropbox or s3
    STORAGE_ROOT_PATH = os.getenv('STORAGE_ROOT_PATH', '/05boxAPP')
    DROPBOX_APP_KEY = os.getenv('DROPBOX_APP_KEY', '')
    DROPBOX_APP_SECRET = os.getenv('DROPBOX_APP_SECRET', '')
    DROPBOX_REFRESH_TOKEN = os.getenv('DROPBOX_REFRESH_TOKEN', '')
    S3_BUCKET = os.getenv('S3_BUCKET', '')
    S3_REGION = os.getenv('S3_REGION', 'us-east-1')
    S3_ACCESS_KEY = os.getenv('S3_ACCESS_KEY', '')
    S3_SECRET_KEY = os.getenv('S3_SECRET_KEY', '')

    # Sync settings (defaults)
    SYNC_ALLOWED_EXTENSIONS = get_extension_list(os.getenv('SYNC_ALLOWED_EXTENSIONS', '.pdf'))
    SYNC_SCHEDULE_ENABLED = os.getenv('SYNC_SCHEDULE_ENABLED', 'true').lower() == 'true'
    SYNC_SCHEDULE_MINUTES = int(os.getenv('SYNC_SCHEDULE_MINUTES', '30'))
    SYNC_LINK_EXPIRY_SECONDS = int(os.getenv('SYNC_LINK_EXPIRY_SECONDS', '14400'))  # 4 hours

    # Library tree
    TREE_FETCH_BATCH_SIZE = int(os.getenv('TREE_FETCH_BATCH_SIZE', '1000'))

    # Analytics are bucketed in Korea Standard Time by default
    ANALYTICS_UTC_OFFSET_HOURS = int(os.getenv('ANALYTICS_UTC_OFFSET_HOURS', '9'))

    # Textbook requests
    REQUEST_DAILY_LIMIT = int(os.getenv('REQUEST_DAILY_LIMIT', '5'))
