import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-production'

DEFAULT_SPECIALTIES = [
    'Internal Medicine',
    'Pulmonology',
    'Neurology',
    'Gastroenterology',
    'Rheumatology',
    'Endocrinology',
    'Hematology',
    'Infectious Disease',
    'Thrombosis Medicine',
    'Immunology & Allergy',
]


def _split_list(value, default):
    if not value:
        return list(default)
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY') or DEFAULT_SECRET_KEY

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///imd_reports.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Report output
    PDF_REPORTS_PATH = os.getenv('PDF_REPORTS_PATH', 'reports')
    REPORT_TITLE_PREFIX = os.getenv('REPORT_TITLE_PREFIX', 'IMD-Care')
    REPORT_LOGO = os.getenv('REPORT_LOGO')  # http(s) URL or local file path
    LOGO_FETCH_TIMEOUT = float(os.getenv('LOGO_FETCH_TIMEOUT', '5'))

    # Aggregation constants
    TOTAL_BEDS = int(os.getenv('TOTAL_BEDS', '100'))
    DEPARTMENT_CAPACITY = int(os.getenv('DEPARTMENT_CAPACITY', '10'))
    OCCUPANCY_SLACK = int(os.getenv('OCCUPANCY_SLACK', '5'))
    OCCUPANCY_POLICY = os.getenv('OCCUPANCY_POLICY', 'fixed_capacity')  # fixed_capacity | slack
    SPECIALTY_OCCUPANCY_POLICY = os.getenv('SPECIALTY_OCCUPANCY_POLICY', 'slack')
    LONG_STAY_THRESHOLD_DAYS = int(os.getenv('LONG_STAY_THRESHOLD_DAYS', '7'))
    DAILY_REPORT_WINDOW = os.getenv('DAILY_REPORT_WINDOW', 'calendar_day')  # calendar_day | trailing_24h
    SPECIALTIES = _split_list(os.getenv('SPECIALTIES'), DEFAULT_SPECIALTIES)

    # Snapshot refresh
    REFRESH_INTERVAL_SECONDS = int(os.getenv('REFRESH_INTERVAL_SECONDS', '300'))

    # Celery Configuration
    CELERY_BROKER_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.getenv('REDIS_URL', 'redis://localhost:6379/0')
    CELERY_ACCEPT_CONTENT = ['json']
    CELERY_TASK_SERIALIZER = 'json'
    CELERY_RESULT_SERIALIZER = 'json'
    CELERY_TIMEZONE = 'UTC'
    CELERY_ENABLE_UTC = True
    CELERY_TASK_ALWAYS_EAGER = False

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
    }

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    SQLALCHEMY_ENGINE_OPTIONS = {}
    REPORT_LOGO = None
    REFRESH_INTERVAL_SECONDS = 0
    CELERY_BROKER_URL = 'memory://'
    CELERY_RESULT_BACKEND = 'cache+memory://'
    CELERY_TASK_ALWAYS_EAGER = True


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])


def validate_production_config(app_config):
    """Refuse to boot production with the development secret key."""
    secret = app_config.get('SECRET_KEY')
    if not secret or secret == DEFAULT_SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable must be set in production and must not be the default value")
