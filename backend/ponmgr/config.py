"""
Configuration settings for different environments
"""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'y', 'on')


class Config:
    """Base configuration"""
    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///ponmgr.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:3000').split(',')

    # ACS (TR-069)
    ACS_USERNAME = os.environ.get('ACS_USERNAME', 'admin')
    ACS_PASSWORD = os.environ.get('ACS_PASSWORD', 'admin')
    ACS_HOST = os.environ.get('ACS_HOST', '0.0.0.0')
    ACS_PORT = int(os.environ.get('ACS_PORT', 7547))
    ACS_REQUIRE_AUTH = _env_bool('ACS_REQUIRE_AUTH', True)
    ACS_MAX_BODY_BYTES = int(os.environ.get('ACS_MAX_BODY_BYTES', 1024 * 1024))
    ACS_CONNECTION_REQUEST_TIMEOUT_SECONDS = float(
        os.environ.get('ACS_CONNECTION_REQUEST_TIMEOUT_SECONDS', 8)
    )
    ACS_CONNECTION_REQUEST_VERIFY_TLS = _env_bool('ACS_CONNECTION_REQUEST_VERIFY_TLS', True)
    # CPE-side credentials for Connection Requests
    ACS_CONNECTION_REQUEST_USERNAME = os.environ.get('ACS_CONNECTION_REQUEST_USERNAME', '')
    ACS_CONNECTION_REQUEST_PASSWORD = os.environ.get('ACS_CONNECTION_REQUEST_PASSWORD', '')

    # OLT command line
    OLT_SIMULATION_MODE = _env_bool('OLT_SIMULATION_MODE', True)
    TELNET_TIMEOUT_SECONDS = float(os.environ.get('TELNET_TIMEOUT_SECONDS', 15))
    TELNET_COMMAND_DELAY_SECONDS = float(os.environ.get('TELNET_COMMAND_DELAY_SECONDS', 0.5))
    TELNET_SAVE_TIMEOUT_SECONDS = float(os.environ.get('TELNET_SAVE_TIMEOUT_SECONDS', 30))

    # SNMP
    SNMP_TIMEOUT_SECONDS = float(os.environ.get('SNMP_TIMEOUT_SECONDS', 10))
    SNMP_RETRIES = int(os.environ.get('SNMP_RETRIES', 2))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///ponmgr_dev.db'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SECRET_KEY = 'test-secret-key'
    OLT_SIMULATION_MODE = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    OLT_SIMULATION_MODE = _env_bool('OLT_SIMULATION_MODE', False)

    REQUIRED_ENV = (
        'SECRET_KEY',
        'DATABASE_URL',
        'ACS_USERNAME',
        'ACS_PASSWORD',
        'CORS_ORIGINS',
    )

    @classmethod
    def validate(cls):
        """Fail fast when production is started without its secrets."""
        problems = []
        missing = [key for key in cls.REQUIRED_ENV if not os.environ.get(key)]
        if missing:
            problems.append(f"Missing required environment variables: {', '.join(missing)}")

        secret = os.environ.get('SECRET_KEY') or ''
        if secret and len(secret) < 32:
            problems.append('SECRET_KEY must be at least 32 characters long')

        acs_user = os.environ.get('ACS_USERNAME')
        acs_pass = os.environ.get('ACS_PASSWORD')
        if acs_user == 'admin' and acs_pass == 'admin':
            problems.append('ACS credentials must not use the default admin/admin pair')

        if problems:
            raise ValueError('; '.join(problems))


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
