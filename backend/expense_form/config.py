import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the package directory or its parent
env_path = Path(__file__).parent / '.env'
if not env_path.exists():
    env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


def _flag(name, default='false'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/expense_form')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME')

    GEMINI_API_KEY = os.getenv('GEMINI_API_KEY') or os.getenv('GOOGLE_API_KEY')

    # Runtime feature flags
    ENABLE_CATEGORY_EXTRACT = _flag('ENABLE_CATEGORY_EXTRACT')
    ENABLE_EXPENSE_DOCUMENTS = _flag('ENABLE_EXPENSE_DOCUMENTS')

    CORS_ORIGINS = [
        o.strip() for o in os.getenv('CORS_ORIGINS', 'http://localhost:5173,http://localhost:3000').split(',')
        if o.strip()
    ]


class TestingConfig(Config):
    TESTING = True
    MONGO_DB_NAME = 'expense_form_test'
    GEMINI_API_KEY = None
    ENABLE_CATEGORY_EXTRACT = True
    ENABLE_EXPENSE_DOCUMENTS = True
