"""
Django settings for LegisEye backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-dev-key-change-in-production')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'False').lower() in ('true', '1', 'yes')

ALLOWED_HOSTS = [
    h.strip() for h in os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')
]

# Application definition
INSTALLED_APPS = [
    'daphne',  # ASGI server for Channels
    'django.contrib.contenttypes',
    'django.contrib.auth',
    'channels',
    'apps.core',
    'apps.authn',
    'apps.docs',
    'apps.indexing',
    'apps.rag',
    'apps.teams',
    'apps.notifications',
    'apps.translation',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = []

WSGI_APPLICATION = 'config.wsgi.application'
ASGI_APPLICATION = 'config.asgi.application'

# Custom user model (email login, persona, presence)
AUTH_USER_MODEL = 'authn.User'

# Database
# Using environment variable for database URL
DATABASE_URL = os.getenv('DATABASE_URL', '')
if DATABASE_URL:
    import re
    match = re.match(
        r'postgres(?:ql)?://(?P<user>[^:]+):(?P<password>[^@]+)@(?P<host>[^:]+):(?P<port>\d+)/(?P<name>.+)',
        DATABASE_URL
    )
    if match:
        DATABASES = {
            'default': {
                'ENGINE': 'django.db.backends.postgresql',
                'NAME': match.group('name'),
                'USER': match.group('user'),
                'PASSWORD': match.group('password'),
                'HOST': match.group('host'),
                'PORT': match.group('port'),
            }
        }
    else:
        DATABASES = {
            'default': {
                'ENGINE': 'django.db.backends.sqlite3',
                'NAME': BASE_DIR / 'db.sqlite3',
            }
        }
else:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'db.sqlite3',
        }
    }

# Password validation (length is checked in the register view)
AUTH_PASSWORD_VALIDATORS = []
MIN_PASSWORD_LENGTH = 8

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# =============================================================================
# JWT Configuration (tokens are issued by this backend)
# =============================================================================
JWT_SECRET = os.getenv('JWT_SECRET', SECRET_KEY)
JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
JWT_ISSUER = os.getenv('JWT_ISSUER', 'legiseye')

# Access token lifetime in seconds (24 hours default)
JWT_ACCESS_TOKEN_TTL = int(os.getenv('JWT_ACCESS_TOKEN_TTL', '86400'))

# Google Sign-In for existing accounts (disabled when no client id is set)
GOOGLE_CLIENT_ID = os.getenv('GOOGLE_CLIENT_ID', '')
GOOGLE_JWKS_URL = os.getenv('GOOGLE_JWKS_URL', 'https://www.googleapis.com/oauth2/v3/certs')
GOOGLE_JWKS_CACHE_TTL = int(os.getenv('GOOGLE_JWKS_CACHE_TTL', '3600'))

# Lifetime of password reset tokens in seconds (1 hour)
PASSWORD_RESET_TTL_SECONDS = int(os.getenv('PASSWORD_RESET_TTL_SECONDS', '3600'))

# =============================================================================
# Redis
# =============================================================================
REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')

# =============================================================================
# Django Channels (WebSocket Support)
# =============================================================================
CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels_redis.core.RedisChannelLayer',
        'CONFIG': {
            'hosts': [REDIS_URL],
        },
    },
}

# =============================================================================
# LLM provider
# =============================================================================
# "gemini" (default) or "openai" (any OpenAI-compatible endpoint)
LLM_PROVIDER = os.getenv('LLM_PROVIDER', 'gemini')

GEMINI_API_KEY = os.getenv('GEMINI_API_KEY', '')
GEMINI_BASE_URL = os.getenv('GEMINI_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta')
GEMINI_MODEL = os.getenv('GEMINI_MODEL', 'gemini-1.5-flash')
GEMINI_EMBED_MODEL = os.getenv('GEMINI_EMBED_MODEL', 'text-embedding-004')
GEMINI_TIMEOUT = int(os.getenv('GEMINI_TIMEOUT', '120'))
GEMINI_EMBED_TIMEOUT = int(os.getenv('GEMINI_EMBED_TIMEOUT', '60'))

OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL', 'https://api.openai.com/v1')
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')
OPENAI_TIMEOUT = int(os.getenv('OPENAI_TIMEOUT', '120'))

# Embedding vector size (text-embedding-004 produces 768 dimensions)
EMBEDDING_DIMENSIONS = int(os.getenv('EMBEDDING_DIMENSIONS', '768'))

# =============================================================================
# Pinecone vector index
# =============================================================================
PINECONE_API_KEY = os.getenv('PINECONE_API_KEY', '')
PINECONE_INDEX_NAME = os.getenv('PINECONE_INDEX_NAME', 'legiseye')

# Number of matches requested per strategy, and for the unfiltered fallback
RAG_TOP_K = int(os.getenv('RAG_TOP_K', '5'))
RAG_FALLBACK_TOP_K = int(os.getenv('RAG_FALLBACK_TOP_K', '50'))

# Matches scoring below this cosine similarity are dropped
RAG_MIN_RELEVANCE_SCORE = float(os.getenv('RAG_MIN_RELEVANCE_SCORE', '0.5'))

# =============================================================================
# File Upload Configuration
# =============================================================================
# Root directory for uploaded files
UPLOAD_ROOT = Path(os.getenv('UPLOAD_ROOT', '/data/uploads'))

# Root directory for extracted page text (sidecar files)
EXTRACTED_ROOT = Path(os.getenv('EXTRACTED_ROOT', '/data/extracted'))

# URL prefix under which stored files are served (<prefix>/<document_id>/file)
MEDIA_BASE_URL = os.getenv('MEDIA_BASE_URL', '/api/documents')

# Maximum file size in bytes (50MB default)
MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', 50 * 1024 * 1024))

# Allowed MIME types for upload
ALLOWED_CONTENT_TYPES = [
    'application/pdf',
    'text/plain',
    'text/markdown',
    # Some systems use these for markdown
    'text/x-markdown',
]

# Allowed file extensions (used as secondary check)
ALLOWED_EXTENSIONS = ['.pdf', '.txt', '.md', '.markdown']

# =============================================================================
# Email (SMTP)
# =============================================================================
EMAIL_BACKEND = os.getenv('EMAIL_BACKEND', 'django.core.mail.backends.smtp.EmailBackend')
EMAIL_HOST = os.getenv('SMTP_HOST', 'localhost')
EMAIL_PORT = int(os.getenv('SMTP_PORT', '587'))
EMAIL_HOST_USER = os.getenv('SMTP_USER', '')
EMAIL_HOST_PASSWORD = os.getenv('SMTP_PASSWORD', '')
EMAIL_USE_TLS = os.getenv('SMTP_USE_TLS', 'True').lower() in ('true', '1', 'yes')
EMAIL_TIMEOUT = int(os.getenv('SMTP_TIMEOUT', '10'))
DEFAULT_FROM_EMAIL = f"LegisEye <{EMAIL_HOST_USER or 'no-reply@legiseye.app'}>"

# Base URL of the web client, used in email links
FRONTEND_BASE_URL = os.getenv('FRONTEND_BASE_URL', 'http://localhost:3000')

# =============================================================================
# Teams
# =============================================================================
INVITATION_TTL_DAYS = int(os.getenv('INVITATION_TTL_DAYS', '7'))

# =============================================================================
# Translation (LibreTranslate-compatible API)
# =============================================================================
TRANSLATION_API_URL = os.getenv('TRANSLATION_API_URL', 'https://libretranslate.com/translate')
TRANSLATION_API_KEY = os.getenv('TRANSLATION_API_KEY', '')
TRANSLATION_TIMEOUT = int(os.getenv('TRANSLATION_TIMEOUT', '15'))

# =============================================================================
# Logging
# =============================================================================
LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {message}',
            'style': '{',
        },
        'json': {
            'format': '%(message)s',  # Audit logs are already JSON
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'audit': {
            'class': 'logging.StreamHandler',
            'formatter': 'json',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'INFO',
    },
    'loggers': {
        'apps.authn': {
            'handlers': ['console'],
            'level': 'DEBUG',
            'propagate': False,
        },
        'apps.rag': {
            'handlers': ['console'],
            'level': 'DEBUG',
            'propagate': False,
        },
        'apps.indexing': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'audit': {
            'handlers': ['audit'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}
