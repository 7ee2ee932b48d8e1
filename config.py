"""
Configuration Management
========================

Environment configuration for the Intextive Generator.
Supports local development (.env / environment) and Streamlit secrets.
"""

import os
from dataclasses import dataclass
from typing import Optional, Dict, Any


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).lower() == 'true'


@dataclass
class Config:
    """Application configuration"""

    # App settings
    app_name: str = "Intextive Generator"
    app_version: str = "1.0.0"
    debug: bool = False

    # n8n webhook (submission)
    webhook_url: str = ""
    webhook_timeout_seconds: float = 120.0

    # n8n public API (status table)
    n8n_api_url: str = ""
    n8n_api_key: str = ""
    n8n_data_table_id: str = ""
    n8n_project_id: str = ""
    status_timeout_seconds: float = 15.0

    # Processing step
    processing_countdown_seconds: int = 30
    status_poll_interval_seconds: float = 5.0
    status_poll_timeout_seconds: int = 300

    # Upload limits
    max_upload_size_mb: int = 50

    # API
    cors_origins: str = "http://localhost:8501"

    # Admin
    admin_password: str = ""
    posts_seed_path: str = "content/news.json"

    @classmethod
    def from_env(cls) -> 'Config':
        """Load configuration from environment variables"""
        return cls(
            # App settings
            app_name=os.getenv('APP_NAME', cls.app_name),
            app_version=os.getenv('APP_VERSION', cls.app_version),
            debug=_env_bool('DEBUG'),

            # Webhook
            webhook_url=os.getenv('N8N_WEBHOOK_URL', ''),
            webhook_timeout_seconds=float(os.getenv('WEBHOOK_TIMEOUT_SECONDS', '120')),

            # Status table
            n8n_api_url=os.getenv('N8N_API_URL', ''),
            n8n_api_key=os.getenv('N8N_API_KEY', ''),
            n8n_data_table_id=os.getenv('N8N_DATA_TABLE_ID', ''),
            n8n_project_id=os.getenv('N8N_PROJECT_ID', ''),
            status_timeout_seconds=float(os.getenv('STATUS_TIMEOUT_SECONDS', '15')),

            # Processing
            processing_countdown_seconds=int(os.getenv('PROCESSING_COUNTDOWN_SECONDS', '30')),
            status_poll_interval_seconds=float(os.getenv('STATUS_POLL_INTERVAL_SECONDS', '5')),
            status_poll_timeout_seconds=int(os.getenv('STATUS_POLL_TIMEOUT_SECONDS', '300')),

            # Uploads
            max_upload_size_mb=int(os.getenv('MAX_UPLOAD_SIZE_MB', '50')),

            # API
            cors_origins=os.getenv('CORS_ORIGINS', 'http://localhost:8501'),

            # Admin
            admin_password=os.getenv('ADMIN_PASSWORD', ''),
            posts_seed_path=os.getenv('POSTS_SEED_PATH', 'content/news.json'),
        )

    @classmethod
    def from_streamlit_secrets(cls) -> 'Config':
        """Load configuration from Streamlit secrets, falling back to the environment per key"""
        import streamlit as st

        env = cls.from_env()
        secrets = st.secrets

        return cls(
            app_name=env.app_name,
            app_version=env.app_version,
            debug=env.debug,

            webhook_url=secrets.get('N8N_WEBHOOK_URL', env.webhook_url),
            webhook_timeout_seconds=float(secrets.get('WEBHOOK_TIMEOUT_SECONDS', env.webhook_timeout_seconds)),

            n8n_api_url=secrets.get('N8N_API_URL', env.n8n_api_url),
            n8n_api_key=secrets.get('N8N_API_KEY', env.n8n_api_key),
            n8n_data_table_id=secrets.get('N8N_DATA_TABLE_ID', env.n8n_data_table_id),
            n8n_project_id=secrets.get('N8N_PROJECT_ID', env.n8n_project_id),
            status_timeout_seconds=env.status_timeout_seconds,

            processing_countdown_seconds=int(secrets.get('PROCESSING_COUNTDOWN_SECONDS', env.processing_countdown_seconds)),
            status_poll_interval_seconds=env.status_poll_interval_seconds,
            status_poll_timeout_seconds=env.status_poll_timeout_seconds,

            max_upload_size_mb=env.max_upload_size_mb,

            cors_origins=env.cors_origins,

            admin_password=secrets.get('ADMIN_PASSWORD', env.admin_password),
            posts_seed_path=env.posts_seed_path,
        )

    def missing_status_settings(self) -> Dict[str, bool]:
        """Which status-table settings are absent (True means missing)"""
        return {
            'apiUrl': not self.n8n_api_url,
            'apiKey': not self.n8n_api_key,
            'tableId': not self.n8n_data_table_id,
        }

    @property
    def status_configured(self) -> bool:
        return not any(self.missing_status_settings().values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (excluding sensitive keys)"""
        return {
            'app_name': self.app_name,
            'app_version': self.app_version,
            'debug': self.debug,
            'webhook_timeout_seconds': self.webhook_timeout_seconds,
            'processing_countdown_seconds': self.processing_countdown_seconds,
            'status_poll_interval_seconds': self.status_poll_interval_seconds,
            'max_upload_size_mb': self.max_upload_size_mb,
            # Don't expose URLs or API keys
            'has_webhook_url': bool(self.webhook_url),
            'has_status_api': self.status_configured,
            'has_admin_password': bool(self.admin_password),
        }


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get global configuration instance"""
    global _config
    if _config is None:
        # Streamlit secrets only exist when running under `streamlit run`
        try:
            _config = Config.from_streamlit_secrets()
        except Exception:
            _config = Config.from_env()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment"""
    global _config
    _config = None
    return get_config()
