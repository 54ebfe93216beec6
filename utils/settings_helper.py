"""
Settings helper: read site settings from DB for use in app context and routes.
"""
from models.settings import SiteSetting

PUBLIC_SETTING_KEYS = ('brochure_url',)
DEFAULT_SETTINGS = {
    'brochure_url': 'assets/brochure.pdf',
}


def get_setting(key, default=''):
    """Get setting value by key. Safe to call from any request context."""
    try:
        setting = SiteSetting.query.get(key)
        return setting.value if setting and setting.value is not None else default
    except Exception:
        return default


def get_public_settings():
    return {key: get_setting(key, DEFAULT_SETTINGS.get(key, '')) for key in PUBLIC_SETTING_KEYS}
