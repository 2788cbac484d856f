"""
Test suite for project configuration.

The production settings module is imported directly because the test run
swaps in SQLite through settings_test.
"""

import importlib
import os
from unittest.mock import patch

from django.apps import apps
from django.conf import settings
from django.test import SimpleTestCase

from food_rescue_marketplace import settings as base_settings


class DatabaseSettingsTestCase(SimpleTestCase):
    """Verify the production database configuration."""

    def test_database_engine_is_mysql(self):
        self.assertEqual(base_settings.DATABASES['default']['ENGINE'], 'django.db.backends.mysql')

    def test_default_database_name(self):
        self.assertEqual(base_settings.DATABASES['default']['NAME'], 'food_rescue_db')

    def test_mysql_options(self):
        options = base_settings.DATABASES['default']['OPTIONS']

        self.assertEqual(options['charset'], 'utf8mb4')
        self.assertIn('STRICT_TRANS_TABLES', options['init_command'])

    def test_values_read_from_environment(self):
        env = {'DB_NAME': 'rescue_staging', 'PRICE_DECAY_RATE': '0.8'}
        try:
            with patch.dict(os.environ, env):
                reloaded = importlib.reload(base_settings)
                self.assertEqual(reloaded.DATABASES['default']['NAME'], 'rescue_staging')
                self.assertEqual(reloaded.PRICE_DECAY_RATE, 0.8)
        finally:
            importlib.reload(base_settings)


class ApplicationSettingsTestCase(SimpleTestCase):
    """Verify installed apps, middleware and REST framework configuration."""

    def test_required_apps_installed(self):
        for app_label in ['core', 'rest_framework', 'corsheaders']:
            self.assertTrue(apps.is_installed(app_label), app_label)

    def test_custom_user_model(self):
        self.assertEqual(settings.AUTH_USER_MODEL, 'core.User')

    def test_cors_middleware_precedes_common_middleware(self):
        middleware = settings.MIDDLEWARE

        self.assertLess(
            middleware.index('corsheaders.middleware.CorsMiddleware'),
            middleware.index('django.middleware.common.CommonMiddleware')
        )

    def test_jwt_authentication_is_default(self):
        self.assertEqual(
            settings.REST_FRAMEWORK['DEFAULT_AUTHENTICATION_CLASSES'],
            ['rest_framework_simplejwt.authentication.JWTAuthentication']
        )

    def test_exception_handler_configured(self):
        self.assertEqual(
            settings.REST_FRAMEWORK['EXCEPTION_HANDLER'],
            'core.handlers.marketplace_exception_handler'
        )

    def test_price_decay_rate_configured(self):
        self.assertEqual(settings.PRICE_DECAY_RATE, 0.5)

    def test_core_logger_configured(self):
        self.assertIn('core', settings.LOGGING['loggers'])
