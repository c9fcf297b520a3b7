"""
App configuration for POS Licensing Service.
"""

import logging
import os
import sys

from django.apps import AppConfig

logger = logging.getLogger(__name__)

# Management commands that never serve traffic
_SKIP_COMMANDS = {
    "migrate",
    "makemigrations",
    "collectstatic",
    "shell",
    "check",
    "createsuperuser",
}


class PosLicensingServiceConfig(AppConfig):
    """App configuration for PosLicensingService."""

    name = "PosLicensingService"
    verbose_name = "POS Licensing Service"

    def ready(self):
        """Called when Django starts."""
        if len(sys.argv) > 1 and sys.argv[1] in _SKIP_COMMANDS:
            return

        # Django's reloader runs code twice; only the serving process sets up
        if os.environ.get("RUN_MAIN") == "false":
            return

        # Only setup once (avoid duplicate registration)
        if getattr(self, "_initialized", False):
            return

        logger.info("Setting up observability...")
        self.setup_observability()
        self.register_event_handlers()
        self._initialized = True
        logger.info("Observability setup complete")

    def setup_observability(self):
        """Setup observability after apps are ready."""
        from core.instrumentation import setup_opentelemetry

        try:
            setup_opentelemetry()
        except Exception as e:
            # The service still runs without trace export
            logger.warning(f"Failed to setup OpenTelemetry: {e}")

    def register_event_handlers(self):
        """Register event handlers after apps are ready."""
        from core.infrastructure.event_handlers import register_event_handlers as register

        register()
