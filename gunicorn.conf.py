"""Gunicorn configuration for the provisioning gateway.

Secrets:
    KEYCLOAK_ADMIN_CLIENT_SECRET is read by settings.py from
    /run/secrets/keycloak_admin_client_secret first, then from the
    environment. The post_fork hook only reports which source is present so
    a misconfigured worker is visible in the logs before the first request.
"""
import os
from pathlib import Path

wsgi_app = "provisioning_gateway.flask_app:create_app()"
bind = os.environ.get("GUNICORN_BIND", "0.0.0.0:8000")
workers = int(os.environ.get("GUNICORN_WORKERS", "2"))
# Orchestrator runs list/count concurrently on its own executor threads
threads = int(os.environ.get("GUNICORN_THREADS", "4"))
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "30"))
accesslog = "-"
loglevel = os.environ.get("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"
    secret_file = Path("/run/secrets") / "keycloak_admin_client_secret"

    if secret_file.is_file():
        worker.log.info("Admin client secret available in /run/secrets")
    elif os.environ.get("KEYCLOAK_ADMIN_CLIENT_SECRET"):
        worker.log.info("Admin client secret taken from environment")
    elif demo_mode:
        worker.log.warning("DEMO_MODE=true: using demo admin client secret")
    else:
        worker.log.error("KEYCLOAK_ADMIN_CLIENT_SECRET missing; app startup will fail")

    if not os.environ.get("ORGANIZER_SERVICE_URL"):
        worker.log.warning("ORGANIZER_SERVICE_URL not set; organizer registration disabled")
