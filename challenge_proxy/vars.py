import os

SERVICE_NAME = os.getenv("SERVICE_NAME", "challenge-proxy")
HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", "8080"))

# External service that solves bot challenges; the proxy only ever redirects to it
CHALLENGE_SOLVER_URL = os.environ.get(
    "CHALLENGE_SOLVER_URL", "https://recaptcha.uraverageopdoge.workers.dev"
).rstrip("/")
PROXIED_BY = os.environ.get("PROXIED_BY", "Roogle Northflank Proxy")

PROXY_TIMEOUT = float(os.environ.get("PROXY_TIMEOUT", "30"))
PUBLIC_URL = os.environ.get("PUBLIC_URL", "").rstrip("/")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
