"""AWS Lambda entry point.

Mangum translates Function URL / API Gateway events into ASGI, letting the
FastAPI app run unchanged on Lambda. Mangum buffers the streamed body, so on
Lambda the caller receives the full text in one response.
"""

from mangum import Mangum

from src.logging.audit import setup_logging
from src.main import app

# Lifespan is off on Lambda, so configure logging at cold start
setup_logging()

handler = Mangum(app, lifespan="off")
