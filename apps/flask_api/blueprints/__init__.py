"""Flask API Blueprints package.

- health: Health check, Cortex connectivity and version endpoints
- query: Storm query endpoint
"""

from apps.flask_api.blueprints.health import health_bp
from apps.flask_api.blueprints.query import query_bp

__all__ = [
    "health_bp",
    "query_bp",
]
