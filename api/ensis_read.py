"""Serverless entrypoint for the read endpoint.

Exposes the FastAPI ``app`` for an ASGI runtime. Route
``/<contract-address>/<function-name>`` to this function.
"""

from ensis_gateway.config_manager import get_config_manager
from ensis_gateway.endpoints import create_read_app
from ensis_gateway.logging_config import setup_logging_from_config

setup_logging_from_config(get_config_manager())

app = create_read_app()
