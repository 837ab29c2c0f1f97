"""
Module proxy server for modrelay.
"""

from .server import (
    ProtocolTranslator,
    ProxyResponse,
    ProxyServer,
    create_proxy_server,
    running_proxy,
    run_proxy_server,
)

__all__ = [
    'ProtocolTranslator',
    'ProxyResponse',
    'ProxyServer',
    'create_proxy_server',
    'running_proxy',
    'run_proxy_server',
]
