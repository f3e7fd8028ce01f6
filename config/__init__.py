from .settings import DEFAULT_SETTINGS, NETWORK_NAME
