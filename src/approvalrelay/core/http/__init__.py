from .client import PushError, get_http_client, push_status

__all__ = ["PushError", "get_http_client", "push_status"]
