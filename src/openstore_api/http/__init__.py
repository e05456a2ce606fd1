from .errors import error_payload, install_error_handlers, success_payload

__all__ = ["error_payload", "install_error_handlers", "success_payload"]
