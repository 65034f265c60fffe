from controller.src.backend.client import BackendClient, BackendError

__all__ = [
    "BackendClient",
    "BackendError",
]
