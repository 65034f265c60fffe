"""
Request dependencies shared by the routers.
"""

from fastapi import HTTPException, Request

from controller.src.services.executor import ExecutionController
from controller.src.stores import RedisCredentialStore

def get_controller(request: Request) -> ExecutionController:
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Controller not initialized")
    return controller

def get_credential_store(request: Request) -> RedisCredentialStore:
    store = getattr(request.app.state, "credential_store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Credential store not initialized")
    return store
