from typing import Annotated

from fastapi import Depends, Request

from qrnotify.services.dispatch import Dispatcher
from qrnotify.services.limiter import AdmissionGate


# ── Rate limiter / dispatch ────────────────────────────────────────────────
# Both are built once in the app lifespan and kept on app.state.


def get_gate(request: Request) -> AdmissionGate:
    return request.app.state.gate


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


Gate = Annotated[AdmissionGate, Depends(get_gate)]
NotificationDispatcher = Annotated[Dispatcher, Depends(get_dispatcher)]
