from typing import Annotated

from fastapi import Depends

from wiki_console.auth import verify_token
from wiki_console.imports.controller import ImportWorkflowController
from wiki_console.notifications.service import NotificationCenter
from wiki_console.runtime import Runtime, get_runtime
from wiki_console.system_status.overlay import SystemStatusOverlay

RuntimeDep = Annotated[Runtime, Depends(get_runtime)]
APIKey = Annotated[dict, Depends(verify_token)]


def get_import_controller(runtime: RuntimeDep, claims: APIKey) -> ImportWorkflowController:
    return runtime.imports.controller_for(claims["sub"])


def get_overlay(runtime: RuntimeDep) -> SystemStatusOverlay:
    return runtime.overlay


def get_notification_center(runtime: RuntimeDep) -> NotificationCenter:
    return runtime.notifications


ImportControllerDep = Annotated[ImportWorkflowController, Depends(get_import_controller)]
OverlayDep = Annotated[SystemStatusOverlay, Depends(get_overlay)]
NotificationCenterDep = Annotated[NotificationCenter, Depends(get_notification_center)]
