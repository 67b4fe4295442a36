from fastapi import APIRouter, UploadFile

from wiki_console.dependencies import ImportControllerDep
from wiki_console.imports.schemas import FilterRequest, ImportSessionView

router = APIRouter()


@router.post("/session", response_model=ImportSessionView)
async def open_session(controller: ImportControllerDep) -> ImportSessionView:
    controller.open()
    return controller.view()


@router.get("/session", response_model=ImportSessionView)
async def get_session(controller: ImportControllerDep) -> ImportSessionView:
    return controller.view()


@router.delete("/session", status_code=204)
async def close_session(controller: ImportControllerDep) -> None:
    controller.close()


@router.post("/session/file", response_model=ImportSessionView)
async def upload_file(file: UploadFile, controller: ImportControllerDep) -> ImportSessionView:
    content = await file.read()
    await controller.select_file(file.filename or "upload", content)
    return controller.view()


@router.post("/session/validate", response_model=ImportSessionView)
async def validate(controller: ImportControllerDep) -> ImportSessionView:
    await controller.validate()
    return controller.view()


@router.put("/session/filter", response_model=ImportSessionView)
async def set_filter(data: FilterRequest, controller: ImportControllerDep) -> ImportSessionView:
    controller.set_show_errors_only(data.show_errors_only)
    return controller.view()


@router.post("/session/filter/toggle", response_model=ImportSessionView)
async def toggle_filter(controller: ImportControllerDep) -> ImportSessionView:
    controller.toggle_show_errors_only()
    return controller.view()


@router.post("/session/previous", response_model=ImportSessionView)
async def previous_record(controller: ImportControllerDep) -> ImportSessionView:
    controller.previous_record()
    return controller.view()


@router.post("/session/next", response_model=ImportSessionView)
async def next_record(controller: ImportControllerDep) -> ImportSessionView:
    controller.next_record()
    return controller.view()


@router.post("/session/submit", status_code=202, response_model=ImportSessionView)
async def submit(controller: ImportControllerDep) -> ImportSessionView:
    """Start the import job. Progress is read back through ``GET /session``."""
    controller.submit_in_background()
    return controller.view()
