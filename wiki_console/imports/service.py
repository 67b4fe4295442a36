import structlog

from wiki_console.imports.backend import PageImportBackend
from wiki_console.imports.controller import ImportWorkflowController
from wiki_console.job_status.feed import JobStatusFeed
from wiki_console.notifications.service import NotificationCenter

logger = structlog.get_logger()


class ImportSessionRegistry:
    """One import controller per authenticated user, created on first use."""

    def __init__(
        self,
        backend: PageImportBackend,
        feed: JobStatusFeed,
        notifications: NotificationCenter,
    ) -> None:
        self._backend = backend
        self._feed = feed
        self._notifications = notifications
        self._controllers: dict[str, ImportWorkflowController] = {}

    def controller_for(self, owner: str) -> ImportWorkflowController:
        controller = self._controllers.get(owner)
        if controller is None:
            controller = ImportWorkflowController(
                self._backend,
                self._feed,
                self._notifications.notifier_for(owner),
                owner=owner,
            )
            self._controllers[owner] = controller
            logger.debug("import_controller_created", owner=owner)
        return controller

    def close_all(self) -> None:
        for controller in self._controllers.values():
            controller.close()
        self._controllers.clear()
