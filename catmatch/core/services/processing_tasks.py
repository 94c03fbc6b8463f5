"""
Per-upload background task handles.

Each upload runs as one asyncio task; a semaphore bounds how many uploads
are processed at the same time. Cancellation of an upload is cooperative
and goes through its status, not through Task.cancel(); the latter is
only used on shutdown, leaving uploads in processing for resume.
"""

import asyncio
from collections.abc import Awaitable, Callable

from catmatch.config import bind_task_context, get_logger

logger = get_logger(__name__)

UploadRunner = Callable[[str], Awaitable[object]]


class ProcessingTaskManager:
    """Registry of running upload tasks."""

    def __init__(self, max_concurrent: int = 4) -> None:
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._tasks: dict[str, asyncio.Task] = {}

    def schedule(self, upload_id: str, runner: UploadRunner) -> bool:
        """
        Start processing an upload in the background.

        Returns False if a task for the upload is already running.
        """
        if self.is_running(upload_id):
            logger.info("upload_task_already_running", upload_id=upload_id)
            return False

        task = asyncio.create_task(self._run(upload_id, runner), name=f"upload-{upload_id}")
        self._tasks[upload_id] = task
        task.add_done_callback(lambda t: self._forget(upload_id, t))
        logger.info("upload_task_scheduled", upload_id=upload_id, running=len(self._tasks))
        return True

    async def _run(self, upload_id: str, runner: UploadRunner) -> None:
        bind_task_context(upload_id=upload_id)
        async with self._semaphore:
            try:
                await runner(upload_id)
            except Exception as e:
                # The runner records failures itself; this only catches bugs in it
                logger.error(
                    "upload_task_crashed",
                    upload_id=upload_id,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )

    def _forget(self, upload_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(upload_id) is task:
            del self._tasks[upload_id]

    def is_running(self, upload_id: str) -> bool:
        task = self._tasks.get(upload_id)
        return task is not None and not task.done()

    @property
    def running_count(self) -> int:
        return sum(1 for t in self._tasks.values() if not t.done())

    async def wait(self, upload_id: str) -> None:
        """Wait for an upload's task to finish, if one is running."""
        task = self._tasks.get(upload_id)
        if task is not None:
            await asyncio.wait({task})

    async def wait_all(self) -> None:
        """Wait for every scheduled task."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks)

    async def shutdown(self) -> None:
        """Cancel running tasks; their uploads stay in processing."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("upload_tasks_shutdown", cancelled=len(tasks))
