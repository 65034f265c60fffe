"""
Pipeline status poller - watches remote step statuses for all services.

One batched status call per tick. The loop keeps going while any step is
running, then for a grace period of extra ticks, then stops by itself.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Union

from controller.src.config import Settings, get_settings
from controller.src.errors import StaleDataRace
from controller.src.models import (
    PipelineStep,
    Stage,
    StepStatus,
    TrackedExecution,
    latest_steps,
)
from controller.src.services.workflow import StageView, build_stage_view

logger = logging.getLogger(__name__)

FinishedCallback = Callable[[TrackedExecution, bool], None]

class PipelineStatusPoller:
    def __init__(
        self,
        client,
        service_ids: Union[List[int], Callable[[], List[int]]],
        settings: Optional[Settings] = None,
        on_finished: Optional[FinishedCallback] = None,
    ):
        settings = settings or get_settings()
        self.client = client
        self.interval = settings.poll_interval
        self.grace_poll_count = settings.grace_poll_count
        self.on_finished = on_finished

        self._service_ids = service_ids
        self._timer: Optional[asyncio.Task] = None
        self._in_flight: set = set()
        self._generation = 0

        self.statuses: Dict[int, List[PipelineStep]] = {}
        self.tracked: Optional[TrackedExecution] = None
        self.grace_count = 0
        self.build_completed_count = 0
        self.last_error: Optional[str] = None

    @property
    def is_polling(self) -> bool:
        return self._timer is not None

    @property
    def generation(self) -> int:
        return self._generation

    def service_ids(self) -> List[int]:
        ids = self._service_ids() if callable(self._service_ids) else self._service_ids
        return [i for i in ids if i is not None]

    def start(self, tracked: Optional[TrackedExecution] = None):
        """
        (Re)start the loop: one immediate fetch, then one every interval.
        Any previous timer is cancelled first, so there is never more than one.
        """
        self.stop()
        if tracked is not None:
            self.tracked = tracked
        self._generation += 1
        self.grace_count = 0
        self.last_error = None
        self._timer = asyncio.get_running_loop().create_task(self._run(self._generation))
        logger.info(f"Pipeline polling started (generation {self._generation})")

    def stop(self):
        """Cancel the timer. In-flight fetches are left to finish and get discarded."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        self._generation += 1
        self.grace_count = 0
        logger.info("Pipeline polling stopped")

    def clear_tracked(self, service_id: Optional[int] = None, stage: Optional[Stage] = None):
        if self.tracked is None:
            return
        if service_id is not None and not self.tracked.names(service_id, stage):
            return
        logger.info(f"Dropping tracked execution for service {self.tracked.service_id}")
        self.tracked = None

    async def _run(self, generation: int):
        try:
            while generation == self._generation:
                task = asyncio.create_task(self._tick(generation))
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            pass

    async def poll_once(self) -> bool:
        """Run one tick now. Returns False when the fetch failed."""
        return await self._tick(self._generation)

    async def refresh(self) -> bool:
        """
        Out-of-band fetch. Does not start the loop and never counts toward
        the grace period.
        """
        return await self._tick(self._generation, count_grace=False)

    async def drain(self):
        """Wait for fetches already in flight."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _tick(self, generation: int, count_grace: bool = True) -> bool:
        service_ids = self.service_ids()
        try:
            results = await self.client.fetch_pipeline_statuses(service_ids)
        except Exception as e:
            if generation != self._generation:
                logger.debug(f"Ignoring failure from superseded generation {generation}: {e}")
                return False
            # Fail closed: the caller has to restart explicitly
            logger.error(f"Pipeline status fetch failed, stopping polling: {e}")
            self.last_error = str(e)
            self.stop()
            return False

        try:
            self._accept(generation, results, count_grace)
        except StaleDataRace as e:
            logger.debug(f"Discarding status response: {e}")
        return True

    def _accept(self, generation: int, results: Dict[int, List[PipelineStep]], count_grace: bool = True):
        if generation != self._generation:
            raise StaleDataRace(
                f"generation {generation} superseded by {self._generation}"
            )
        self._apply(results, count_grace)

    def _apply(self, results: Dict[int, List[PipelineStep]], count_grace: bool = True):
        still_running = False

        for service_id, steps in results.items():
            if not steps:
                continue
            self.statuses[service_id] = steps
            if any(step.normalized_status == StepStatus.RUNNING for step in steps):
                still_running = True

        self._check_tracked(results)

        # Only loop ticks move the grace counter
        if not count_grace:
            return
        if still_running:
            self.grace_count = 0
        elif self.is_polling:
            self.grace_count += 1
            if self.grace_count >= self.grace_poll_count:
                logger.info(f"No running steps for {self.grace_count} polls, stopping")
                self._expire_tracked()
                self.stop()

    def _check_tracked(self, results: Dict[int, List[PipelineStep]]):
        tracked = self.tracked
        if tracked is None:
            return

        steps = results.get(tracked.service_id)
        if not steps:
            return
        step = latest_steps(steps).get(tracked.step_name)
        if step is None:
            return

        if step.normalized_status == StepStatus.RUNNING:
            tracked.observed_running = True
            return
        if not step.is_terminal:
            return

        # A terminal record older than the submission belongs to the previous run
        is_new_record = tracked.baseline_step_id is None or step.id > tracked.baseline_step_id
        if not (is_new_record or tracked.observed_running):
            return

        success = step.normalized_status == StepStatus.SUCCESS
        self.tracked = None
        if tracked.step_name == Stage.BUILD.value:
            self.build_completed_count += 1

        logger.info(
            f"Tracked {tracked.step_name} for {tracked.service_name} finished: "
            f"{'success' if success else 'failed'}"
        )
        self._notify(tracked, success)

    def _expire_tracked(self):
        if self.tracked is None:
            return
        logger.warning(
            f"No terminal status seen for {self.tracked.step_name} of "
            f"{self.tracked.service_name}; releasing tracked execution"
        )
        self.tracked = None

    def _notify(self, tracked: TrackedExecution, success: bool):
        callback = self.on_finished
        if callback is None:
            return
        try:
            callback(tracked, success)
        except Exception:
            logger.exception("Execution finished callback failed")

    def latest_step(self, service_id: int, step_name: str) -> Optional[PipelineStep]:
        return latest_steps(self.statuses.get(service_id, [])).get(step_name)

    def stage_view(self, service_id: int) -> List[StageView]:
        return build_stage_view(self.statuses.get(service_id, []))
