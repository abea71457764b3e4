"""
Guidance Task Dispatcher

Creates a task when a mentor flags that leadership input is needed during
initial contact, and completes it when a leader responds. Tasks live in
their own collection and reference the participant by id only.

Rules:
  - create requires non-blank guidance notes
  - complete fails with NotFoundError for an unknown id
  - completing an already-completed task is a ValidationError (no reopening)
"""

from __future__ import annotations

import logging
import uuid

from pathway.core.exceptions import ConcurrentModificationError, NotFoundError, ValidationError
from pathway.models.document import GUIDANCE_TASKS
from pathway.models.guidance import GuidanceStatus, GuidanceTask

logger = logging.getLogger(__name__)


class GuidanceTaskDispatcher:

    def __init__(self, store, clock, notifier=None, *, retry_limit: int = 3):
        self._store = store
        self._clock = clock
        self._notifier = notifier
        self._retry_limit = retry_limit

    def create(
        self,
        participant_id: str,
        participant_name: str,
        requester_id: str,
        requester_name: str,
        notes: str,
    ) -> str:
        if not notes or not notes.strip():
            raise ValidationError("Guidance notes are required", details={"guidance_notes": "required"})

        task = GuidanceTask(
            id=f"guidance_{uuid.uuid4().hex}",
            participant_id=participant_id,
            participant_name=participant_name,
            mentor_id=requester_id,
            mentor_name=requester_name,
            guidance_notes=notes.strip(),
            created_at=self._clock.now(),
        )
        self._store.create(GUIDANCE_TASKS, task.id, task.to_dict())
        logger.info("Guidance task %s created for participant %s", task.id, participant_id,
                    extra={"participant_id": participant_id})

        if self._notifier is not None:
            self._notifier.guidance_requested(task)
        return task.id

    def get(self, task_id: str) -> GuidanceTask:
        doc = self._store.get(GUIDANCE_TASKS, task_id)
        if doc is None:
            raise NotFoundError("GuidanceTask", task_id)
        return GuidanceTask.from_dict(doc.body)

    def complete(
        self,
        task_id: str,
        completer_id: str,
        completer_name: str,
        response: str,
        follow_up_notes: str | None = None,
    ) -> GuidanceTask:
        if not response or not response.strip():
            raise ValidationError("A response is required to complete a guidance task",
                                  details={"response": "required"})

        for attempt in range(1, self._retry_limit + 1):
            doc = self._store.get(GUIDANCE_TASKS, task_id)
            if doc is None:
                raise NotFoundError("GuidanceTask", task_id)
            task = GuidanceTask.from_dict(doc.body)
            if task.is_completed:
                raise ValidationError(f"Guidance task {task_id} is already completed")

            task.status = GuidanceStatus.COMPLETED
            task.completed_at = self._clock.now()
            task.completed_by = completer_id
            task.completed_by_name = completer_name
            task.response = response.strip()
            task.follow_up_notes = follow_up_notes.strip() if follow_up_notes else None
            try:
                self._store.update(GUIDANCE_TASKS, task_id, task.to_dict(), doc.version)
            except ConcurrentModificationError:
                if attempt == self._retry_limit:
                    raise
                logger.info("Guidance task %s changed concurrently, retrying (%d)", task_id, attempt)
                continue
            logger.info("Guidance task %s completed by %s", task_id, completer_id,
                        extra={"participant_id": task.participant_id})
            return task

    def list_all(self) -> list[GuidanceTask]:
        tasks = [GuidanceTask.from_dict(d.body) for d in self._store.list(GUIDANCE_TASKS)]
        return sorted(tasks, key=lambda t: t.created_at, reverse=True)

    def list_pending(self) -> list[GuidanceTask]:
        return [t for t in self.list_all() if t.status == GuidanceStatus.PENDING]

    def list_for_mentor(self, mentor_id: str) -> list[GuidanceTask]:
        return [t for t in self.list_all() if t.mentor_id == mentor_id]

    def list_for_participant(self, participant_id: str) -> list[GuidanceTask]:
        return [t for t in self.list_all() if t.participant_id == participant_id]
