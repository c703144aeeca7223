from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from contextlib import AbstractContextManager
from typing import Callable, Dict, List
import logging
import time

from sqlmodel import Session

from ..application.services.notification_dispatcher import NotificationDispatcher
from ..exceptions import DispatchTimeout

logger = logging.getLogger(__name__)

TIMEOUT = "timeout"
ERROR = "error"

SessionFactory = Callable[[], AbstractContextManager]
DispatcherFactory = Callable[[Session], NotificationDispatcher]


class DispatchPool:
    """Drains unprocessed triggers with bounded concurrency.

    Each trigger runs on its own worker with its own session and deadline; a
    worker that times out leaves its trigger unprocessed for the next pass.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        dispatcher_factory: DispatcherFactory,
        max_workers: int = 10,
        timeout_seconds: float = 30.0,
        batch_limit: int = 100,
    ):
        self.session_factory = session_factory
        self.dispatcher_factory = dispatcher_factory
        self.max_workers = max_workers
        self.timeout_seconds = timeout_seconds
        self.batch_limit = batch_limit

    def pending_ids(self) -> List[int]:
        with self.session_factory() as session:
            triggers = self.dispatcher_factory(session).triggers.list_unprocessed(self.batch_limit)
            return [t.id for t in triggers]

    def _work(self, trigger_id: int) -> str:
        deadline = time.monotonic() + self.timeout_seconds
        try:
            with self.session_factory() as session:
                return self.dispatcher_factory(session).process(trigger_id, deadline=deadline)
        except DispatchTimeout:
            logger.warning(f"Trigger {trigger_id} timed out after {self.timeout_seconds}s; left for retry")
            return TIMEOUT
        except Exception:
            logger.exception(f"Trigger {trigger_id} processing crashed; left for retry")
            return ERROR

    def run_once(self) -> Dict[str, int]:
        ids = self.pending_ids()
        if not ids:
            return {}
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="dispatch") as executor:
            outcomes = Counter(executor.map(self._work, ids))
        summary = dict(outcomes)
        logger.info(f"Dispatch pass over {len(ids)} trigger(s): {summary}")
        return summary
