"""
Process-wide state: credentials, the active job, and the job history.
Owned by the composition root and passed to whoever needs it.
"""
import json
import logging
from typing import Callable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .kv_storage import KVStorage
from .models import ApiKeys, GenerationJob

logger = logging.getLogger(__name__)

API_KEYS_KEY = "apiKeys"
HISTORY_KEY = "jobHistory"

JobCallback = Callable[[Optional[GenerationJob]], None]


class JobStateStore:
    def __init__(self, kv: KVStorage):
        self.kv = kv
        self.api_keys: Optional[ApiKeys] = None
        self.current_job: Optional[GenerationJob] = None
        self.job_history: List[GenerationJob] = []
        self._subscribers: List[JobCallback] = []

    async def load(self) -> None:
        """Restore credentials and history from the KV store."""
        raw_keys = await self.kv.get(API_KEYS_KEY)
        if raw_keys:
            try:
                self.api_keys = ApiKeys.model_validate_json(raw_keys)
            except PydanticValidationError as e:
                logger.warning(f"Ignoring unreadable saved API keys: {e}")

        raw_history = await self.kv.get(HISTORY_KEY)
        if not raw_history:
            self.job_history = []
            return
        try:
            entries = json.loads(raw_history)
        except ValueError as e:
            logger.warning(f"Ignoring unreadable job history: {e}")
            entries = []
        if not isinstance(entries, list):
            logger.warning("Saved job history is not a list, ignoring it")
            entries = []

        history = []
        for entry in entries:
            try:
                history.append(GenerationJob.model_validate(entry))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed history entry: {e}")
        self.job_history = history
        logger.info(f"Loaded {len(history)} jobs from history")

    async def set_api_keys(self, keys: ApiKeys) -> None:
        if not keys.kie:
            raise ValidationError("Kie.ai API key is required")
        self.api_keys = keys
        if await self.kv.set(API_KEYS_KEY, keys.model_dump_json()):
            logger.info("API keys saved")
        else:
            logger.warning("Failed to persist API keys")

    async def clear_api_keys(self) -> None:
        self.api_keys = None
        await self.kv.delete(API_KEYS_KEY)
        logger.info("API keys cleared")

    def subscribe(self, callback: JobCallback) -> Callable[[], None]:
        """Register for current-job updates; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def set_current_job(self, job: Optional[GenerationJob]) -> None:
        self.current_job = job
        for callback in list(self._subscribers):
            callback(job)

    def get_job(self, job_id: str) -> Optional[GenerationJob]:
        for job in self.job_history:
            if job.id == job_id:
                return job
        return None

    async def add_job_to_history(self, job: GenerationJob) -> None:
        snapshot = job.model_copy(deep=True)
        self.job_history = [snapshot] + [j for j in self.job_history if j.id != job.id]
        await self._persist_history()
        logger.info(f"Added job {job.id} to history ({len(self.job_history)} total)")

    async def remove_job_from_history(self, job_id: str) -> None:
        self.job_history = [j for j in self.job_history if j.id != job_id]
        await self._persist_history()
        logger.info(f"Removed job {job_id} from history")

    async def clear_history(self) -> None:
        self.job_history = []
        await self.kv.delete(HISTORY_KEY)
        logger.info("Job history cleared")

    async def _persist_history(self) -> None:
        payload = json.dumps([j.model_dump(mode="json") for j in self.job_history])
        if not await self.kv.set(HISTORY_KEY, payload):
            logger.warning(f"Failed to persist job history ({len(self.job_history)} jobs); saved copy is stale")
