import asyncio, json, logging, time
from typing import Any, Dict, List, Optional

import httpx

from .errors import SubmissionError, TaskFailedError, TaskTimeoutError, TransportError, ValidationError
from .models import VideoOptions
from .prompt_optimizer import optimize_prompt
from .settings import (
    IMAGE_MODEL_ID, VIDEO_MODEL_ID, IMAGE_SIZE, IMAGE_RESOLUTION, IMAGE_RENDERING_SPEED, IMAGE_STYLE,
    IMAGE_NEGATIVE_PROMPT, VIDEO_NEGATIVE_PROMPT, IMAGE_PROMPT_MAX_LENGTH, VIDEO_PROMPT_MAX_LENGTH,
    KIE_API_BASE_URL, KIE_POLL_INTERVAL_MS, IMAGE_POLL_TIMEOUT_MS, VIDEO_POLL_TIMEOUT_MS,
    DEFAULT_VIDEO_DURATION, DEFAULT_VIDEO_RESOLUTION,
)

logger = logging.getLogger(__name__)

SUCCESS_CODE = 200


def _headers(api_key: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


def _require_key(api_key: Optional[str]) -> str:
    key = (api_key or "").strip()
    if not key:
        raise ValidationError("Missing Kie.ai API key")
    return key


def extract_result_urls(result_json: Any) -> List[str]:
    """Pull ``resultUrls`` out of a task's result envelope.

    The envelope arrives either as a JSON string or already decoded. Anything
    unparseable or oddly shaped gives an empty list; callers decide whether
    that is an error.
    """
    if not result_json:
        return []

    parsed = result_json
    if isinstance(result_json, str):
        try:
            parsed = json.loads(result_json)
        except ValueError:
            logger.debug(f"Could not parse Kie.ai resultJson: {result_json[:200]}")
            return []

    if not isinstance(parsed, dict):
        return []
    urls = parsed.get("resultUrls")
    if not isinstance(urls, list):
        return []
    return [url for url in urls if isinstance(url, str) and url]


class KieClient:
    """Submit/poll client for Kie.ai generation tasks."""

    def __init__(
        self,
        base_url: str = KIE_API_BASE_URL,
        poll_interval_ms: int = KIE_POLL_INTERVAL_MS,
        request_timeout_s: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.poll_interval_ms = poll_interval_ms
        self.request_timeout_s = request_timeout_s
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.request_timeout_s, transport=self._transport)

    async def submit(self, payload: Dict[str, Any], api_key: str) -> str:
        url = f"{self.base_url}/jobs/createTask"
        logger.info(f"Creating Kie.ai task for model {payload.get('model')}")
        async with self._client() as client:
            try:
                r = await client.post(
                    url,
                    headers={**_headers(api_key), "Content-Type": "application/json"},
                    json=payload,
                )
            except httpx.HTTPError as e:
                logger.error(f"Kie.ai createTask request failed: {e}")
                raise SubmissionError(f"Kie.ai createTask request failed: {e}") from e

        if r.status_code >= 400:
            logger.error(f"Kie.ai createTask failed {r.status_code}: {r.text}")
            raise SubmissionError(f"Kie.ai createTask failed: {r.text or r.reason_phrase}")

        try:
            body = r.json()
        except ValueError as e:
            raise SubmissionError("Kie.ai createTask returned invalid JSON") from e

        if not isinstance(body, dict):
            raise SubmissionError("Kie.ai createTask returned an unexpected response")
        data = body.get("data")
        task_id = data.get("taskId") if isinstance(data, dict) else None
        if body.get("code") != SUCCESS_CODE or not task_id:
            logger.error(f"Kie.ai createTask unexpected response: {body}")
            raise SubmissionError(body.get("msg") or "Kie.ai createTask returned an unexpected response")

        logger.info(f"Kie.ai task created with ID: {task_id}")
        return task_id

    async def _record_info(self, client: httpx.AsyncClient, task_id: str, api_key: str) -> Dict[str, Any]:
        try:
            r = await client.get(
                f"{self.base_url}/jobs/recordInfo",
                params={"taskId": task_id},
                headers=_headers(api_key),
            )
        except httpx.HTTPError as e:
            logger.error(f"Kie.ai recordInfo request failed for {task_id}: {e}")
            raise TransportError(f"Kie.ai recordInfo request failed: {e}") from e

        if r.status_code >= 400:
            logger.error(f"Kie.ai recordInfo failed {r.status_code}: {r.text}")
            raise TransportError(f"Kie.ai recordInfo failed: {r.text or r.reason_phrase}")

        try:
            body = r.json()
        except ValueError as e:
            raise TransportError("Kie.ai recordInfo returned invalid JSON") from e

        if not isinstance(body, dict):
            raise TransportError("Kie.ai recordInfo returned an unexpected response")
        data = body.get("data")
        if body.get("code") != SUCCESS_CODE or not isinstance(data, dict):
            raise TransportError(body.get("msg") or "Kie.ai recordInfo returned an unexpected response")
        return data

    async def poll(
        self,
        task_id: str,
        api_key: str,
        interval_ms: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Wait for a task to finish and return its record.

        Status is requested every ``interval_ms`` with no backoff. A
        ``timeout_ms`` of None polls until the provider reaches a terminal state.
        Otherwise the call fails at most one interval past ``timeout_ms``: the
        last sleep is shortened to the time left and a status request still in
        flight is abandoned once that allowance runs out.
        """
        interval_s = (self.poll_interval_ms if interval_ms is None else interval_ms) / 1000.0
        start = time.monotonic()
        deadline = None if timeout_ms is None else start + timeout_ms / 1000.0

        def timed_out() -> TaskTimeoutError:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.error(f"Kie.ai polling timeout for task {task_id} after {elapsed_ms:.0f}ms")
            return TaskTimeoutError("Timed out waiting for Kie.ai task to complete", task_id=task_id)

        async with self._client() as client:
            while True:
                if deadline is None:
                    data = await self._record_info(client, task_id, api_key)
                else:
                    allowance = max(deadline - time.monotonic(), interval_s)
                    try:
                        data = await asyncio.wait_for(self._record_info(client, task_id, api_key), allowance)
                    except asyncio.TimeoutError:
                        raise timed_out() from None

                state = str(data.get("state") or "").lower()
                logger.info(f"Kie.ai task {task_id} state: {state}")

                if state == "success":
                    return data
                if state == "fail":
                    message = data.get("failMsg") or "Kie.ai task failed"
                    logger.error(f"Kie.ai task {task_id} failed: {message}")
                    raise TaskFailedError(message, task_id=task_id)

                if deadline is None:
                    await asyncio.sleep(interval_s)
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise timed_out()
                await asyncio.sleep(min(interval_s, remaining))

    async def generate_image(
        self,
        prompt: str,
        api_key: str,
        timeout_ms: Optional[int] = IMAGE_POLL_TIMEOUT_MS,
    ) -> str:
        key = _require_key(api_key)
        payload = {
            "model": IMAGE_MODEL_ID,
            "input": {
                "prompt": optimize_prompt(prompt, IMAGE_PROMPT_MAX_LENGTH),
                "image_size": IMAGE_SIZE,
                "image_resolution": IMAGE_RESOLUTION,
                "max_images": 1,
                "rendering_speed": IMAGE_RENDERING_SPEED,
                "style": IMAGE_STYLE,
                "negative_prompt": IMAGE_NEGATIVE_PROMPT,
            },
        }
        task_id = await self.submit(payload, key)
        record = await self.poll(task_id, key, timeout_ms=timeout_ms)
        urls = extract_result_urls(record.get("resultJson"))
        if not urls:
            raise TransportError("Kie.ai did not return an image URL")
        return urls[0]

    async def generate_video(
        self,
        image_url: str,
        prompt: str,
        api_key: str,
        options: Optional[VideoOptions] = None,
        timeout_ms: Optional[int] = VIDEO_POLL_TIMEOUT_MS,
    ) -> str:
        key = _require_key(api_key)
        options = options or VideoOptions(duration=DEFAULT_VIDEO_DURATION, resolution=DEFAULT_VIDEO_RESOLUTION)
        payload = {
            "model": VIDEO_MODEL_ID,
            "input": {
                "prompt": optimize_prompt(prompt, VIDEO_PROMPT_MAX_LENGTH),
                "image_url": image_url,
                "duration": options.duration,
                "resolution": options.resolution,
                "negative_prompt": VIDEO_NEGATIVE_PROMPT,
                "enable_prompt_expansion": False,
            },
        }
        task_id = await self.submit(payload, key)
        record = await self.poll(task_id, key, timeout_ms=timeout_ms)
        urls = extract_result_urls(record.get("resultJson"))
        if not urls:
            raise TransportError("Kie.ai did not return a video URL")
        return urls[0]
