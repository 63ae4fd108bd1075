import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx
from google.genai import types

from veo_generator.config import DEFAULT_VEO_MODEL_ID, Settings
from veo_generator.models.schemas import GenerationConfig
from veo_generator.services.gemini_client import GeminiVideoBackend, create_genai_client

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_VIDEO_MIME_TYPE = "video/mp4"

MSG_INITIALIZING = "Initializing video generation..."
MSG_SUBMITTED = "Video synthesis started... This may take several minutes."
MSG_POLLING = "Checking generation status..."
MSG_FINALIZING = "Finalizing video..."
MSG_DOWNLOADING = "Downloading generated video..."
MSG_COMPLETE = "Generation complete!"

ProgressCallback = Callable[[str], None]


class VideoGenerationError(RuntimeError):
    pass


class ConfigurationError(VideoGenerationError):
    pass


class GenerationFailedError(VideoGenerationError):
    pass


class DownloadError(VideoGenerationError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class GenerationInProgressError(VideoGenerationError):
    pass


class GenerationTimeoutError(VideoGenerationError):
    pass


class GenerationCancelledError(VideoGenerationError):
    pass


@dataclass(frozen=True)
class VideoArtifact:
    content: bytes
    mime_type: str = DEFAULT_VIDEO_MIME_TYPE


def build_generation_request(config: GenerationConfig, model_id: str = DEFAULT_VEO_MODEL_ID) -> Dict[str, Any]:
    # resolution and sound_enabled stay out until the API documents them.
    request: Dict[str, Any] = {
        "model": model_id,
        "prompt": config.prompt,
        "config": types.GenerateVideosConfig(
            number_of_videos=1,
            aspect_ratio=config.aspect_ratio.value,
        ),
    }
    if config.image is not None:
        request["image"] = types.Image(
            image_bytes=config.image.to_bytes(),
            mime_type=config.image.mime_type,
        )
    return request


def extract_video_uri(operation: Any) -> Optional[str]:
    response = getattr(operation, "response", None)
    videos = getattr(response, "generated_videos", None) or []
    if not videos:
        return None
    video = getattr(videos[0], "video", None)
    return getattr(video, "uri", None) or None


def _failure_message(operation: Any) -> str:
    message = "Video generation failed or the API returned no video URI."
    response = getattr(operation, "response", None)
    reasons = getattr(response, "rai_media_filtered_reasons", None)
    if reasons:
        message = f"{message} Filtered: {'; '.join(reasons)}"
    return message


def _operation_error(operation: Any) -> Optional[str]:
    error = getattr(operation, "error", None)
    if not error:
        return None
    if isinstance(error, dict):
        return error.get("message") or str(error)
    return str(error)


class CompletionPoller:
    """Fixed-delay polling of one operation until it reports ``done``."""

    def __init__(
        self,
        backend,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._backend = backend
        self.interval = interval
        self.max_attempts = max_attempts
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

    def _wait(self, seconds: float, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is None:
            self._sleep(seconds)
        elif cancel_event.wait(seconds):
            raise GenerationCancelledError("Video generation was cancelled.")

    def await_completion(
        self,
        operation: Any,
        on_poll: Optional[Callable[[], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        started = self._clock()
        attempts = 0
        while not getattr(operation, "done", False):
            if cancel_event is not None and cancel_event.is_set():
                raise GenerationCancelledError("Video generation was cancelled.")
            if self.max_attempts is not None and attempts >= self.max_attempts:
                raise GenerationTimeoutError(
                    f"Video generation did not finish after {attempts} status checks."
                )
            delay = self.interval
            if self.timeout is not None:
                remaining = self.timeout - (self._clock() - started)
                if remaining <= 0:
                    raise self._timed_out()
                delay = min(delay, remaining)

            self._wait(delay, cancel_event)
            # No status query once the deadline has passed.
            if self.timeout is not None and self._clock() - started >= self.timeout:
                raise self._timed_out()
            if on_poll is not None:
                on_poll()
            attempts += 1
            logger.debug("Polling operation %s (attempt %d)", getattr(operation, "name", "?"), attempts)
            operation = self._backend.poll(operation)
        return operation

    def _timed_out(self) -> GenerationTimeoutError:
        return GenerationTimeoutError(f"Video generation did not finish within {self.timeout:g} seconds.")


class VideoGenerator:
    def __init__(
        self,
        api_key: Optional[str],
        model_id: str = DEFAULT_VEO_MODEL_ID,
        backend=None,
        http_client: Optional[httpx.Client] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        poll_max_attempts: Optional[int] = None,
        poll_timeout: Optional[float] = None,
        download_timeout: float = 300.0,
        poller_factory: Callable[..., CompletionPoller] = CompletionPoller,
    ):
        self._api_key = api_key
        self.model_id = model_id
        self._backend = backend
        self._http_client = http_client
        self._poll_interval = poll_interval
        self._poll_max_attempts = poll_max_attempts
        self._poll_timeout = poll_timeout
        self._download_timeout = download_timeout
        self._poller_factory = poller_factory
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "VideoGenerator":
        kwargs = dict(
            api_key=settings.gemini_api_key,
            model_id=settings.veo_model_id,
            poll_interval=settings.poll_interval_seconds,
            poll_max_attempts=settings.poll_max_attempts,
            poll_timeout=settings.poll_timeout_seconds,
            download_timeout=settings.download_timeout_seconds,
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def generate(
        self,
        config: GenerationConfig,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> VideoArtifact:
        if not self._api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY environment variable not set. Please ensure it is configured."
            )
        if not self._lock.acquire(blocking=False):
            raise GenerationInProgressError("A video generation is already in progress.")
        try:
            return self._generate(config, on_progress or (lambda _message: None), cancel_event)
        finally:
            self._lock.release()

    def _get_backend(self):
        if self._backend is None:
            self._backend = GeminiVideoBackend(create_genai_client(self._api_key))
        return self._backend

    def _generate(
        self,
        config: GenerationConfig,
        on_progress: ProgressCallback,
        cancel_event: Optional[threading.Event],
    ) -> VideoArtifact:
        backend = self._get_backend()
        on_progress(MSG_INITIALIZING)

        request = build_generation_request(config, self.model_id)
        operation = backend.submit(request)
        logger.info("Veo operation %s submitted", getattr(operation, "name", None))
        on_progress(MSG_SUBMITTED)

        poller = self._poller_factory(
            backend,
            interval=self._poll_interval,
            max_attempts=self._poll_max_attempts,
            timeout=self._poll_timeout,
        )
        operation = poller.await_completion(
            operation,
            on_poll=lambda: on_progress(MSG_POLLING),
            cancel_event=cancel_event,
        )

        on_progress(MSG_FINALIZING)
        remote_error = _operation_error(operation)
        if remote_error:
            raise GenerationFailedError(f"Video generation failed: {remote_error}")

        uri = extract_video_uri(operation)
        if not uri:
            raise GenerationFailedError(_failure_message(operation))

        if cancel_event is not None and cancel_event.is_set():
            raise GenerationCancelledError("Video generation was cancelled.")

        on_progress(MSG_DOWNLOADING)
        artifact = self._download(uri)
        on_progress(MSG_COMPLETE)
        return artifact

    def _download(self, uri: str) -> VideoArtifact:
        # The URI carries its own query (alt=media); the key is added to it.
        url = httpx.URL(uri).copy_merge_params({"key": self._api_key})
        if self._http_client is not None:
            response = self._http_client.get(url, follow_redirects=True)
        else:
            with httpx.Client(timeout=self._download_timeout) as client:
                response = client.get(url, follow_redirects=True)

        if not response.is_success:
            raise DownloadError(
                f"Failed to download video: {response.reason_phrase or response.status_code}",
                status_code=response.status_code,
            )

        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        content = response.content
        logger.info("Downloaded video (%.1f MB)", len(content) / 1024 / 1024)
        return VideoArtifact(content=content, mime_type=mime_type or DEFAULT_VIDEO_MIME_TYPE)
