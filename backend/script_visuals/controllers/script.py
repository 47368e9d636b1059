"""State controller for script generation, per-scene visuals and export."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Coroutine, Dict, List, Optional

from ..errors import ImageGenerationError, InputValidationError, ScriptVisualsError
from ..export import build_export
from ..models import GroundingChunk, Scene, ScriptData

logger = logging.getLogger(__name__)

MAX_IMAGE_SCENES = 5

IDLE = "idle"
PENDING = "pending"
READY = "ready"
FAILED = "failed"

NO_PROMPT_MESSAGE = "No visual prompt provided for this scene."
IMAGE_FAILED_MESSAGE = "Could not generate visual for this scene."
UNEXPECTED_MESSAGE = "An unexpected error occurred."

Launcher = Callable[[Coroutine[Any, Any, None]], Any]


_loop_lock = threading.Lock()
_loop: Optional[asyncio.AbstractEventLoop] = None


def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
    asyncio.set_event_loop(loop)
    loop.run_forever()


def _background_loop() -> asyncio.AbstractEventLoop:
    """Return the process-wide image loop, starting its thread on first use.

    The shared ``genai.Client`` keeps its async connection pool bound to the
    loop that first used it, so every batch must run on this same loop.
    """
    global _loop
    with _loop_lock:
        if _loop is None or _loop.is_closed():
            loop = asyncio.new_event_loop()
            thread = threading.Thread(target=_run_loop, args=(loop,), name="scene-images", daemon=True)
            thread.start()
            _loop = loop
        return _loop


def _log_batch_failure(future: concurrent.futures.Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Image batch crashed", exc_info=exc)


def run_in_background(coro: Coroutine[Any, Any, None]) -> concurrent.futures.Future:
    """Schedule ``coro`` on the shared background loop."""
    future = asyncio.run_coroutine_threadsafe(coro, _background_loop())
    future.add_done_callback(_log_batch_failure)
    return future


class ScriptController:
    """Owns the script, citations and image results for one browser session.

    Image fetches run outside the Streamlit script thread, so every field they
    touch is guarded by ``_lock``. Each batch is tagged with the generation it
    was started for; results for an older generation are dropped.
    """

    def __init__(self, gateway: Any, launcher: Launcher | None = None):
        self._gateway = gateway
        self._launch = launcher or run_in_background
        self._lock = threading.Lock()

        self.status = IDLE
        self.error: Optional[str] = None
        self.script: Optional[ScriptData] = None
        self.citations: List[GroundingChunk] = []
        self.generation = 0

        self._image_urls: Dict[int, str] = {}
        self._image_errors: Dict[int, str] = {}
        self._image_status: Dict[int, str] = {}
        self._completed_images = 0

    @property
    def is_pending(self) -> bool:
        return self.status == PENDING

    def submit(
        self,
        topic: str,
        language: str,
        scene_count: int,
        questions: str | None = None,
    ) -> bool:
        """Generate a new script. Returns False when the submission is refused."""
        if not topic or not topic.strip():
            self.error = InputValidationError().user_message
            return False
        if self.is_pending:
            logger.debug("Ignoring submit while a script is pending")
            return False

        self._begin_generation()
        try:
            result = self._gateway.generate_script(topic, language, scene_count, questions)
        except ScriptVisualsError as exc:
            self.status = FAILED
            self.error = exc.user_message
            logger.info("Script generation %d failed: %s", self.generation, exc.user_message)
            return True
        except Exception:
            logger.exception("Unexpected error during script generation")
            self.status = FAILED
            self.error = UNEXPECTED_MESSAGE
            return True

        self.script = result.script
        self.citations = [chunk for chunk in result.grounding_chunks if chunk.web]
        self.status = READY
        logger.info(
            "Script generation %d ready: %d scenes, %d sources",
            self.generation,
            len(self.script.scenes),
            len(self.citations),
        )
        self._start_images()
        return True

    def _begin_generation(self) -> None:
        with self._lock:
            self.generation += 1
            self.status = PENDING
            self.error = None
            self.script = None
            self.citations = []
            self._image_urls = {}
            self._image_errors = {}
            self._image_status = {}
            self._completed_images = 0

    @property
    def eligible_image_count(self) -> int:
        if self.script is None:
            return 0
        return min(len(self.script.scenes), MAX_IMAGE_SCENES)

    def _start_images(self) -> None:
        count = self.eligible_image_count
        if not count:
            return
        token = self.generation
        jobs = list(enumerate(self.script.scenes[:count]))
        with self._lock:
            for index, _scene in jobs:
                self._image_status[index] = PENDING
        self._launch(self._generate_images(token, jobs))

    async def _generate_images(self, token: int, jobs: List[tuple[int, Scene]]) -> None:
        await asyncio.gather(
            *(self._generate_scene_image(token, index, scene) for index, scene in jobs)
        )

    async def _generate_scene_image(self, token: int, index: int, scene: Scene) -> None:
        if not scene.visual_prompt.strip():
            self._record_image(token, index, error=NO_PROMPT_MESSAGE)
            return
        try:
            url = await self._gateway.generate_image(scene.visual_prompt)
        except ImageGenerationError:
            self._record_image(token, index, error=IMAGE_FAILED_MESSAGE)
        except Exception:
            logger.exception("Unexpected error generating image for scene %d", index + 1)
            self._record_image(token, index, error=IMAGE_FAILED_MESSAGE)
        else:
            self._record_image(token, index, url=url)

    def _record_image(
        self,
        token: int,
        index: int,
        url: str | None = None,
        error: str | None = None,
    ) -> None:
        with self._lock:
            if token != self.generation:
                logger.debug(
                    "Dropping image for scene %d from superseded generation %d",
                    index + 1,
                    token,
                )
                return
            if url is not None:
                self._image_urls[index] = url
                self._image_status[index] = READY
            else:
                self._image_errors[index] = error or IMAGE_FAILED_MESSAGE
                self._image_status[index] = FAILED
            self._completed_images += 1
            completed = self._completed_images
        logger.debug("Scene %d visual settled (%d done)", index + 1, completed)

    @property
    def completed_images(self) -> int:
        with self._lock:
            return self._completed_images

    @property
    def image_urls(self) -> Dict[int, str]:
        with self._lock:
            return dict(self._image_urls)

    def image_state(self, index: int) -> tuple[str, Optional[str], Optional[str]]:
        """Return ``(status, image_url, error)`` for the scene at ``index``."""
        with self._lock:
            return (
                self._image_status.get(index, IDLE),
                self._image_urls.get(index),
                self._image_errors.get(index),
            )

    @property
    def images_pending(self) -> bool:
        return self.script is not None and self.completed_images < self.eligible_image_count

    @property
    def export_ready(self) -> bool:
        return self.script is not None and self.completed_images == self.eligible_image_count

    def export(self) -> Optional[tuple[str, str]]:
        """Return ``(file_name, html)`` once every eligible visual has settled."""
        if not self.export_ready:
            return None
        return build_export(self.script, self.image_urls)
