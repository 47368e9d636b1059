"""ScriptController state, image fan-out and export gating."""

import asyncio
import time

from script_visuals.controllers.script import (
    FAILED,
    IDLE,
    IMAGE_FAILED_MESSAGE,
    NO_PROMPT_MESSAGE,
    PENDING,
    READY,
    ScriptController,
    run_in_background,
)
from script_visuals.errors import ImageGenerationError, ParseError, RequestError
from script_visuals.models import (
    GroundingChunk,
    GroundingChunkWeb,
    Scene,
    ScriptData,
    ScriptGenerationResult,
)


def _script(count, title="The History of Black Holes!", blank_prompts=()):
    return ScriptData(
        title=title,
        scenes=[
            Scene(
                title=f"Scene question {i}?",
                script=f"Narration for scene {i}.",
                visual_prompt="" if i in blank_prompts else f"prompt-{i}",
            )
            for i in range(count)
        ],
    )


class _FakeGateway:
    def __init__(self, script=None, chunks=None, error=None, failing_prompts=()):
        self.script = script or _script(5)
        self.chunks = chunks or []
        self.error = error
        self.failing_prompts = set(failing_prompts)
        self.script_calls = []
        self.image_calls = []
        self.on_generate = None

    def generate_script(self, topic, language, scene_count, questions=None):
        self.script_calls.append((topic, language, scene_count, questions))
        if self.on_generate:
            self.on_generate()
        if self.error:
            raise self.error
        return ScriptGenerationResult(script=self.script, grounding_chunks=self.chunks)

    async def generate_image(self, prompt):
        self.image_calls.append(prompt)
        if prompt in self.failing_prompts:
            raise ImageGenerationError()
        return f"data:image/jpeg;base64,{prompt}"


class _DeferredLauncher:
    """Collects image batches so tests decide when they run."""

    def __init__(self):
        self.batches = []

    def __call__(self, coro):
        self.batches.append(coro)

    def run_all(self):
        while self.batches:
            asyncio.run(self.batches.pop(0))


def test_submit_runs_one_request_and_fetches_images():
    gateway = _FakeGateway(
        chunks=[
            GroundingChunk(web=GroundingChunkWeb(uri="https://a.example", title="A")),
            GroundingChunk(),
        ]
    )
    ctrl = ScriptController(gateway, launcher=asyncio.run)

    assert ctrl.submit("Black holes", "English", 5, "Why?") is True

    assert gateway.script_calls == [("Black holes", "English", 5, "Why?")]
    assert ctrl.status == READY
    assert ctrl.error is None
    assert [chunk.web.title for chunk in ctrl.citations] == ["A"]
    assert sorted(ctrl.image_urls) == [0, 1, 2, 3, 4]
    assert ctrl.export_ready


def test_empty_topic_is_rejected_without_request():
    gateway = _FakeGateway()
    ctrl = ScriptController(gateway, launcher=asyncio.run)

    assert ctrl.submit("   ", "English", 5) is False

    assert gateway.script_calls == []
    assert ctrl.error == "Please enter a topic."
    assert ctrl.status == IDLE


def test_parse_error_sets_invalid_format_message():
    ctrl = ScriptController(_FakeGateway(error=ParseError()), launcher=asyncio.run)

    ctrl.submit("Black holes", "English", 5)

    assert ctrl.status == FAILED
    assert ctrl.error == "The model returned an invalid script format. Please try again."
    assert ctrl.script is None


def test_request_error_sets_generic_message():
    ctrl = ScriptController(_FakeGateway(error=RequestError()), launcher=asyncio.run)

    ctrl.submit("Black holes", "English", 5)

    assert ctrl.status == FAILED
    assert ctrl.error == "Failed to generate script. Please check your prompt and API key."


def test_resubmit_while_pending_is_ignored():
    gateway = _FakeGateway()
    ctrl = ScriptController(gateway, launcher=asyncio.run)
    nested = []
    gateway.on_generate = lambda: nested.append(ctrl.submit("Other", "English", 5))

    ctrl.submit("Black holes", "English", 5)

    assert nested == [False]
    assert len(gateway.script_calls) == 1


def test_new_generation_clears_previous_results_before_request_resolves():
    gateway = _FakeGateway(chunks=[GroundingChunk(web=GroundingChunkWeb(uri="u", title="t"))])
    ctrl = ScriptController(gateway, launcher=asyncio.run)
    ctrl.submit("Black holes", "English", 5)
    assert ctrl.image_urls and ctrl.citations

    seen = {}

    def _inspect():
        seen["status"] = ctrl.status
        seen["images"] = ctrl.image_urls
        seen["citations"] = list(ctrl.citations)
        seen["completed"] = ctrl.completed_images
        seen["script"] = ctrl.script

    gateway.on_generate = _inspect
    ctrl.submit("Neutron stars", "English", 5)

    assert seen == {"status": PENDING, "images": {}, "citations": [], "completed": 0, "script": None}


def test_image_attempts_capped_at_five_scenes():
    gateway = _FakeGateway(script=_script(8))
    ctrl = ScriptController(gateway, launcher=asyncio.run)

    ctrl.submit("Black holes", "English", 8)

    assert sorted(gateway.image_calls) == [f"prompt-{i}" for i in range(5)]
    assert ctrl.eligible_image_count == 5
    assert all(index < 5 for index in ctrl.image_urls)
    assert ctrl.image_state(6) == (IDLE, None, None)
    assert ctrl.export_ready


def test_failed_image_is_isolated_and_still_counts():
    gateway = _FakeGateway(failing_prompts={"prompt-2"})
    ctrl = ScriptController(gateway, launcher=asyncio.run)

    ctrl.submit("Black holes", "English", 5)

    assert ctrl.status == READY
    assert ctrl.image_state(2) == (FAILED, None, IMAGE_FAILED_MESSAGE)
    assert ctrl.image_state(1) == (READY, "data:image/jpeg;base64,prompt-1", None)
    assert ctrl.completed_images == 5
    assert ctrl.export_ready


def test_blank_visual_prompt_settles_without_request():
    gateway = _FakeGateway(script=_script(5, blank_prompts={0}))
    ctrl = ScriptController(gateway, launcher=asyncio.run)

    ctrl.submit("Black holes", "English", 5)

    assert "" not in gateway.image_calls
    assert len(gateway.image_calls) == 4
    assert ctrl.image_state(0) == (FAILED, None, NO_PROMPT_MESSAGE)
    assert ctrl.export_ready


def test_export_disabled_until_every_attempt_settles():
    launcher = _DeferredLauncher()
    ctrl = ScriptController(_FakeGateway(failing_prompts={"prompt-0"}), launcher=launcher)

    ctrl.submit("Black holes", "English", 5)

    assert ctrl.image_state(3)[0] == PENDING
    assert ctrl.images_pending
    assert not ctrl.export_ready
    assert ctrl.export() is None

    launcher.run_all()

    assert not ctrl.images_pending
    assert ctrl.export_ready
    file_name, document = ctrl.export()
    assert file_name == "the_history_of_black_holes_.html"
    assert "Visual not available." in document
    assert 'src="data:image/jpeg;base64,prompt-1"' in document


def test_images_from_superseded_generation_are_dropped():
    launcher = _DeferredLauncher()
    gateway = _FakeGateway()
    ctrl = ScriptController(gateway, launcher=launcher)

    ctrl.submit("Black holes", "English", 5)
    stale_batch = launcher.batches.pop(0)
    gateway.script = _script(5, title="Neutron Stars")
    ctrl.submit("Neutron stars", "English", 5)

    asyncio.run(stale_batch)

    assert ctrl.image_urls == {}
    assert ctrl.completed_images == 0
    assert ctrl.script.title == "Neutron Stars"

    launcher.run_all()
    assert ctrl.completed_images == 5


class _LoopBoundGateway(_FakeGateway):
    """Fails image calls made from a different event loop than the first one.

    Mirrors a shared async HTTP pool that is bound to the loop it started on.
    """

    def __init__(self):
        super().__init__()
        self.loops = []

    async def generate_image(self, prompt):
        loop = asyncio.get_running_loop()
        if self.loops and loop is not self.loops[0]:
            raise RuntimeError("Event loop is closed")
        self.loops.append(loop)
        return await super().generate_image(prompt)


def _wait_for_images(ctrl, timeout=5.0):
    deadline = time.monotonic() + timeout
    while ctrl.images_pending and time.monotonic() < deadline:
        time.sleep(0.01)
    assert not ctrl.images_pending


def test_default_launcher_serves_successive_generations_on_one_loop():
    gateway = _LoopBoundGateway()
    ctrl = ScriptController(gateway)

    for attempt in range(2):
        assert ctrl.submit("Black holes", "English", 5)
        _wait_for_images(ctrl)
        states = [ctrl.image_state(i)[0] for i in range(5)]
        assert states == [READY] * 5, f"generation {attempt + 1}: {states}"
        assert ctrl.export_ready

    assert ctrl.generation == 2
    assert len(gateway.image_calls) == 10
    assert len(set(map(id, gateway.loops))) == 1


def test_default_launcher_returns_future_for_batch():
    async def _batch():
        return None

    future = run_in_background(_batch())
    assert future.result(timeout=5.0) is None
