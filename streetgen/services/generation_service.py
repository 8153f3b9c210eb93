"""Generation request lifecycle.

The orchestrator owns the generation state:

    Idle -> Loading -> Success | Error -> Idle

Only one request may be in flight. Every request gets a job id; a result is
applied only while its job id is still the current one, so a response that
arrives after cancel() (or after a newer request started) is dropped.
"""

import asyncio
import logging
from typing import Optional

from ..errors import GENERIC_FAILURE_MESSAGE, MISSING_CREDENTIAL_MESSAGE, ErrorKind, GenerationBusyError, GenerationError
from ..models.generation import Error, GenerationRequest, GenerationState, Idle, Loading, Success
from ..utils.image_utils import prepare_reference_png
from ..utils.observable import Observable
from .gemini_service import GeminiService
from .prompt_service import PromptBuilder

logger = logging.getLogger(__name__)


class GenerationOrchestrator:
    """Runs one generation at a time against the image service."""

    def __init__(
        self,
        gemini_service: GeminiService,
        prompt_builder: Optional[PromptBuilder] = None,
        max_source_size: int = 2048,
    ):
        """
        Initialize the orchestrator.

        Args:
            gemini_service: Image generation client
            prompt_builder: Prompt builder (defaults to `PromptBuilder`)
            max_source_size: Longest side of the reference image sent to the model
        """
        self.gemini = gemini_service
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.max_source_size = max_source_size

        self.state: Observable[GenerationState] = Observable(Idle())
        self._job_id = 0
        self._task: Optional[asyncio.Task] = None
        self._current_image: Optional[bytes] = None

    @property
    def is_busy(self) -> bool:
        return isinstance(self.state.value, Loading)

    @property
    def current_image(self) -> Optional[bytes]:
        """Bytes of the last successful generation, if any."""
        return self._current_image

    def start(self, request: GenerationRequest, api_key: Optional[str]) -> Optional[int]:
        """
        Begin a generation in the background.

        Must be called from a running event loop.

        Returns:
            The job id, or None if the request failed before being issued

        Raises:
            GenerationBusyError: If a generation is already in flight
        """
        current = self.state.value
        if isinstance(current, Loading):
            raise GenerationBusyError(current.job_id)

        if not api_key or not api_key.strip():
            self.state.set(Error(ErrorKind.MISSING_CREDENTIAL, MISSING_CREDENTIAL_MESSAGE))
            return None

        self._job_id += 1
        job_id = self._job_id
        self.state.set(Loading(job_id))
        self._task = asyncio.get_running_loop().create_task(self._run(job_id, request, api_key))
        logger.info("Started generation %d (%s mode, %d°)", job_id, request.mode.value, request.direction)
        return job_id

    async def generate(self, request: GenerationRequest, api_key: Optional[str]) -> GenerationState:
        """Run a generation and wait for it to finish (or be cancelled)."""
        job_id = self.start(request, api_key)
        task = self._task
        if job_id is not None and task is not None:
            # wait() does not raise when the task itself is cancelled
            await asyncio.wait({task})
        return self.state.value

    def cancel(self) -> bool:
        """
        Abort the in-flight generation and return to Idle.

        Returns:
            True if a generation was cancelled
        """
        if not self.is_busy:
            return False

        cancelled_job = self._job_id
        self._job_id += 1  # Invalidate the running job
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.state.set(Idle())
        logger.info("Cancelled generation %d", cancelled_job)
        return True

    def reset(self) -> None:
        """Cancel anything in flight and forget the last result."""
        self.cancel()
        self._current_image = None
        self.state.set(Idle())

    async def wait(self) -> GenerationState:
        """Wait for the current background job, if any."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})
        return self.state.value

    async def aclose(self) -> None:
        self.cancel()
        await self.gemini.aclose()

    async def _run(self, job_id: int, request: GenerationRequest, api_key: str) -> None:
        try:
            prompt = self.prompt_builder.build_for_request(request)
            reference = await asyncio.to_thread(
                prepare_reference_png, request.source_image, self.max_source_size
            )
            result = await self.gemini.generate_image(
                api_key,
                prompt,
                reference,
                aspect_ratio=request.aspect_ratio,
                image_size=request.image_size,
            )
        except asyncio.CancelledError:
            logger.debug("Generation %d task cancelled", job_id)
            raise
        except GenerationError as e:
            self._finish(job_id, Error(e.kind, e.message))
        except ValueError as e:
            # Source image could not be decoded
            self._finish(job_id, Error(ErrorKind.UNKNOWN, str(e)))
        except Exception as e:
            logger.exception("Generation %d failed unexpectedly", job_id)
            self._finish(job_id, Error(ErrorKind.UNKNOWN, str(e) or GENERIC_FAILURE_MESSAGE))
        else:
            self._finish(
                job_id,
                Success(
                    image_bytes=result.image_bytes,
                    prompt=result.prompt_used,
                    model=result.model,
                    generation_time=result.generation_time,
                ),
            )

    def _finish(self, job_id: int, outcome: GenerationState) -> None:
        current = self.state.value
        if job_id != self._job_id or not isinstance(current, Loading) or current.job_id != job_id:
            logger.info("Dropping stale result of generation %d", job_id)
            return

        if isinstance(outcome, Success):
            self._current_image = outcome.image_bytes
        elif isinstance(outcome, Error):
            logger.warning("Generation %d failed (%s): %s", job_id, outcome.kind.value, outcome.message)
        self._task = None
        self.state.set(outcome)
