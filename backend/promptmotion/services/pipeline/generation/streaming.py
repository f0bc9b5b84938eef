"""
Streaming protocol for cold-start generation.

A GenerationStream wraps the provider's chunk iterator in its own task so
that `cancel()` interrupts the provider call even while it is waiting for
the next chunk. Consumers read text deltas in order and then ask for the
full `result()`.
"""

import asyncio
from typing import Any, AsyncIterator, Callable, List, Optional

from promptmotion.core import GenerationCancelled, GenerationError, get_logger
from promptmotion.models import StreamPhase
from promptmotion.services.infrastructure.llm import StreamChunk

logger = get_logger(__name__, component="generation_stream")

PhaseListener = Callable[[StreamPhase], Any]

_DONE = object()


class GenerationStream:
    """Lazy, finite, non-restartable sequence of text deltas plus a phase signal."""

    def __init__(
        self,
        chunks: AsyncIterator[StreamChunk],
        prompt: str = "",
        on_phase: Optional[PhaseListener] = None,
    ):
        self.prompt = prompt
        self._chunks = chunks
        self._on_phase = on_phase
        self._phase = StreamPhase.IDLE
        self._parts: List[str] = []
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._consumed = False
        self._cancelled = False
        self._error: Optional[BaseException] = None

    @property
    def phase(self) -> StreamPhase:
        return self._phase

    @property
    def text(self) -> str:
        """Text received so far."""
        return "".join(self._parts)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _set_phase(self, phase: StreamPhase) -> None:
        if phase == self._phase:
            return
        self._phase = phase
        if self._on_phase is not None:
            self._on_phase(phase)

    def _start(self) -> None:
        if self._task is None and not self._cancelled:
            self._task = asyncio.create_task(self._pump())

    async def _pump(self) -> None:
        try:
            async for chunk in self._chunks:
                if chunk.thought:
                    self._set_phase(StreamPhase.REASONING)
                    continue
                self._set_phase(StreamPhase.GENERATING)
                self._parts.append(chunk.text)
                self._queue.put_nowait(chunk.text)
        except asyncio.CancelledError:
            self._cancelled = True
            raise
        except Exception as e:
            self._error = e
            logger.warning(f"Generation stream failed: {e}", extra={"error_type": type(e).__name__})
        finally:
            self._set_phase(StreamPhase.IDLE)
            self._queue.put_nowait(_DONE)

    async def deltas(self) -> AsyncIterator[str]:
        """Text deltas in arrival order. Can be consumed once."""
        if self._consumed:
            raise RuntimeError("GenerationStream can only be consumed once")
        self._consumed = True
        self._start()
        while True:
            item = await self._queue.get()
            if item is _DONE:
                return
            yield item

    def __aiter__(self) -> AsyncIterator[str]:
        return self.deltas()

    def cancel(self) -> None:
        """Stop the provider stream. Safe to call more than once."""
        if self._cancelled or (self._task is not None and self._task.done()):
            return
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()
        # Wakes a consumer even if the pump never got to run.
        self._queue.put_nowait(_DONE)
        logger.info("Generation stream cancelled", extra={"received_chars": len(self.text)})

    async def result(self) -> str:
        """
        Complete generated text.

        Raises:
            GenerationCancelled: cancel() was called before completion
            GenerationError: the provider stream failed
        """
        self._start()
        if self._task is not None:
            await asyncio.wait({self._task})
        if self._cancelled:
            raise GenerationCancelled("Generation was cancelled")
        if self._error is not None:
            raise GenerationError(
                f"Generation failed: {self._error}", prompt=self.prompt, mode="stream"
            ) from self._error
        return self.text
