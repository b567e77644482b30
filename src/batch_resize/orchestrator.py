"""Batch orchestrator - runs the render/encode step over a list of files."""

import asyncio
from collections.abc import Callable, Sequence
from typing import TypeVar
from uuid import uuid4

from loguru import logger

from .algo.render import output_filename, render_and_encode
from .common.codec import ImageCodec
from .common.config import ResizerConfig
from .common.errors import BatchProcessingError, DecodeError, EncodeError
from .common.schemas import ProcessedItem, ProgressEvent, ResizeOptions, SourceFile
from .utils.media_types import human_file_size
from .utils.profiling import timed
from .validation import validate_batch

T = TypeVar("T")

ProgressCallback = Callable[[ProgressEvent], None]


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive groups of at most ``size``."""
    if size < 1:
        raise ValueError("Group size must be at least 1")
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


class _Progress:
    """Monotonic progress counter. Only mutated from the event loop."""

    def __init__(self, total: int, callback: ProgressCallback | None):
        self.total: int = total
        self.done: int = 0
        self._callback: ProgressCallback | None = callback

    def _emit(self, current_file: str | None) -> None:
        if self._callback:
            self._callback(ProgressEvent(total=self.total, done=self.done, current_file=current_file))

    def begin(self) -> None:
        self._emit(None)

    def started(self, filename: str) -> None:
        self._emit(filename)

    def completed(self) -> None:
        self.done += 1
        self._emit(None)


class BatchOrchestrator:
    """Resizes a batch in fixed-size concurrent groups.

    Responsibilities:
    - Validates the whole batch before any decode
    - Runs at most ``config.batch_size`` images at once; the next group starts
      only when the current one has fully resolved
    - Releases every decoded buffer, on success and on failure
    - Reports progress and preserves input order in the result

    Failure policy is fail-fast: the first failing item cancels the rest of
    its group, no further groups start and BatchProcessingError is raised.

    Example:
        orchestrator = BatchOrchestrator(PillowCodec(), ResizerConfig.client())
        items = await orchestrator.process(files, ResizeOptions(width=800))
    """

    def __init__(self, codec: ImageCodec, config: ResizerConfig | None = None):
        self.codec: ImageCodec = codec
        self.config: ResizerConfig = config or ResizerConfig.server()

    def process_item(self, file: SourceFile, options: ResizeOptions) -> ProcessedItem:
        """Decode, render and encode one file. Blocking; runs in a worker thread."""
        try:
            source = self.codec.decode(file.data, file.mime)
        except DecodeError as exc:
            raise BatchProcessingError(file.name, "decode", exc) from exc

        with source:
            try:
                result = render_and_encode(
                    self.codec,
                    source,
                    file.mime,
                    options,
                    quality_table=self.config.quality_table,
                )
            except EncodeError as exc:
                raise BatchProcessingError(file.name, "encode", exc) from exc
            except Exception as exc:
                raise BatchProcessingError(file.name, "render", exc) from exc

        dims = result.dimensions
        return ProcessedItem(
            id=uuid4().hex,
            filename=output_filename(file.name, dims, result.mime),
            mime=result.mime,
            data=result.data,
            dimensions=dims,
            size_info=f"{dims.width}×{dims.height} • {human_file_size(len(result.data))}",
        )

    async def _run_item(
        self,
        file: SourceFile,
        options: ResizeOptions,
        progress: _Progress,
    ) -> ProcessedItem:
        try:
            progress.started(file.name)
            item = await asyncio.to_thread(self.process_item, file, options)
            progress.completed()
        except BatchProcessingError:
            raise
        except Exception as exc:
            # Progress callback failures are charged to the item being reported
            raise BatchProcessingError(file.name, "render", exc) from exc
        logger.debug(f"Resized {file.name} -> {item.filename} ({item.size_info})")
        return item

    @timed
    async def process(
        self,
        files: Sequence[SourceFile],
        options: ResizeOptions,
        progress_callback: ProgressCallback | None = None,
    ) -> list[ProcessedItem]:
        """Resize ``files`` with ``options``.

        Args:
            files: Source files, in the order results should be returned
            options: Options shared by every file of the batch
            progress_callback: Receives a ProgressEvent at start, before each
                item and after each item

        Returns:
            One ProcessedItem per file, in input order

        Raises:
            BatchValidationError: If the batch breaks a configured limit
            BatchProcessingError: On the first item that fails
        """
        validate_batch(files, self.config)

        groups = partition(files, self.config.batch_size)
        progress = _Progress(len(files), progress_callback)
        results: list[ProcessedItem] = []

        logger.info(
            f"Resizing {len(files)} file(s) with {self.codec.name} in {len(groups)} group(s)"
            + f" of up to {self.config.batch_size}"
        )
        progress.begin()

        for index, group in enumerate(groups):
            tasks: list[asyncio.Task[ProcessedItem]] = []
            try:
                async with asyncio.TaskGroup() as tg:
                    for file in group:
                        tasks.append(tg.create_task(self._run_item(file, options, progress)))
            except ExceptionGroup as group_error:
                failures = group_error.subgroup(BatchProcessingError)
                if failures is None:
                    raise
                failure = _first_failure(failures)
                finished = [task.result() for task in tasks if _succeeded(task)]
                logger.error(f"Batch aborted in group {index + 1}/{len(groups)}: {failure}")
                raise BatchProcessingError(
                    failure.filename,
                    failure.stage,
                    failure.cause,
                    completed=results + finished,
                ) from failure.cause

            results.extend(task.result() for task in tasks)

        return results


def _succeeded(task: "asyncio.Task[ProcessedItem]") -> bool:
    return task.done() and not task.cancelled() and task.exception() is None


def _first_failure(group: ExceptionGroup[BatchProcessingError]) -> BatchProcessingError:
    for exc in group.exceptions:
        if isinstance(exc, ExceptionGroup):
            return _first_failure(exc)
        return exc
    raise RuntimeError("Empty exception group")
