from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import rich
from loguru import logger
from rich import progress
from rich.logging import RichHandler
from rich.theme import Theme

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from logging import LogRecord


console = rich.get_console()
console.push_theme(Theme({'logging.level.success': 'bold blue'}))


class LogHandler(RichHandler):
    _NEW_LEVELS: ClassVar[dict[int, str]] = {5: 'TRACE', 25: 'SUCCESS'}

    def emit(self, record: LogRecord) -> None:
        if name := self._NEW_LEVELS.get(record.levelno):
            record.levelname = name

        return super().emit(record)

    @classmethod
    def set(
        cls,
        level: int | str = 20,
        *,
        rich_tracebacks: bool = False,
        remove: bool = True,
        **kwargs,
    ):
        """
        Route `loguru.logger` through a rich console handler.

        Parameters
        ----------
        level : int | str, optional
        rich_tracebacks : bool, optional
        remove : bool, optional
            Remove previously registered handlers (loguru's stderr sink).
        """
        handler = cls(
            console=console,
            markup=True,
            log_time_format='[%X]',
            rich_tracebacks=rich_tracebacks,
        )

        if remove:
            logger.remove()

        logger.add(handler, level=level, format='{message}', **kwargs)


class Progress(progress.Progress):
    @classmethod
    def get_default_columns(cls) -> tuple[progress.ProgressColumn, ...]:
        return (
            progress.TextColumn('[progress.description]{task.description}'),
            progress.BarColumn(bar_width=40),
            progress.MofNCompleteColumn(),
            progress.TimeRemainingColumn(compact=True, elapsed_when_finished=True),
        )

    @classmethod
    def trace[T](
        cls,
        sequence: Sequence[T] | Iterable[T],
        *,
        description: str = 'Working...',
        total: float | None = None,
        transient: bool = False,
    ) -> Iterable[T]:
        """
        Iterate over `sequence` while drawing a progress bar.

        Yields
        ------
        T
        """
        with cls(console=console, transient=transient) as p:
            yield from p.track(sequence, total=total, description=description)
