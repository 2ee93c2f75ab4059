from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from .contracts import UnitFailure, UnitReport
from .errors import ImageResourceError

LOGGER = logging.getLogger("pdf_images.reporting")

ProgressCallback = Callable[[float], None]
ItemErrorCallback = Callable[[str, BaseException], None]
PageErrorCallback = Callable[[int, BaseException], None]


class UnitFailureCollector:
    """
    Append-only, thread-safe record of unit-level failures.

    Engines report through the callbacks returned by `item_error_callback` /
    `page_error_callback`; the caller's own callbacks (if any) are invoked
    after the failure has been recorded.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failures: list[UnitFailure] = []
        self._outputs: list[Path] = []

    def add(self, failure: UnitFailure) -> None:
        with self._lock:
            self._failures.append(failure)

    def add_output(self, path: Path) -> None:
        with self._lock:
            self._outputs.append(path)

    @property
    def failures(self) -> tuple[UnitFailure, ...]:
        with self._lock:
            return tuple(self._failures)

    @property
    def outputs(self) -> tuple[Path, ...]:
        with self._lock:
            return tuple(self._outputs)

    def item_error_callback(self, forward: ItemErrorCallback | None = None) -> ItemErrorCallback:
        def on_item_error(name: str, error: BaseException) -> None:
            LOGGER.warning("Image %s failed: %r", name, error)
            self.add(UnitFailure(unit=name, error=repr(error)))
            if forward is not None:
                forward(name, error)

        return on_item_error

    def page_error_callback(self, forward: PageErrorCallback | None = None) -> PageErrorCallback:
        def on_page_error(page_num: int, error: BaseException) -> None:
            LOGGER.warning("Page %d failed: %s", page_num, error)
            if isinstance(error, ImageResourceError):
                failure = UnitFailure(
                    unit=f"page {page_num}",
                    error=f"{error} Cause: {error.__cause__!r}",
                    page_num=page_num,
                    resource_key=error.resource_key,
                    image_index=error.image_index,
                )
            else:
                failure = UnitFailure(unit=f"page {page_num}", error=repr(error), page_num=page_num)
            self.add(failure)
            if forward is not None:
                forward(page_num, error)

        return on_page_error

    def report(self, units_total: int) -> UnitReport:
        return UnitReport(units_total=units_total, failures=self.failures, outputs=self.outputs)


class ProgressEmitter:
    """
    Forwards progress percentages, clamped to [0, 100] and never decreasing.
    """

    def __init__(self, forward: ProgressCallback | None = None) -> None:
        self._forward = forward
        self._last = 0.0

    def __call__(self, percent: float) -> None:
        value = min(100.0, max(self._last, float(percent)))
        self._last = value
        if self._forward is not None:
            self._forward(value)
