"""Driver loop that executes one dispatch of a pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import aiologic

from asyncval.errors import ComputationFailureError
from asyncval.result import Err, Ok

if TYPE_CHECKING:
    from asyncval._cell import HandoffCell
    from asyncval._steps import Deferred, Outcome, Source, Step
    from asyncval.result import Result

__all__ = ['PipelineRun']


class _Switch:
    """Hands a deferred outcome's Result back to the loop that subscribed to it."""

    __slots__ = ('lock', 'result', 'subscribing')

    def __init__(self) -> None:
        self.lock = aiologic.Lock()
        self.subscribing = True
        self.result: Result[Any] | None = None


class PipelineRun:
    """A single execution of a source and its steps, delivered into a cell.

    The run is the task submitted to an ExecutionContext. Steps are applied
    in order by a loop over the step tuple. When a step (or the source)
    yields a deferred outcome, the run subscribes to it:

    - if the outcome completes while subscribing (an inline context, a cached
      value), the loop picks up its Result and carries on, so any number of
      switches runs in constant stack depth;
    - otherwise the loop returns and resumes from the next step on whichever
      thread later completes the outcome.
    """

    __slots__ = ('_cell', '_source', '_steps')

    def __init__(self, source: Source, steps: tuple[Step, ...], cell: HandoffCell[Result[Any]]) -> None:
        self._source = source
        self._steps = steps
        self._cell = cell

    def __call__(self) -> None:
        try:
            outcome = self._source.evaluate()
        except Exception as exc:
            outcome = Err(ComputationFailureError(exc))
        self._advance(0, outcome)

    def _advance(self, index: int, outcome: Outcome) -> None:
        steps = self._steps
        while True:
            if not isinstance(outcome, (Ok, Err)):
                settled = self._switch(index, outcome)
                if settled is None:
                    return
                outcome = settled
            if index == len(steps):
                break
            outcome = steps[index].apply(outcome)
            index += 1
        self._cell.put(outcome)

    def _switch(self, index: int, deferred: Deferred) -> Result[Any] | None:
        """Subscribe to ``deferred``.

        Returns:
            Its Result if it completed during subscription, else None; the
            run then continues from the completion callback.
        """
        switch = _Switch()

        def resume(result: Result[Any]) -> None:
            with switch.lock:
                if switch.subscribing:
                    switch.result = result
                    return
            self._advance(index, result)

        deferred._on_result(resume)
        with switch.lock:
            switch.subscribing = False
            return switch.result
