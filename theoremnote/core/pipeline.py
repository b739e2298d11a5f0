import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

# A step mutates the tree in place; it may be a plain function or a coroutine function.
Step = Callable[[Any, Any], Union[None, Awaitable[None]]]


class Pipeline:
    """
    A fixed sequence of tree transforms executed in order.
    A failing step is logged and skipped; the remaining steps still run
    so a partial preview is still produced.
    """
    def __init__(self, name: str):
        self.name = name
        self._steps: List[Tuple[str, Step]] = []

    def add_step(self, handler: Step, name: Optional[str] = None) -> "Pipeline":
        step_name = name or getattr(handler, '__name__', 'unknown')
        self._steps.append((step_name, handler))
        return self

    @property
    def step_names(self) -> List[str]:
        return [name for name, _ in self._steps]

    async def run(self, tree: Any, context: Any) -> Any:
        """Execute the pipeline on the tree."""
        for step_name, step in self._steps:
            try:
                result = step(tree, context)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Pipeline {self.name} step {step_name} failed: {e}", exc_info=True)
        return tree
