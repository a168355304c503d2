"""
Schema bootstrap sequencer

Runs the schema steps in the background at process start. A step that
depends on another waits for that step's readiness event instead of
sleeping, then retries its own ensure function a bounded number of
times. Running out of retries is logged and reported; the process
keeps serving and later reads/writes surface store errors themselves.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from radio_api.core.config import settings
from radio_api.core.sentry import capture_message
from radio_api.db.schema import ensure_activity_log_schema, ensure_users_schema

logger = logging.getLogger(__name__)

EnsureFn = Callable[[AsyncEngine], Awaitable[bool]]


@dataclass(frozen=True)
class SchemaStep:
    name: str
    ensure: EnsureFn
    depends_on: tuple = ()


def default_schema_steps() -> List[SchemaStep]:
    return [
        SchemaStep("users", ensure_users_schema),
        SchemaStep("activity_logs", ensure_activity_log_schema, depends_on=("users",)),
    ]


class SchemaBootstrap:
    """
    Ordered, retrying runner for schema steps

    Usage:
        bootstrap = SchemaBootstrap(engine, default_schema_steps())
        bootstrap.start()          # returns immediately
        ...
        await bootstrap.wait_ready()
    """

    def __init__(
        self,
        engine: AsyncEngine,
        steps: List[SchemaStep],
        retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        warmup_delay: Optional[float] = None
    ):
        names = [step.name for step in steps]
        if len(set(names)) != len(names):
            raise ValueError("Schema step names must be unique")
        for step in steps:
            missing = [dep for dep in step.depends_on if dep not in names]
            if missing:
                raise ValueError(f"Schema step {step.name} depends on unknown steps: {missing}")

        self.engine = engine
        self.steps = steps
        self.retries = max(1, retries if retries is not None else settings.AUDIT_BOOTSTRAP_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.AUDIT_BOOTSTRAP_RETRY_DELAY
        self.warmup_delay = warmup_delay if warmup_delay is not None else settings.AUDIT_BOOTSTRAP_WARMUP_DELAY

        self.results: Dict[str, bool] = {}
        self._done: Dict[str, asyncio.Event] = {step.name: asyncio.Event() for step in steps}
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Schedule the bootstrap without waiting for it"""
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="schema-bootstrap")
        return self._task

    async def run(self) -> Dict[str, bool]:
        """Run every step, honouring dependencies; returns success per step"""
        if self.warmup_delay > 0:
            await asyncio.sleep(self.warmup_delay)

        await asyncio.gather(*(self._run_step(step) for step in self.steps))

        failed = [name for name, ok in self.results.items() if not ok]
        if failed:
            logger.error(f"Schema bootstrap finished with failures: {', '.join(failed)}")
        else:
            logger.info("Schema bootstrap complete")
        return dict(self.results)

    async def wait_ready(self) -> Dict[str, bool]:
        """Wait until every step has finished, successfully or not"""
        for event in self._done.values():
            await event.wait()
        return dict(self.results)

    def is_ready(self, name: str) -> bool:
        return self._done[name].is_set() and self.results.get(name, False)

    async def _run_step(self, step: SchemaStep) -> None:
        try:
            for dependency in step.depends_on:
                await self._done[dependency].wait()
                if not self.results.get(dependency):
                    logger.warning(
                        f"Schema step {step.name} continues although {dependency} failed"
                    )
            self.results[step.name] = await self._attempt(step)
        finally:
            self._done[step.name].set()

    async def _attempt(self, step: SchemaStep) -> bool:
        for attempt in range(1, self.retries + 1):
            try:
                ok = await step.ensure(self.engine)
            except Exception as e:
                logger.warning(f"Schema step {step.name} raised: {e}", exc_info=True)
                ok = False

            if ok:
                return True

            logger.warning(
                f"Error initializing {step.name} (attempt {attempt}/{self.retries})"
            )
            if attempt < self.retries:
                await asyncio.sleep(self.retry_delay)

        logger.error(f"Could not initialize {step.name} after {self.retries} attempts")
        capture_message(
            f"Schema bootstrap gave up on {step.name}",
            context={"schema_step": {"name": step.name, "attempts": self.retries}}
        )
        return False
