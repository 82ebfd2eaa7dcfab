# app/services/orchestrator.py
import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

from app.errors import ExhaustionFailure, FatalUpstreamFailure, RetryableUpstreamFailure
from app.models import DispatchOutcome, PromptPayload, UsageRecord

logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    def generate(self, model: str, payload: PromptPayload, timeout: Optional[float] = None) -> DispatchOutcome:
        ...


class UsageSink(Protocol):
    def notify(self, record: UsageRecord) -> None:
        ...


AbortCheck = Callable[[], Awaitable[bool]]


class ModelOrchestrator:
    """
    Tries candidate models strictly in order.

    Success stops the loop. Retryable failures (rate limit, missing model,
    unavailable, timeout) move on to the next candidate. Fatal failures
    (bad request, auth, blocked content) stop the loop and are raised as
    FatalUpstreamFailure. Running out of candidates raises ExhaustionFailure.
    """

    def __init__(
        self,
        client: ModelClient,
        models: Sequence[str],
        timeout: float = 30.0,
        usage: Optional[UsageSink] = None,
    ):
        if not models:
            raise ValueError("at least one candidate model is required")
        self.client = client
        self.models = tuple(models)
        self.timeout = timeout
        self.usage = usage

    async def _dispatch(self, model: str, payload: PromptPayload) -> DispatchOutcome:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.client.generate, model, payload, self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return DispatchOutcome.retryable(model, "timeout", f"no answer within {self.timeout}s")
        except Exception as e:
            logger.exception("Upstream client raised for %s", model)
            return DispatchOutcome.fatal(model, "internal", str(e)[:300])

    def _record(self, caller: str, outcome: DispatchOutcome) -> None:
        if self.usage is None:
            return
        status = "success" if outcome.is_success else "error"
        self.usage.notify(UsageRecord(caller=caller, model=outcome.model, status=status))

    async def run(
        self,
        payload: PromptPayload,
        caller: str = "unknown",
        should_abort: Optional[AbortCheck] = None,
    ) -> DispatchOutcome:
        pending = deque(self.models)
        attempts: List[DispatchOutcome] = []

        while pending:
            if should_abort is not None and await should_abort():
                logger.info("Caller %s went away after %d attempt(s)", caller, len(attempts))
                raise ExhaustionFailure(attempts, cancelled=True)

            model = pending.popleft()
            outcome = await self._dispatch(model, payload)
            attempts.append(outcome)
            self._record(caller, outcome)

            try:
                outcome.raise_for_status()
            except RetryableUpstreamFailure:
                logger.warning("Model %s failed (%s), %d candidate(s) left",
                               model, outcome.error_type, len(pending))
                continue
            except FatalUpstreamFailure:
                logger.error("Model %s failed fatally (%s): %s", model, outcome.error_type, outcome.detail)
                raise

            logger.info("Model %s answered for %s", model, caller)
            return outcome

        logger.error("All %d candidate(s) failed for %s", len(attempts), caller)
        raise ExhaustionFailure(attempts)
