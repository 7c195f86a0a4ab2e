"""Decision pipeline: compose structuring, ingestion, retrieval and synthesis.

Each call handles one request end to end and shares nothing with other
requests. Query structuring and document parsing have no data dependency and
run as concurrent tasks that are joined before retrieval.
"""

import asyncio
import contextvars
import functools
import logging
import uuid
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

from claim_adjudicator.config.settings import CHUNK_SIZE, STAGE_TIMEOUT_SECONDS, TOP_K
from claim_adjudicator.config.llm import LanguageModel, get_llm
from claim_adjudicator.exceptions import CapabilityTimeoutError, PipelineError
from claim_adjudicator.ingestion.parser import DocumentParser, UploadedFile
from claim_adjudicator.models.decision import Decision
from claim_adjudicator.models.document import ParsedDocument
from claim_adjudicator.models.query import StructuredQuery
from claim_adjudicator.observability.logger import (
    get_logger,
    log_pipeline_event,
    request_context,
    set_request_stage,
)
from claim_adjudicator.observability.metrics import RequestMetrics, track_stage
from claim_adjudicator.pipeline.structurer import QueryStructurer
from claim_adjudicator.pipeline.synthesizer import DecisionSynthesizer
from claim_adjudicator.rag.embeddings import EmbeddingProvider, get_embedding_provider
from claim_adjudicator.rag.retriever import ClauseRetriever

logger = get_logger(__name__)

T = TypeVar("T")


class PipelineStage(str, Enum):
    """States of a single pipeline run."""

    RECEIVED = "received"
    STRUCTURING = "structuring"
    INGESTING = "ingesting"
    RETRIEVING = "retrieving"
    SYNTHESIZING = "synthesizing"
    COMPLETED = "completed"
    FAILED = "failed"


_ORDER = [
    PipelineStage.RECEIVED,
    PipelineStage.STRUCTURING,
    PipelineStage.INGESTING,
    PipelineStage.RETRIEVING,
    PipelineStage.SYNTHESIZING,
    PipelineStage.COMPLETED,
]


@dataclass
class PipelineRun:
    """Record of one request moving through the pipeline states."""

    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    stage: PipelineStage = PipelineStage.RECEIVED
    history: list[tuple[PipelineStage, datetime]] = field(
        default_factory=lambda: [(PipelineStage.RECEIVED, datetime.now(timezone.utc))]
    )
    error: Optional[PipelineError] = None
    failed_stage: Optional[PipelineStage] = None

    def advance(self, stage: PipelineStage) -> None:
        """Move forward to ``stage``; states are never revisited."""
        if self.stage is PipelineStage.FAILED:
            raise RuntimeError(f"Run {self.request_id} already failed")
        if _ORDER.index(stage) <= _ORDER.index(self.stage):
            raise RuntimeError(
                f"Run {self.request_id} cannot move from {self.stage.value} to {stage.value}"
            )
        self.stage = stage
        self.history.append((stage, datetime.now(timezone.utc)))
        set_request_stage(stage.value)

    def fail(self, error: PipelineError) -> None:
        self.failed_stage = self.stage
        self.error = error
        self.stage = PipelineStage.FAILED
        self.history.append((PipelineStage.FAILED, datetime.now(timezone.utc)))

    @property
    def stages(self) -> list[str]:
        return [stage.value for stage, _ in self.history]

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "stage": self.stage.value,
            "stages": self.stages,
            "failed_stage": self.failed_stage.value if self.failed_stage else None,
            "error": self.error.to_dict() if self.error else None,
        }


class DecisionPipeline:
    """Runs one claim query against a set of uploaded policy documents.

    Capabilities are injected so callers and tests can substitute their own
    ``LanguageModel`` and ``EmbeddingProvider`` implementations, or replace
    a whole stage with their own parser, retriever or synthesizer.
    """

    def __init__(
        self,
        llm: LanguageModel,
        embedding_provider: EmbeddingProvider,
        parser: Optional[DocumentParser] = None,
        retriever: Optional[ClauseRetriever] = None,
        synthesizer: Optional[DecisionSynthesizer] = None,
        top_k: int = TOP_K,
        chunk_size: int = CHUNK_SIZE,
        stage_timeout: Optional[float] = STAGE_TIMEOUT_SECONDS,
    ):
        self.structurer = QueryStructurer(llm)
        self.parser = parser or DocumentParser()
        self.retriever = retriever or ClauseRetriever(
            embedding_provider, top_k=top_k, chunk_size=chunk_size
        )
        self.synthesizer = synthesizer or DecisionSynthesizer(llm)
        self.stage_timeout = stage_timeout

    def run(
        self,
        raw_query: str,
        files: Sequence[UploadedFile],
        record: Optional[PipelineRun] = None,
    ) -> Decision:
        """Synchronous entry point; see ``run_async``."""
        return asyncio.run(self.run_async(raw_query, files, record=record))

    async def run_async(
        self,
        raw_query: str,
        files: Sequence[UploadedFile],
        request_id: Optional[str] = None,
        record: Optional[PipelineRun] = None,
    ) -> Decision:
        """Produce a Decision for ``raw_query`` grounded in ``files``.

        Args:
            raw_query: Free-text claim question
            files: Uploaded ``(name, bytes)`` pairs
            request_id: Identifier for a new run record (generated if omitted)
            record: Caller-owned run record to track this request in

        Raises:
            PipelineError: A stage failed; ``stage`` names where.
        """
        if record is not None:
            run = record
        else:
            run = PipelineRun(request_id=request_id) if request_id else PipelineRun()
        metrics = RequestMetrics(request_id=run.request_id)
        # Capability calls get their own workers so a timed-out call left
        # running does not hold up the event loop shutdown in run().
        executor = ThreadPoolExecutor(thread_name_prefix="adjudicator-capability")

        with request_context(run.request_id, stage=run.stage.value):
            log_pipeline_event(logger, "request_received", files=len(files))
            try:
                query, documents = await self._structure_and_ingest(
                    run, raw_query, files, metrics, executor
                )

                run.advance(PipelineStage.RETRIEVING)
                with track_stage(metrics, PipelineStage.RETRIEVING.value):
                    clauses = await self._bounded(
                        _offload(executor, self.retriever.retrieve, documents, query, metrics),
                        PipelineStage.RETRIEVING,
                    )
                log_pipeline_event(
                    logger,
                    "clauses_retrieved",
                    count=len(clauses),
                    sources=sorted({c.source_name for c in clauses}),
                )

                run.advance(PipelineStage.SYNTHESIZING)
                with track_stage(metrics, PipelineStage.SYNTHESIZING.value):
                    decision = await self._bounded(
                        _offload(executor, self.synthesizer.synthesize, query, clauses, metrics),
                        PipelineStage.SYNTHESIZING,
                    )

                run.advance(PipelineStage.COMPLETED)
            except PipelineError as e:
                if e.stage is None:
                    e.stage = run.stage.value
                run.fail(e)
                metrics.finish(status="failed")
                log_pipeline_event(
                    logger,
                    "request_failed",
                    level=logging.ERROR,
                    stage=e.stage,
                    reason=e.reason,
                    message=e.message,
                )
                metrics.log_summary()
                raise
            finally:
                executor.shutdown(wait=False, cancel_futures=True)

            metrics.finish(status="completed")
            log_pipeline_event(logger, "request_completed", decision=decision.decision.value)
            metrics.log_summary()
            return decision

    async def _structure_and_ingest(
        self,
        run: PipelineRun,
        raw_query: str,
        files: Sequence[UploadedFile],
        metrics: RequestMetrics,
        executor: Executor,
    ) -> tuple[StructuredQuery, list[ParsedDocument]]:
        """Run query structuring and document parsing as concurrent tasks."""
        run.advance(PipelineStage.STRUCTURING)
        structuring = asyncio.create_task(
            self._timed(
                metrics,
                PipelineStage.STRUCTURING,
                self._bounded(
                    _offload(executor, self.structurer.extract, raw_query, metrics),
                    PipelineStage.STRUCTURING,
                ),
            )
        )
        ingesting = asyncio.create_task(
            self._timed(metrics, PipelineStage.INGESTING, self.parser.parse_async(files))
        )
        try:
            query = await structuring
        except BaseException:
            ingesting.cancel()
            await asyncio.gather(ingesting, return_exceptions=True)
            raise

        run.advance(PipelineStage.INGESTING)
        documents = await ingesting
        log_pipeline_event(
            logger,
            "documents_parsed",
            documents=len(documents),
            empty=len([d for d in documents if d.is_empty]),
        )
        return query, documents

    @staticmethod
    async def _timed(metrics: RequestMetrics, stage: PipelineStage, awaitable: Awaitable[T]) -> T:
        with track_stage(metrics, stage.value):
            return await awaitable

    async def _bounded(self, awaitable: Awaitable[T], stage: PipelineStage) -> T:
        """Await a capability-bound stage, converting expiry to a typed failure."""
        if self.stage_timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.stage_timeout)
        except asyncio.TimeoutError as e:
            raise CapabilityTimeoutError(
                f"Stage {stage.value} exceeded {self.stage_timeout}s",
                stage=stage.value,
            ) from e


def _offload(executor: Executor, func: Callable[..., T], *args: Any) -> "asyncio.Future[T]":
    """Run ``func`` on ``executor`` with the caller's context variables."""
    loop = asyncio.get_running_loop()
    context = contextvars.copy_context()
    return loop.run_in_executor(executor, functools.partial(context.run, func, *args))



def run_pipeline(
    raw_query: str,
    files: Sequence[UploadedFile],
    llm: Optional[LanguageModel] = None,
    embedding_provider: Optional[EmbeddingProvider] = None,
) -> Decision:
    """Run the decision pipeline once.

    Args:
        raw_query: Free-text claim question
        files: Uploaded ``(name, bytes)`` pairs
        llm: Language-model capability (defaults to the configured client)
        embedding_provider: Embedding capability (defaults to the configured provider)

    Returns:
        The grounded Decision

    Raises:
        PipelineError: A stage failed.
    """
    pipeline = DecisionPipeline(
        llm=llm or get_llm(),
        embedding_provider=embedding_provider or get_embedding_provider(),
    )
    return pipeline.run(raw_query, files)
