"""Knowledge cards: cached, deduplicated, priority-queued generation.

A card narrates a plausible manufacturing process for a node using the
names of its revealed children. Generation is enrichment only: any failure
yields ``None`` and nothing is cached, so a later request simply tries again.
"""

from __future__ import annotations

import asyncio
import enum
import heapq
import itertools
import logging
from collections.abc import Iterable, MutableMapping
from dataclasses import dataclass

from breakitdown.engine.normalizer import parse_knowledge_card
from breakitdown.engine.retry import RetryPolicy
from breakitdown.engine.tree import DecompositionNode
from breakitdown.llm.client import Completer, Modality
from breakitdown.llm.prompts import build_knowledge_card_prompt
from breakitdown.models.decomposition import KnowledgeCard

logger = logging.getLogger(__name__)


class Priority(enum.IntEnum):
    FOREGROUND = 0  # user clicked "show card"
    BACKGROUND = 1  # speculative prefetch


@dataclass
class _CardJob:
    node_id: str
    name: str
    description: str
    children: tuple[tuple[str, str, bool], ...]
    priority: Priority
    future: asyncio.Future
    started: bool = False


def document_number(node_id: str) -> str:
    return f"PROC-{node_id[-6:].upper()}"


class KnowledgeCardGenerator:
    """At most ``concurrency`` generations run at once.

    Foreground requests are dequeued before background ones (FIFO within a
    priority) and promote a queued background job for the same node.
    In-flight work is never cancelled; a repeated request joins it.
    """

    def __init__(
        self,
        gateway: Completer,
        cache: MutableMapping[str, KnowledgeCard] | None = None,
        *,
        concurrency: int = 4,
        retry: RetryPolicy | None = None,
        language: str | None = None,
    ) -> None:
        self.gateway = gateway
        self.cache: MutableMapping[str, KnowledgeCard] = cache if cache is not None else {}
        self.concurrency = concurrency
        self.retry = retry or RetryPolicy()
        self.language = language
        self._jobs: dict[str, _CardJob] = {}
        self._heap: list[tuple[int, int, str]] = []
        self._seq = itertools.count()
        self._active = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def loading_ids(self) -> frozenset[str]:
        return frozenset(nid for nid, job in self._jobs.items() if job.started)

    @property
    def queued_ids(self) -> list[str]:
        """Node ids waiting to start, in the order they will run."""
        live = [
            (prio, seq, nid)
            for prio, seq, nid in self._heap
            if nid in self._jobs and not self._jobs[nid].started and self._jobs[nid].priority == prio
        ]
        return [nid for _, _, nid in sorted(live)]

    async def get_card(
        self,
        node: DecompositionNode,
        priority: Priority = Priority.FOREGROUND,
    ) -> KnowledgeCard | None:
        """Card for ``node``, or None when unavailable."""
        cached = self.cache.get(node.id)
        if cached is not None:
            return cached
        if not node.children:
            return None
        job = self._enqueue(node, priority)
        return await asyncio.shield(job.future)

    def prefetch(self, nodes: Iterable[DecompositionNode]) -> int:
        """Queue background generation for nodes with children. Returns how many were queued."""
        queued = 0
        for node in nodes:
            if node.id in self.cache or node.id in self._jobs or not node.children:
                continue
            self._enqueue(node, Priority.BACKGROUND)
            queued += 1
        return queued

    def _enqueue(self, node: DecompositionNode, priority: Priority) -> _CardJob:
        job = self._jobs.get(node.id)
        if job is None:
            job = _CardJob(
                node_id=node.id,
                name=node.name,
                description=node.description,
                children=tuple((c.name, c.description, c.is_raw_material) for c in node.children),
                priority=priority,
                future=asyncio.get_running_loop().create_future(),
            )
            self._jobs[node.id] = job
            heapq.heappush(self._heap, (priority, next(self._seq), node.id))
        elif not job.started and priority < job.priority:
            job.priority = priority
            heapq.heappush(self._heap, (priority, next(self._seq), node.id))
        self._pump()
        return job

    def _pump(self) -> None:
        while self._active < self.concurrency and self._heap:
            prio, _, node_id = heapq.heappop(self._heap)
            job = self._jobs.get(node_id)
            if job is None or job.started or job.priority != prio:
                continue  # stale entry left behind by a promotion
            job.started = True
            self._active += 1
            task = asyncio.ensure_future(self._run(job))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, job: _CardJob) -> None:
        card: KnowledgeCard | None = None
        try:
            card = await self.retry.run(lambda: self._generate(job), label=f"knowledge card {job.name!r}")
        except Exception as e:
            logger.warning("Knowledge card for %r unavailable: %s", job.name, e)
        finally:
            if card is not None:
                self.cache[job.node_id] = card
            self._jobs.pop(job.node_id, None)
            self._active -= 1
            if not job.future.done():
                job.future.set_result(card)
            self._pump()

    async def _generate(self, job: _CardJob) -> KnowledgeCard:
        prompt = build_knowledge_card_prompt(
            job.name,
            job.description,
            job.children,
            doc_number=document_number(job.node_id),
            language=self.language,
        )
        raw = await self.gateway.complete(prompt, Modality.TEXT)
        card = parse_knowledge_card(raw)
        logger.info("Generated knowledge card for %r (%d steps)", job.name, len(card.steps))
        return card

    async def drain(self) -> None:
        """Wait until every queued and running job has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
