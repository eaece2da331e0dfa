# order_index/jobs/reindex.py
"""
批量重建索引（CLI 驱动）：

  python -m order_index.jobs.reindex reset-index [--batch N] [--resume]
  python -m order_index.jobs.reindex kill
  python -m order_index.jobs.reindex status

- 按页遍历全部订单 / 订阅，逐条无条件整行重算（重复跑是幂等的）
- 每条记录之前检查 kill switch；观察到后停在当前位置，状态串照常落库
- 每页提交一次，并清空 Session 的对象缓存，长批次内存不膨胀
- --resume 从上次完成的页继续
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Callable, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from order_index.core.config import get_settings
from order_index.core.errors import BulkAbort
from order_index.core.logging import setup_logging
from order_index.db.session import create_async_engine_safe, make_session_maker
from order_index.models.enum import RecordKind
from order_index.ports import RecordPager
from order_index.services import index_options as opts
from order_index.services.index_engine import IndexEngine, build_index_engine
from order_index.services.record_store import SqlRecordSource

logger = logging.getLogger("coidx.reindex")

REINDEX_KINDS = (RecordKind.ORDER, RecordKind.SUBSCRIPTION)


@dataclass(frozen=True)
class ReindexResult:
    total_records: int
    total_batches: int
    batches_done: int
    records_done: int
    failures: int
    aborted: bool
    status: str


def format_status(now: datetime, done: int, total: int) -> str:
    return f"{now.strftime('%Y-%m-%d %H:%M:%S')}: {done} of {total} batches updated"


class BulkReindexer:
    def __init__(
        self,
        engine: IndexEngine,
        pager: RecordPager,
        *,
        batch_size: int = 10000,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self._engine = engine
        self._pager = pager
        self.batch_size = int(batch_size)
        self._clock = clock or (lambda: datetime.now(UTC).replace(tzinfo=None))

    # ---- 控制面 ----
    async def reset_progress(self, session: AsyncSession) -> None:
        """清 kill switch + 进度，从头开始。"""
        await opts.set_option(session, opts.KILL_SWITCH, 0)
        await opts.set_option(session, opts.BATCHES_DONE, 0)
        await opts.set_option(session, opts.STATUS, format_status(self._clock(), 0, 0))
        await session.commit()

    async def clear_kill_switch(self, session: AsyncSession) -> None:
        await opts.set_option(session, opts.KILL_SWITCH, 0)
        await session.commit()

    async def request_abort(self, session: AsyncSession) -> None:
        await opts.set_option(session, opts.KILL_SWITCH, 1)
        await session.commit()

    async def should_abort(self, session: AsyncSession) -> bool:
        return await opts.get_int_option(session, opts.KILL_SWITCH, 0) > 0

    async def status(self, session: AsyncSession) -> Optional[str]:
        return await opts.get_option(session, opts.STATUS)

    async def _write_status(self, session: AsyncSession, done: int, total: int) -> str:
        status = format_status(self._clock(), done, total)
        await opts.set_option(session, opts.BATCHES_DONE, done)
        await opts.set_option(session, opts.STATUS, status)
        return status

    # ---- 主循环 ----
    async def _start_batch(self, session: AsyncSession, total_batches: int, resume: bool) -> int:
        if not resume:
            return 0
        stored_size = await opts.get_int_option(session, opts.BATCH_SIZE, 0)
        if stored_size and stored_size != self.batch_size:
            logger.warning(
                "batch size changed (%s → %s), restarting from the first batch",
                stored_size,
                self.batch_size,
            )
            return 0
        return min(await opts.get_int_option(session, opts.BATCHES_DONE, 0), total_batches)

    async def _recompute_one(self, session: AsyncSession, record_id: int) -> bool:
        # 单条失败只记一次 failure，不中断整轮；只有 kill switch 能提前停
        try:
            async with session.begin_nested():
                return await self._engine.recompute(session, record_id, cascade=False)
        except Exception:
            logger.exception("reindex: record %s failed", record_id)
            return False

    async def run(self, session: AsyncSession, *, resume: bool = False) -> ReindexResult:
        total_records = await self._pager.count_records(session, REINDEX_KINDS)
        total_batches = math.ceil(total_records / self.batch_size)

        done = await self._start_batch(session, total_batches, resume)
        await opts.set_option(session, opts.BATCH_SIZE, self.batch_size)
        status = await self._write_status(session, done, total_batches)
        await session.commit()

        records_done = 0
        failures = 0
        aborted = False

        try:
            for page in range(done, total_batches):
                ids = await self._pager.page_record_ids(
                    session,
                    REINDEX_KINDS,
                    limit=self.batch_size,
                    offset=page * self.batch_size,
                )
                for record_id in ids:
                    if await self.should_abort(session):
                        raise BulkAbort(batches_done=done, total_batches=total_batches)
                    if not await self._recompute_one(session, record_id):
                        failures += 1
                    records_done += 1

                done += 1
                status = await self._write_status(session, done, total_batches)
                await session.commit()
                # 清空 identity map，长批次不累积对象
                session.expunge_all()
                logger.info("reindex: %s", status)
        except BulkAbort as e:
            aborted = True
            status = await self._write_status(session, e.batches_done, e.total_batches)
            await session.commit()
            logger.warning("reindex aborted by kill switch: %s", status)

        return ReindexResult(
            total_records=total_records,
            total_batches=total_batches,
            batches_done=done,
            records_done=records_done,
            failures=failures,
            aborted=aborted,
            status=status,
        )


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="coidx-reindex", description="Customer order index maintenance")
    sub = p.add_subparsers(dest="command", required=True)

    reset = sub.add_parser("reset-index", help="rebuild every index row")
    reset.add_argument("--batch", type=int, default=None, help="records per batch")
    reset.add_argument("--resume", action="store_true", help="continue after the last finished batch")

    sub.add_parser("kill", help="ask a running rebuild to stop")
    sub.add_parser("status", help="print the persisted progress status")
    return p


async def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.JSON_LOG)

    db_engine = create_async_engine_safe(settings.DATABASE_URL, echo=settings.SQL_ECHO)
    session_maker = make_session_maker(db_engine)
    reindexer = BulkReindexer(
        build_index_engine(),
        SqlRecordSource(),
        batch_size=getattr(args, "batch", None) or settings.REINDEX_BATCH_SIZE,
    )

    try:
        async with session_maker() as session:
            if args.command == "kill":
                await reindexer.request_abort(session)
                print("[reindex] kill switch set")
                return 0

            if args.command == "status":
                print(f"[reindex] {await reindexer.status(session) or 'never run'}")
                return 0

            if args.resume:
                await reindexer.clear_kill_switch(session)
            else:
                await reindexer.reset_progress(session)
            result = await reindexer.run(session, resume=args.resume)
            print(
                f"[reindex] {result.status} "
                f"(records={result.records_done}, failures={result.failures}, aborted={result.aborted})"
            )
            return 1 if result.aborted else 0
    finally:
        await db_engine.dispose()


def run_cli(argv: Optional[Sequence[str]] = None) -> None:
    raise SystemExit(asyncio.run(main(argv)))


if __name__ == "__main__":
    run_cli()
