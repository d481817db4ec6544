"""
AI 分析メトリクス収集

直接版とバックエンド版の比較のため、全ての呼び出し結果を最新 100 件まで保持する。
追加のたびにリスト全体をキーバリューストアへ保存する（保存失敗は分析を止めない）。
"""

import asyncio
from collections import Counter

from pydantic import TypeAdapter, ValidationError

from mood_insight.ai.models import BackendKind
from mood_insight.config import get_settings
from mood_insight.monitoring.models import (
    BackendStats,
    DataSize,
    ErrorCount,
    FailureOutcome,
    MetricEntry,
    PerformanceStats,
    RequestShape,
    SuccessOutcome,
)
from mood_insight.storage.kv_store import KeyValueStore
from mood_insight.utils.error_handler import safe_with_default
from mood_insight.utils.mixins import LoggerMixin

METRICS_KEY = "metrics"
CSV_HEADER = (
    "Timestamp,Implementation,StartDate,EndDate,DataSize,"
    "Success,ProcessingTime,ErrorType,ErrorMessage"
)
CSV_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_entries_adapter = TypeAdapter(list[MetricEntry])


class AnalysisMetrics(LoggerMixin):
    """AI 分析のパフォーマンスメトリクス"""

    def __init__(self, store: KeyValueStore, max_entries: int | None = None) -> None:
        self.store = store
        self.max_entries = max_entries or get_settings().metrics_max_entries
        self._entries: list[MetricEntry] = []
        self._lock = asyncio.Lock()

    @property
    def entries(self) -> tuple[MetricEntry, ...]:
        """記録済みメトリクス（新しい順）"""
        return tuple(self._entries)

    async def load(self) -> None:
        """保存済みメトリクスを読み込む（読めない場合は空）"""
        raw = await self._read_snapshot()
        if not raw:
            return
        try:
            entries = _entries_adapter.validate_json(raw)
        except ValidationError as e:
            self.logger.warning(
                "Discarding unreadable metrics", error_count=e.error_count()
            )
            return
        async with self._lock:
            self._entries = entries[: self.max_entries]
        self.logger.info("Metrics loaded", count=len(self._entries))

    async def record(self, entry: MetricEntry) -> MetricEntry:
        async with self._lock:
            self._entries.insert(0, entry)
            del self._entries[self.max_entries :]
            snapshot = list(self._entries)
            await self._persist(snapshot)
        return entry

    async def record_success(
        self,
        backend_kind: BackendKind,
        start_date: str,
        end_date: str,
        processing_time_ms: int,
        data_size: DataSize,
        response_size: int = 0,
        tokens_used: int | None = None,
    ) -> MetricEntry:
        return await self.record(
            MetricEntry(
                backend_kind=backend_kind,
                request=RequestShape(
                    start_date=start_date, end_date=end_date, data_size=data_size
                ),
                outcome=SuccessOutcome(
                    processing_time_ms=processing_time_ms,
                    response_size=response_size,
                    tokens_used=tokens_used,
                ),
            )
        )

    async def record_failure(
        self,
        backend_kind: BackendKind,
        start_date: str,
        end_date: str,
        processing_time_ms: int,
        data_size: DataSize,
        error_type: str,
        error_message: str,
    ) -> MetricEntry:
        return await self.record(
            MetricEntry(
                backend_kind=backend_kind,
                request=RequestShape(
                    start_date=start_date, end_date=end_date, data_size=data_size
                ),
                outcome=FailureOutcome(
                    processing_time_ms=processing_time_ms,
                    error_type=error_type,
                    error_message=error_message,
                ),
            )
        )

    def get_performance_stats(self) -> PerformanceStats:
        """方式ごとの件数・成功率・平均応答時間（成功分のみ）"""
        entries = self._entries
        if not entries:
            return PerformanceStats.empty()

        backends: dict[BackendKind, BackendStats] = {}
        for kind in BackendKind:
            attempts = [e for e in entries if e.backend_kind == kind]
            latencies = [
                e.outcome.processing_time_ms
                for e in attempts
                if isinstance(e.outcome, SuccessOutcome)
            ]
            backends[kind] = BackendStats(
                analyses=len(attempts),
                success_rate=len(latencies) / len(attempts) if attempts else 0.0,
                avg_response_time_ms=(
                    sum(latencies) / len(latencies) if latencies else 0.0
                ),
            )

        return PerformanceStats(
            total_analyses=len(entries),
            backends=backends,
            common_errors=self.get_top_errors(),
        )

    def get_top_errors(self, n: int = 5) -> list[ErrorCount]:
        """失敗をエラー種別ごとに数え、多い順に n 件（同数は種別名順）"""
        counter = Counter(
            e.outcome.error_type
            for e in self._entries
            if isinstance(e.outcome, FailureOutcome)
        )
        ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
        return [
            ErrorCount(error_type=error_type, count=count)
            for error_type, count in ranked[:n]
        ]

    def export_csv(self) -> str:
        lines = [CSV_HEADER]
        for entry in self._entries:
            outcome = entry.outcome
            if isinstance(outcome, FailureOutcome):
                error_type = outcome.error_type
                error_message = outcome.error_message.replace('"', '""')
            else:
                error_type = ""
                error_message = ""
            lines.append(
                ",".join(
                    [
                        entry.timestamp.strftime(CSV_TIMESTAMP_FORMAT),
                        entry.backend_kind.value,
                        entry.request.start_date,
                        entry.request.end_date,
                        str(entry.request.data_size.total_items),
                        "true" if entry.succeeded else "false",
                        str(outcome.processing_time_ms),
                        error_type,
                        f'"{error_message}"',
                    ]
                )
            )
        return "\n".join(lines) + "\n"

    async def clear(self) -> None:
        async with self._lock:
            self._entries = []
            await self._remove_snapshot()
        self.logger.info("Metrics cleared")

    @safe_with_default("read metrics snapshot", None)
    async def _read_snapshot(self) -> str | None:
        return await self.store.get_string(METRICS_KEY)

    @safe_with_default("persist metrics", False)
    async def _persist(self, snapshot: list[MetricEntry]) -> bool:
        await self.store.put_string(
            METRICS_KEY, _entries_adapter.dump_json(snapshot).decode("utf-8")
        )
        return True

    @safe_with_default("remove metrics snapshot", False)
    async def _remove_snapshot(self) -> bool:
        await self.store.remove(METRICS_KEY)
        return True
