"""
Main entry point for mood-insight
"""

import argparse
import asyncio
import contextlib
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError
from rich.console import Console
from rich.table import Table

from mood_insight import __version__
from mood_insight.ai.backends import (
    BackendProxyBackend,
    InsightBackend,
    StaticAuthProvider,
    create_backend,
)
from mood_insight.ai.config_repository import AnalysisConfigRepository
from mood_insight.ai.errors import InsightError
from mood_insight.ai.models import (
    AnalysisConfig,
    AnalysisFocus,
    BackendConfig,
    BackendKind,
    ComparisonOption,
    DetailLevel,
    InsightResult,
    ResponseStyle,
)
from mood_insight.ai.service import InsightService
from mood_insight.config import get_settings
from mood_insight.lifelog.models import Activity, MoodRecord
from mood_insight.monitoring.metrics import AnalysisMetrics
from mood_insight.network.http import HttpTransport
from mood_insight.storage.kv_store import JsonFileKeyValueStore
from mood_insight.utils import get_logger, setup_logging
from mood_insight.utils.mixins import LoggerMixin

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

    from mood_insight.config.settings import Settings

console = Console()


class RecordsFile(BaseModel):
    """analyze コマンドの入力ファイル"""

    start_date: str
    end_date: str
    mood_records: list[MoodRecord] = []
    activities: list[Activity] = []


@dataclass
class RuntimeContext(LoggerMixin):
    """Container for runtime components."""

    settings: "Settings"
    store: JsonFileKeyValueStore
    metrics: AnalysisMetrics
    config_repository: AnalysisConfigRepository
    transport: HttpTransport

    def backend_config(self, kind: BackendKind) -> BackendConfig:
        """設定値から指定方式の資格情報をまとめる"""
        return BackendConfig(
            mode=kind,
            gemini_api_key=self.settings.gemini_api_key,
            backend_base_url=self.settings.backend_base_url,
            backend_token=self.settings.backend_token,
        )

    def select_backend_kind(self, requested: str | None = None) -> BackendKind:
        """
        使用する実行方式を決める

        明示指定があればそれを使う。設定の方式に資格情報が揃っておらず、
        もう一方の方式なら揃っている場合はそちらへ切り替える。
        """
        if requested:
            return BackendKind(requested)

        config = self.backend_config(BackendKind(self.settings.backend_kind.upper()))
        if config.is_valid():
            return config.mode
        for other in BackendKind:
            if config.can_migrate_to(other):
                self.logger.warning(
                    "Configured backend is incomplete, switching",
                    configured=config.mode.value,
                    selected=other.value,
                )
                return other
        return config.mode

    def backend(self, kind: BackendKind) -> InsightBackend:
        config = self.backend_config(kind)
        auth = StaticAuthProvider(
            token=(
                config.backend_token.get_secret_value()
                if config.backend_token
                else None
            ),
            user_id=self.settings.backend_user_id,
        )
        return create_backend(
            kind,
            transport=self.transport,
            metrics=self.metrics,
            auth_provider=auth,
            backend_config=config,
        )


def _enum_names(enum_type: type) -> list[str]:
    return [member.name for member in enum_type]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mood-insight",
        description="AI life insights from mood and activity records",
    )
    parser.add_argument("--version", action="version", version=__version__)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Generate an insight")
    analyze.add_argument("records", type=Path, help="JSON file with records")
    analyze.add_argument(
        "--backend",
        choices=[kind.value for kind in BackendKind],
        help="Backend to use (default: BACKEND_KIND setting)",
    )
    analyze.add_argument(
        "--compare", action="store_true", help="Run both backends side by side"
    )
    analyze.add_argument("--focus", choices=_enum_names(AnalysisFocus))
    analyze.add_argument("--detail", choices=_enum_names(DetailLevel))
    analyze.add_argument("--style", choices=_enum_names(ResponseStyle))
    analyze.add_argument("--comparison", choices=_enum_names(ComparisonOption))

    subparsers.add_parser("stats", help="Show backend performance stats")

    export = subparsers.add_parser("export-csv", help="Export metrics as CSV")
    export.add_argument("--output", type=Path, help="Output file (default: stdout)")

    subparsers.add_parser("clear-metrics", help="Delete recorded metrics")
    subparsers.add_parser("usage", help="Show backend AI usage")

    config = subparsers.add_parser("config", help="Show or save analysis settings")
    config.add_argument("--focus", choices=_enum_names(AnalysisFocus))
    config.add_argument("--detail", choices=_enum_names(DetailLevel))
    config.add_argument("--style", choices=_enum_names(ResponseStyle))
    config.add_argument("--comparison", choices=_enum_names(ComparisonOption))
    config.add_argument("--reset", action="store_true", help="Restore defaults")

    return parser


def apply_overrides(
    config: AnalysisConfig, args: argparse.Namespace
) -> AnalysisConfig:
    """コマンドライン指定で設定を上書き"""
    updates = {}
    if args.focus:
        updates["focus"] = AnalysisFocus[args.focus]
    if args.detail:
        updates["detail_level"] = DetailLevel[args.detail]
    if args.style:
        updates["response_style"] = ResponseStyle[args.style]
    if args.comparison:
        updates["comparison_option"] = ComparisonOption[args.comparison]
    return config.model_copy(update=updates)


def load_records(path: Path) -> RecordsFile:
    return RecordsFile.model_validate_json(path.read_text(encoding="utf-8"))


async def build_runtime_context(settings: "Settings") -> RuntimeContext:
    store = JsonFileKeyValueStore(settings.store_path)
    metrics = AnalysisMetrics(store)
    await metrics.load()
    return RuntimeContext(
        settings=settings,
        store=store,
        metrics=metrics,
        config_repository=AnalysisConfigRepository(store),
        transport=HttpTransport(),
    )


def render_result(kind: BackendKind, result: InsightResult | InsightError) -> None:
    if isinstance(result, InsightError):
        console.print(f"[red]{kind.value}: {result.message}[/red]")
        return
    if not result.success or result.data is None:
        console.print(f"[yellow]{kind.value}: {result.error}[/yellow]")
        return

    insight = result.data
    console.rule(f"{kind.value} ({insight.start_date} ～ {insight.end_date})")
    console.print(f"[bold]総評[/bold]\n{insight.summary}\n")
    console.print(f"[bold]気分の傾向[/bold]\n{insight.mood_analysis}\n")
    console.print(f"[bold]活動パターン[/bold]\n{insight.activity_analysis}\n")
    if insight.recommendations:
        console.print("[bold]アドバイス[/bold]")
        for item in insight.recommendations:
            console.print(f"・{item}")
    if insight.highlights:
        console.print("[bold]良かった点[/bold]")
        for item in insight.highlights:
            console.print(f"・{item}")
    console.print(f"\n{insight.motivational_message}")
    if result.metadata:
        console.print(
            f"[dim]{result.metadata.provider_id} / "
            f"{result.metadata.processing_time_ms} ms[/dim]"
        )


async def run_analyze(
    args: argparse.Namespace, context: RuntimeContext, logger: "BoundLogger"
) -> int:
    try:
        records = load_records(args.records)
    except (OSError, ValidationError) as e:
        logger.error("Failed to read records file", path=str(args.records))
        console.print(f"[red]Failed to read {args.records}: {e}[/red]")
        return 2

    config = apply_overrides(await context.config_repository.get_config(), args)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)

    try:
        if args.compare:
            backends = [context.backend(kind) for kind in BackendKind]
            results = await InsightService.compare_backends(
                backends,
                records.start_date,
                records.end_date,
                records.activities,
                records.mood_records,
                config,
                cancel_event=cancel_event,
            )
            for kind, outcome in results.items():
                render_result(kind, outcome)
            return 0

        kind = context.select_backend_kind(args.backend)
        service = InsightService(context.backend(kind))
        try:
            result = await service.execute(
                records.start_date,
                records.end_date,
                records.activities,
                records.mood_records,
                config,
                cancel_event=cancel_event,
            )
        except InsightError as e:
            render_result(kind, e)
            return 1
        render_result(kind, result)
        return 0 if result.success else 1
    except asyncio.CancelledError:
        console.print("[yellow]Analysis cancelled[/yellow]")
        return 130
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)


def run_stats(context: RuntimeContext) -> int:
    stats = context.metrics.get_performance_stats()
    table = Table(title=f"AI analyses: {stats.total_analyses}")
    table.add_column("Backend")
    table.add_column("Analyses", justify="right")
    table.add_column("Success rate", justify="right")
    table.add_column("Avg response (ms)", justify="right")
    for kind in BackendKind:
        backend_stats = stats.for_backend(kind)
        table.add_row(
            kind.value,
            str(backend_stats.analyses),
            f"{backend_stats.success_rate:.0%}",
            f"{backend_stats.avg_response_time_ms:.0f}",
        )
    console.print(table)
    for error in stats.common_errors:
        console.print(f"  {error.error_type}: {error.count}")
    return 0


def run_export(args: argparse.Namespace, context: RuntimeContext) -> int:
    csv_text = context.metrics.export_csv()
    if args.output:
        args.output.write_text(csv_text, encoding="utf-8")
        count = len(context.metrics.entries)
        console.print(f"Exported {count} entries to {args.output}")
    else:
        sys.stdout.write(csv_text)
    return 0


async def run_usage(context: RuntimeContext) -> int:
    backend = context.backend(BackendKind.BACKEND_PROXY)
    assert isinstance(backend, BackendProxyBackend)
    try:
        usage = await backend.get_usage_info()
    except InsightError as e:
        console.print(f"[red]{e.message}[/red]")
        return 1
    console.print(usage.usage_display_text)
    if usage.needs_warning:
        console.print("[yellow]本日の残り回数がわずかです[/yellow]")
    return 0


async def run_config(args: argparse.Namespace, context: RuntimeContext) -> int:
    repository = context.config_repository
    if args.reset:
        await repository.reset_to_defaults()
    elif any([args.focus, args.detail, args.style, args.comparison]):
        config = apply_overrides(await repository.get_config(), args)
        await repository.save_config(config)

    config = await repository.get_config()
    for label, value in [
        ("期間", config.period),
        ("比較", config.comparison_option),
        ("焦点", config.focus),
        ("詳細度", config.detail_level),
        ("口調", config.response_style),
    ]:
        console.print(f"{label}: {value.display_name} ({value.name})")
    return 0


async def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging()
    logger = get_logger("main")
    settings = get_settings()

    logger.info("Starting mood-insight", version=__version__, command=args.command)

    context = await build_runtime_context(settings)
    try:
        if args.command == "analyze":
            return await run_analyze(args, context, logger)
        if args.command == "stats":
            return run_stats(context)
        if args.command == "export-csv":
            return run_export(args, context)
        if args.command == "clear-metrics":
            await context.metrics.clear()
            console.print("Metrics cleared")
            return 0
        if args.command == "usage":
            return await run_usage(context)
        if args.command == "config":
            return await run_config(args, context)
        return 2
    finally:
        await context.transport.close()


def cli() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nStopped by user")
        sys.exit(130)


if __name__ == "__main__":
    cli()
