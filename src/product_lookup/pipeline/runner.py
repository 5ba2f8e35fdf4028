"""Sequential plugin runner.

Plugins are invoked strictly in configured order against one shared
context. The merge policy is first-writer-wins, so running plugins in
parallel would make results depend on timing.
"""
from __future__ import annotations

import time
from typing import TYPE_CHECKING, List, Optional, Sequence

from product_lookup.errors import OperationCancelledError, PluginExecutionError
from product_lookup.models import ProductLookupResult
from product_lookup.observability.logging import bind_context, get_structured_logger
from product_lookup.pipeline.cancellation import CancellationToken
from product_lookup.pipeline.context import PipelineContext

if TYPE_CHECKING:  # pragma: no cover
    from product_lookup.plugins.interfaces import ProductLookupPlugin

logger = get_structured_logger(__name__)


class PipelineRunner:
    """Drives an ordered list of plugins over a pipeline context.

    A failing plugin is logged and recorded on the context; the remaining
    plugins still run and the lookup never fails because of one source.
    """

    def run(
        self,
        context: PipelineContext,
        plugins: Sequence["ProductLookupPlugin"],
        cancel_token: Optional[CancellationToken] = None,
    ) -> List[ProductLookupResult]:
        run_logger = bind_context(
            logger, {"query": context.query, "search_type": context.search_type.value}
        )
        run_logger.info("pipeline_start", extra={"event": "pipeline_start", "plugin_count": len(plugins)})

        for index, plugin in enumerate(plugins):
            plugin_id = getattr(plugin, "plugin_id", type(plugin).__name__)
            plugin_logger = bind_context(run_logger, {"plugin_id": plugin_id})

            if cancel_token is not None and cancel_token.is_cancelled:
                run_logger.warning(
                    "pipeline_cancelled",
                    extra={"event": "pipeline_cancelled", "skipped_plugins": len(plugins) - index},
                )
                break

            started = time.perf_counter()
            plugin_logger.info("plugin_start", extra={"event": "plugin_start"})
            try:
                plugin.process_pipeline(context, cancel_token)
            except OperationCancelledError as e:
                context.plugin_errors.append(PluginExecutionError(plugin_id, str(e), cancelled=True))
                plugin_logger.warning(f"Plugin '{plugin_id}' cancelled: {e}", extra={"event": "plugin_cancelled"})
                continue
            except Exception as e:
                error = PluginExecutionError(plugin_id, str(e) or type(e).__name__)
                error.__cause__ = e
                context.plugin_errors.append(error)
                plugin_logger.error(
                    f"Plugin '{plugin_id}' failed: {e}", extra={"event": "plugin_error"}, exc_info=True
                )
                continue

            duration_ms = int((time.perf_counter() - started) * 1000)
            plugin_logger.info(
                "plugin_completed",
                extra={"event": "plugin_completed", "duration_ms": duration_ms, "result_count": len(context.results)},
            )

        run_logger.info(
            "pipeline_completed",
            extra={
                "event": "pipeline_completed",
                "result_count": len(context.results),
                "failed_plugins": len(context.plugin_errors),
            },
        )
        return context.results


def run_pipeline(
    plugins: Sequence["ProductLookupPlugin"],
    query: str,
    search_type,
    max_results: int = 20,
    cancel_token: Optional[CancellationToken] = None,
) -> List[ProductLookupResult]:
    """Run *plugins* for one query on a fresh context and return its results."""
    context = PipelineContext(query, search_type, max_results)
    return PipelineRunner().run(context, plugins, cancel_token)
