import json
import logging

from product_lookup.errors import PluginExecutionError
from product_lookup.models import ProductLookupResult, SearchType
from product_lookup.pipeline.cancellation import CancellationToken
from product_lookup.pipeline.context import PipelineContext
from product_lookup.pipeline.runner import PipelineRunner, run_pipeline

from tests.plugins.dummies import CancellingPlugin, DummyEnricher, DummySource, FailingPlugin


def _ready(plugin, config=None):
    plugin.init(config)
    return plugin


def _events(caplog):
    out = []
    for record in caplog.records:
        try:
            out.append(json.loads(record.getMessage()))
        except ValueError:
            continue
    return out


def test_plugins_run_in_order_and_enrich():
    source = _ready(DummySource([{"name": "Oat Drink", "barcode": "761720051108"}]))
    enricher = _ready(DummyEnricher(), {"brand": "Oatly"})

    results = run_pipeline([source, enricher], "761720051108", SearchType.BARCODE)

    assert len(results) == 1
    assert results[0].brand_name == "Oatly"
    assert results[0].data_sources == {"Dummy Source": "", "Dummy Enricher": "enriched"}
    assert source.calls == [("761720051108", SearchType.BARCODE, 20)]


def test_failing_plugin_does_not_stop_later_plugins(caplog):
    caplog.set_level(logging.INFO)
    failing = _ready(FailingPlugin())
    source = _ready(DummySource([{"name": "Oat Drink"}]))
    ctx = PipelineContext("oat drink", SearchType.NAME)

    results = PipelineRunner().run(ctx, [failing, source])

    assert [r.name for r in results] == ["Oat Drink"]
    assert len(ctx.plugin_errors) == 1
    error = ctx.plugin_errors[0]
    assert isinstance(error, PluginExecutionError)
    assert error.plugin_id == "failing"
    assert isinstance(error.__cause__, RuntimeError)
    assert not error.cancelled

    events = [e.get("event") for e in _events(caplog)]
    assert "plugin_error" in events
    assert events[-1] == "pipeline_completed"


def test_pre_cancelled_token_runs_no_plugins(caplog):
    caplog.set_level(logging.INFO)
    source = _ready(DummySource([{"name": "Oat Drink"}]))
    token = CancellationToken()
    token.cancel("shutdown")

    results = run_pipeline([source], "oat", SearchType.NAME, cancel_token=token)

    assert results == []
    assert source.calls == []
    assert "pipeline_cancelled" in [e.get("event") for e in _events(caplog)]


def test_plugin_cancellation_is_logged_separately(caplog):
    caplog.set_level(logging.INFO)
    ctx = PipelineContext("oat", SearchType.NAME)
    later = _ready(DummySource([{"name": "Oat Drink"}]))

    PipelineRunner().run(ctx, [_ready(CancellingPlugin()), later])

    assert ctx.plugin_errors[0].cancelled is True
    events = [e.get("event") for e in _events(caplog)]
    assert "plugin_cancelled" in events
    assert "plugin_error" not in events
    # Token was never set, so the next plugin still runs
    assert [r.name for r in ctx.results] == ["Oat Drink"]


def test_cancel_between_plugins_skips_remaining():
    token = CancellationToken()

    class CancelsAfterRunning(DummySource):
        plugin_id = "cancels_after"

        def lookup(self, query, search_type, max_results, cancel_token=None):
            token.cancel()
            return [ProductLookupResult(name="first")]

    first = _ready(CancelsAfterRunning())
    second = _ready(DummySource([{"name": "second"}]))
    ctx = PipelineContext("q", SearchType.NAME)

    PipelineRunner().run(ctx, [first, second], token)

    assert second.calls == []
    # The source noticed the token after its lookup and did not merge
    assert ctx.results == []
    assert ctx.plugin_errors[0].cancelled


def test_swapping_plugin_order_swaps_winner():
    def run(order):
        a = _ready(DummySource([{"name": "Name From A", "barcode": "761720051108"}]))
        b = _ready(DummySource([{"name": "Name From B", "barcode": "0761720051108"}]))
        plugins = {"a": a, "b": b}
        return run_pipeline([plugins[k] for k in order], "761720051108", SearchType.BARCODE)

    assert [r.name for r in run("ab")] == ["Name From A"]
    assert [r.name for r in run("ba")] == ["Name From B"]


def test_empty_plugin_list_returns_empty_results():
    assert run_pipeline([], "oat", SearchType.NAME) == []


def test_every_result_records_the_plugin_that_supplied_it():
    source = _ready(DummySource([{"name": "Rice Drink"}, {"name": "Oat Drink", "data_sources": {"X": "9"}}]))

    results = run_pipeline([source], "drink", SearchType.NAME)

    assert [r.data_sources for r in results] == [{"Dummy Source": ""}, {"X": "9", "Dummy Source": ""}]
