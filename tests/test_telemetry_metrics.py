from prometheus_client import REGISTRY

from twbuild.core.observability import PrometheusTelemetry, RecordingTelemetry
from twbuild.core.observability.metrics import inc_named, reset_metrics, snapshot_named


def test_named_counters_increment_and_reset():
    inc_named("fetch.cached")
    inc_named("fetch.cached", 2)
    inc_named("")
    assert snapshot_named() == {"fetch.cached": 3}

    reset_metrics()
    assert snapshot_named() == {}


def test_prometheus_sink_maps_stage_and_patch_events():
    before = REGISTRY.get_sample_value(
        "twbuild_pipeline_stages_total", {"stage": "patch", "status": "ok"}
    ) or 0.0

    sink = PrometheusTelemetry()
    sink.emit("stage.finished", stage="patch", status="ok", duration_seconds=0.25)
    sink.emit("patch.file", target="package.json", status="PATCHED")
    sink.emit("pipeline.started", version="3.4.17")

    after = REGISTRY.get_sample_value("twbuild_pipeline_stages_total", {"stage": "patch", "status": "ok"})
    assert after == before + 1

    snap = snapshot_named()
    assert snap["stage_patch|ok"] == 1
    assert snap["patch_package.json|PATCHED"] == 1
    assert snap["pipeline.started"] == 1


def test_recording_sink_keeps_order():
    sink = RecordingTelemetry()
    sink.emit("a", x=1)
    sink.emit("b")
    sink.emit("a", x=2)
    assert sink.names() == ["a", "b", "a"]
    assert [e.fields["x"] for e in sink.of("a")] == [1, 2]
