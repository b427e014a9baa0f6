import json

import pytest

from cursorcam.app import main
from cursorcam.core.camera import CameraSettings
from cursorcam.core.decoder import MediaDecoder
from cursorcam.core.errors import InputError, ResampleError, StreamError
from cursorcam.core.project_model import MouseEvent
from cursorcam.core.sampler import RegionSampler
from cursorcam.io.encoder import OUTPUT_PROFILE, MediaEncoder
from cursorcam.io.exporter import (
    SUCCESS_MESSAGE,
    Exporter,
    PipelineSettings,
    TransformOutcome,
    run_transform,
    transform_video,
)

from conftest import CLIP_FRAMES, CLIP_HEIGHT, CLIP_WIDTH, CONFIG_DATA, requires_x264, write_clip

MOUSE_EVENTS = [MouseEvent(5, 5, 0), MouseEvent(40, 30, 50), MouseEvent(60, 40, 120)]


@requires_x264
def test_transform_writes_zoomed_video(tmp_path, sample_clip, make_config, window):
    output = tmp_path / "output.mp4"
    config = make_config([(0, 100, 0.5)], duration=200)
    settings = PipelineSettings(upscale_factor=2, camera=CameraSettings(friction=1.0))

    message = transform_video(config, MOUSE_EVENTS, window, sample_clip, output, settings)

    assert message == SUCCESS_MESSAGE
    info = MediaDecoder.probe(output)
    assert (info["width"], info["height"]) == (CLIP_WIDTH, CLIP_HEIGHT)
    with MediaDecoder(output) as decoder:
        assert len(list(decoder.frames())) == CLIP_FRAMES


@requires_x264
def test_exporter_counts_frames_without_zoom(tmp_path, sample_clip, make_config, window):
    exporter = Exporter(make_config([]), [], window, PipelineSettings(upscale_factor=1))
    assert exporter.export(sample_clip, tmp_path / "plain.mp4") == CLIP_FRAMES


@requires_x264
def test_exporter_encodes_with_fixed_profile(tmp_path, sample_clip, make_config, window, monkeypatch):
    profiles = []
    init = MediaEncoder.__init__

    def recording_init(self, path, width, height, profile=None):
        init(self, path, width, height, profile)
        profiles.append(self.profile)

    monkeypatch.setattr(MediaEncoder, "__init__", recording_init)

    Exporter(make_config([]), [], window, PipelineSettings(upscale_factor=1)).export(sample_clip, tmp_path / "out.mp4")

    assert profiles == [OUTPUT_PROFILE]


@requires_x264
def test_transform_follows_source_size(tmp_path, make_config, window):
    clip = write_clip(tmp_path / "wide.mp4", frames=4, width=96, height=40)
    output = tmp_path / "output.mp4"

    transform_video(make_config([(0, 30, 0.7)]), MOUSE_EVENTS, window, clip, output,
                    PipelineSettings(upscale_factor=1))

    info = MediaDecoder.probe(output)
    assert (info["width"], info["height"]) == (96, 40)
    with MediaDecoder(output) as decoder:
        assert len(list(decoder.frames())) == 4


def test_transform_rejects_invalid_config_before_decoding(tmp_path, make_config, window):
    config = make_config([(0, 100, 0.0)])
    with pytest.raises(InputError):
        transform_video(config, [], window, tmp_path / "missing.mp4", tmp_path / "out.mp4")


def test_transform_missing_input_is_stream_error(tmp_path, make_config, window):
    with pytest.raises(StreamError):
        transform_video(make_config([]), [], window, tmp_path / "missing.mp4", tmp_path / "out.mp4")


def test_run_transform_reports_failures_as_messages(tmp_path, make_config, window):
    outcome = run_transform(make_config([]), [], window, tmp_path / "missing.mp4", tmp_path / "out.mp4")

    assert outcome.ok is False
    assert "Could not open file" in outcome.message


def test_run_transform_reports_config_errors(tmp_path, make_config, window):
    config = make_config([])
    config.background_info = []

    outcome = run_transform(config, [], window, tmp_path / "missing.mp4", tmp_path / "out.mp4")

    assert outcome.ok is False
    assert "background_info" in outcome.message


@requires_x264
def test_run_transform_releases_codecs_after_mid_run_failure(tmp_path, sample_clip, make_config, window,
                                                             monkeypatch):
    closed = []
    calls = []
    extract = RegionSampler.extract

    def failing_extract(self, canvas, rect):
        calls.append(rect)
        if len(calls) == 4:
            raise ResampleError("zoom stage failed")
        return extract(self, canvas, rect)

    def recording_close(cls):
        close = cls.close

        def _close(self):
            closed.append((cls.__name__, self._container is not None))
            close(self)

        return _close

    monkeypatch.setattr(RegionSampler, "extract", failing_extract)
    monkeypatch.setattr(MediaDecoder, "close", recording_close(MediaDecoder))
    monkeypatch.setattr(MediaEncoder, "close", recording_close(MediaEncoder))

    outcome = run_transform(make_config([(0, 100, 0.5)]), MOUSE_EVENTS, window, sample_clip,
                            tmp_path / "out.mp4", PipelineSettings(upscale_factor=1))

    assert outcome == TransformOutcome(ok=False, message="zoom stage failed")
    assert len(calls) == 4
    assert ("MediaDecoder", True) in closed
    assert ("MediaEncoder", True) in closed


def _write_project(directory, clip_name="capture.mp4"):
    config = dict(CONFIG_DATA, duration=400, input_file=clip_name, zoom_info=[{"start": 0, "end": 200, "zoom": 0.6}])
    (directory / "config.json").write_text(json.dumps(config), encoding="utf-8")
    (directory / "positions.json").write_text(json.dumps([m.to_dict() for m in MOUSE_EVENTS]), encoding="utf-8")
    (directory / "source.json").write_text(
        json.dumps({"x": 0, "y": 0, "width": CLIP_WIDTH, "height": CLIP_HEIGHT, "scale_factor": 1.0}),
        encoding="utf-8",
    )
    return directory / "config.json"


@requires_x264
def test_cli_transform(tmp_path, sample_clip, capsys):
    config_path = _write_project(tmp_path)

    assert main(["transform", str(config_path), "--upscale", "1"]) == 0
    assert SUCCESS_MESSAGE in capsys.readouterr().out
    assert (tmp_path / "output.mp4").exists()


def test_cli_transform_reports_missing_input(tmp_path, capsys):
    config_path = _write_project(tmp_path, clip_name="absent.mp4")

    assert main(["transform", str(config_path)]) == 1
    assert "Could not open file" in capsys.readouterr().err


def test_cli_probe(sample_clip, capsys):
    assert main(["probe", str(sample_clip)]) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["width"] == CLIP_WIDTH
