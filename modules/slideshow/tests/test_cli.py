"""
Unit tests for the slideshow command line.
"""
from unittest.mock import AsyncMock, patch

import pytest

from modules.slideshow.cli import build_parser, load_frames, main
from shared.errors import EngineInitError
from shared.models.slideshow import JobResult


@pytest.fixture
def image_files(tmp_path):
    paths = []
    for name in ("c.png", "a.JPG", "b.png"):
        path = tmp_path / name
        path.write_bytes(f"bytes of {name}".encode())
        paths.append(path)
    return paths


def fake_result(**overrides) -> JobResult:
    data = dict(
        data=b"encoded video",
        mime_type="video/mp4",
        output_format="mp4",
        frame_count=3,
        video_duration=6.0,
        has_audio=False,
        size_mb=0.01,
        composition_time=1.2
    )
    data.update(overrides)
    return JobResult(**data)


def test_parser_defaults(tmp_path):
    args = build_parser().parse_args(["a.png", "-o", str(tmp_path / "out.mp4")])

    assert args.duration == 3.0
    assert args.fps == 5
    assert args.format == "mp4"
    assert args.audio is None


def test_load_frames_keeps_given_order(image_files):
    frames = load_frames(image_files)

    assert [f.index for f in frames] == [0, 1, 2]
    assert [f.data for f in frames] == [p.read_bytes() for p in image_files]
    assert [f.extension for f in frames] == ["png", "jpg", "png"]


@patch("modules.slideshow.cli.EngineLifecycle.shutdown", new_callable=AsyncMock)
@patch("modules.slideshow.cli.CompositionPipeline.run", new_callable=AsyncMock)
def test_main_writes_output(mock_run, mock_shutdown, image_files, tmp_path):
    mock_run.return_value = fake_result()
    output = tmp_path / "slideshow.mp4"

    exit_code = main([*map(str, image_files), "-o", str(output), "--duration", "2", "--fps", "30"])

    assert exit_code == 0
    assert output.read_bytes() == b"encoded video"
    frames, job_settings = mock_run.call_args[0]
    assert len(frames) == 3
    assert job_settings.duration_per_frame == 2
    assert job_settings.frame_rate == 30
    assert mock_run.call_args[1]["audio"] is None
    mock_shutdown.assert_awaited_once()


@patch("modules.slideshow.cli.EngineLifecycle.shutdown", new_callable=AsyncMock)
@patch("modules.slideshow.cli.CompositionPipeline.run", new_callable=AsyncMock)
def test_main_passes_audio(mock_run, mock_shutdown, image_files, tmp_path):
    mock_run.return_value = fake_result(has_audio=True)
    audio = tmp_path / "song.wav"
    audio.write_bytes(b"RIFF")

    exit_code = main([str(image_files[0]), "--audio", str(audio), "-o", str(tmp_path / "o.mp4")])

    assert exit_code == 0
    track = mock_run.call_args[1]["audio"]
    assert track.data == b"RIFF"
    assert track.extension == "wav"


@patch("modules.slideshow.cli.EngineLifecycle.shutdown", new_callable=AsyncMock)
@patch("modules.slideshow.cli.CompositionPipeline.run", new_callable=AsyncMock)
def test_main_reports_pipeline_error(mock_run, mock_shutdown, image_files, tmp_path, capsys):
    mock_run.side_effect = EngineInitError("FFmpeg not found")
    output = tmp_path / "o.mp4"

    exit_code = main([str(image_files[0]), "-o", str(output)])

    assert exit_code == 1
    assert "EngineInitError: FFmpeg not found" in capsys.readouterr().err
    assert not output.exists()
    mock_shutdown.assert_awaited_once()


@patch("modules.slideshow.cli.CompositionPipeline.run", new_callable=AsyncMock)
def test_main_rejects_missing_image(mock_run, tmp_path):
    exit_code = main([str(tmp_path / "missing.png"), "-o", str(tmp_path / "o.mp4")])

    assert exit_code == 2
    mock_run.assert_not_awaited()


@patch("modules.slideshow.cli.CompositionPipeline.run", new_callable=AsyncMock)
def test_main_rejects_invalid_duration(mock_run, image_files, tmp_path):
    exit_code = main([str(image_files[0]), "--duration", "0", "-o", str(tmp_path / "o.mp4")])

    assert exit_code == 2
    mock_run.assert_not_awaited()
