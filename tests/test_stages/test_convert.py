"""Tests for stages/convert.py -- ffmpeg fallback."""

import subprocess
from unittest.mock import patch

import pytest

from audio_resolver.errors import (
    ConversionFailedError,
    ConversionUnavailableError,
    DownloadError,
    ExternalToolError,
)
from audio_resolver.process import ProcessOutcome
from audio_resolver.stages import convert
from audio_resolver.stages.scratch import attempt_scratch


class TestTranscoderInstalled:
    def setup_method(self):
        convert.transcoder_installed.cache_clear()

    def teardown_method(self):
        convert.transcoder_installed.cache_clear()

    @patch("audio_resolver.stages.convert.subprocess.run")
    def test_installed(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="ffmpeg version 7.0", stderr=""
        )
        assert convert.transcoder_installed("ffmpeg") is True
        assert mock_run.call_args[0][0] == ["ffmpeg", "-version"]

    @patch("audio_resolver.stages.convert.subprocess.run")
    def test_missing_binary(self, mock_run):
        mock_run.side_effect = FileNotFoundError("ffmpeg")
        assert convert.transcoder_installed("ffmpeg") is False

    @patch("audio_resolver.stages.convert.subprocess.run")
    def test_cached(self, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=0)
        convert.transcoder_installed("ffmpeg")
        convert.transcoder_installed("ffmpeg")
        assert mock_run.call_count == 1


class TestConvert:
    def test_command(self, tmp_path, fakes):
        runner = fakes.Runner(transcode=fakes.transcode_ok())
        convert.convert(
            tmp_path / "in.tmp", tmp_path / "in.tmp.mp3", tmp_path / "c.log", runner
        )
        assert runner.calls[0] == [
            "ffmpeg", "-y", "-i", str(tmp_path / "in.tmp"), "-vn", str(tmp_path / "in.tmp.mp3"),
        ]

    def test_failure(self, tmp_path, fakes):
        runner = fakes.Runner(transcode=fakes.transcode_fail())
        with pytest.raises(ExternalToolError) as exc_info:
            convert.convert(tmp_path / "a", tmp_path / "b", tmp_path / "c.log", runner)
        assert exc_info.value.exit_code == 1

    def test_timeout(self, tmp_path, fakes):
        def handler(cmd, log_path, timeout):
            return ProcessOutcome(returncode=-9, timed_out=True)

        with pytest.raises(ExternalToolError):
            convert.convert(
                tmp_path / "a", tmp_path / "b", tmp_path / "c.log", fakes.Runner(transcode=handler)
            )


class TestRun:
    @patch("audio_resolver.stages.convert.transcoder_installed", return_value=True)
    def test_produces_artifact(self, _installed, config, fakes):
        runner = fakes.Runner(transcode=fakes.transcode_ok())
        with attempt_scratch(config.work_dir, "t", "m4a") as scratch:
            scratch.raw.write_bytes(b"raw")
            artifact = convert.run(scratch, config, runner)
            assert artifact.path == scratch.target
            assert artifact.path.read_bytes() == b"converted"
        assert runner.calls[0][-1] == str(scratch.target)

    @patch("audio_resolver.stages.convert.transcoder_installed", return_value=True)
    def test_no_raw_file(self, _installed, config, fakes):
        runner = fakes.Runner()
        with attempt_scratch(config.work_dir, "t", "m4a") as scratch:
            with pytest.raises(DownloadError):
                convert.run(scratch, config, runner)
        assert runner.calls == []

    @patch("audio_resolver.stages.convert.transcoder_installed", return_value=False)
    def test_unavailable(self, _installed, config, fakes):
        runner = fakes.Runner()
        with attempt_scratch(config.work_dir, "t", "m4a") as scratch:
            scratch.raw.write_bytes(b"raw")
            with pytest.raises(ConversionUnavailableError):
                convert.run(scratch, config, runner)
        assert runner.calls == []

    @patch("audio_resolver.stages.convert.transcoder_installed", return_value=True)
    def test_failure_names_log(self, _installed, config, fakes):
        runner = fakes.Runner(transcode=fakes.transcode_fail())
        with attempt_scratch(config.work_dir, "t", "m4a") as scratch:
            scratch.raw.write_bytes(b"raw")
            with pytest.raises(ConversionFailedError) as exc_info:
                convert.run(scratch, config, runner)
            assert exc_info.value.log_name == scratch.conversion_log.name
            assert scratch.conversion_log.exists()

    @patch("audio_resolver.stages.convert.transcoder_installed", return_value=True)
    def test_success_without_output(self, _installed, config, fakes):
        def handler(cmd, log_path, timeout):
            return ProcessOutcome(returncode=0)

        with attempt_scratch(config.work_dir, "t", "m4a") as scratch:
            scratch.raw.write_bytes(b"raw")
            with pytest.raises(ConversionFailedError):
                convert.run(scratch, config, fakes.Runner(transcode=handler))
