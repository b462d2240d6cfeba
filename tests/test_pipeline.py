"""
Tests for the batch transcription pipeline.
"""

import json
import os

import pytest

from captionsync.exceptions import ArtifactWriteError
from captionsync.models import PipelineRunState
from captionsync.pipeline import TranscriptionPipeline
from captionsync.transcript_store import TranscriptStore

from conftest import FakeNormalizer, FakeTranscriber


class FailingStore(TranscriptStore):
    def write(self, artifact, path):
        raise ArtifactWriteError(f"disk full: {path}")


def _pipeline(config, normalizer=None, transcriber=None, **kwargs):
    return TranscriptionPipeline(
        config=config,
        normalizer=normalizer or FakeNormalizer(),
        transcriber=transcriber or FakeTranscriber(),
        **kwargs,
    )


class TestProcessing:

    def test_directory_run_writes_artifacts(self, config, media_tree):
        transcriber = FakeTranscriber()
        state = _pipeline(config, transcriber=transcriber).process_paths([str(media_tree)], "en")

        assert len(state.processed) == 3
        assert len(transcriber.calls) == 3
        data = json.loads((media_tree / "intro.json").read_text(encoding="utf-8"))
        assert data["transcription"] == [
            {"startInSeconds": 0.0, "text": "Hello world"},
            {"startInSeconds": 1.5, "text": "again"},
        ]
        assert data["fullTranscription"] == "Hello world again"
        assert len(data["rawTokens"]) == 3
        assert (media_tree / "talks" / "keynote.json").exists()
        assert (media_tree / "talks" / "2024" / "panel.json").exists()
        assert not (media_tree / "notes.json").exists()

    def test_second_run_transcribes_nothing(self, config, media_tree):
        _pipeline(config).process_paths([str(media_tree)], "en")

        transcriber = FakeTranscriber()
        state = _pipeline(config, transcriber=transcriber).process_paths([str(media_tree)], "en")
        assert transcriber.calls == []
        assert len(state.skipped) == 3
        assert state.processed == []

    def test_force_retranscribes(self, config, media_tree):
        _pipeline(config).process_paths([str(media_tree)], "en")
        transcriber = FakeTranscriber()
        _pipeline(config, transcriber=transcriber, force=True).process_paths([str(media_tree)], "en")
        assert len(transcriber.calls) == 3

    def test_language_is_passed_through(self, config, media_tree):
        transcriber = FakeTranscriber()
        _pipeline(config, transcriber=transcriber).process_paths([str(media_tree / "intro.mp4")], "de")
        assert transcriber.calls[0][1] == "de"

    def test_single_unsupported_file_is_ignored(self, config, media_tree):
        transcriber = FakeTranscriber()
        state = _pipeline(config, transcriber=transcriber).process_paths([str(media_tree / "notes.txt")], "en")
        assert transcriber.calls == []
        assert state.processed == state.skipped == state.failed == []

    def test_missing_path_is_recorded(self, config, media_tree):
        missing = str(media_tree / "gone.mp4")
        state = _pipeline(config).process_paths([missing, str(media_tree / "intro.mp4")], "en")
        assert state.failed == [missing]
        assert state.processed == [str(media_tree / "intro.mp4")]


class TestFailures:

    def test_normalization_failure_is_isolated_and_cleaned_up(self, config, media_tree):
        normalizer = FakeNormalizer(fail_for=["intro.mp4"])
        state = _pipeline(config, normalizer=normalizer).process_paths([str(media_tree)], "en")

        assert state.failed == [str(media_tree / "intro.mp4")]
        assert len(state.processed) == 2
        assert not (media_tree / "intro.json").exists()
        assert not os.path.exists(config["temp_dir"])

    def test_transcription_failure_is_isolated(self, config, media_tree):
        transcriber = FakeTranscriber(fail_for=["keynote.wav"])
        state = _pipeline(config, transcriber=transcriber).process_paths([str(media_tree)], "en")

        assert state.failed == [str(media_tree / "talks" / "keynote.wav")]
        assert len(state.processed) == 2
        assert not (media_tree / "talks" / "keynote.json").exists()
        assert not os.path.exists(config["temp_dir"])

    def test_existing_temp_dir_is_kept_but_emptied(self, config, media_tree):
        os.makedirs(config["temp_dir"])
        state = PipelineRunState()
        _pipeline(config).process_file(str(media_tree / "intro.mp4"), "en", state)

        assert os.path.isdir(config["temp_dir"])
        assert os.listdir(config["temp_dir"]) == []
        assert state.workspace is not None
        assert state.workspace.created_by_this_run is False

    def test_created_temp_dir_is_flagged_and_removed(self, config, media_tree):
        state = PipelineRunState()
        _pipeline(config).process_file(str(media_tree / "intro.mp4"), "en", state)
        assert state.workspace.created_by_this_run is True
        assert not os.path.exists(config["temp_dir"])

    def test_write_error_aborts_the_run(self, config, media_tree):
        with pytest.raises(ArtifactWriteError):
            _pipeline(config, store=FailingStore()).process_paths([str(media_tree)], "en")
        assert not os.path.exists(config["temp_dir"])

    def test_progress_callback(self, config, media_tree):
        seen = []
        _pipeline(config, on_asset_done=lambda asset: seen.append(asset.base_name)).process_paths(
            [str(media_tree)], "en"
        )
        assert seen == ["intro", "panel", "keynote"]
