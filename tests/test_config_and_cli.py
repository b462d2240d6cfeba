"""
Tests for configuration loading and the command line.
"""

import pytest

from captionsync.cli import CLIHandler
from captionsync.config_loader import DEFAULT_CONFIG, ConfigLoader
from captionsync.exceptions import ConfigurationError, TranscriptionError
from captionsync.pipeline import TranscriptionPipeline
from captionsync.transcriber import WhisperTranscriber, tokens_from_segments

from conftest import FakeNormalizer, FakeTranscriber


class TestConfigLoader:

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = ConfigLoader().load_config()
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("language: fr\nfps: 25\nsupported_extensions: [.WAV]\n", encoding="utf-8")
        config = ConfigLoader().load_config(str(path))
        assert config["language"] == "fr"
        assert config["fps"] == 25
        assert config["supported_extensions"] == [".wav"]
        assert config["combine_tokens_within_ms"] == 200

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigLoader().load_config(str(tmp_path / "missing.yaml"))

    @pytest.mark.parametrize("content", ["key: [unclosed", "- just\n- a list\n", "fps: 0\n", "combine_tokens_within_ms: -5\n"])
    def test_invalid_files(self, tmp_path, content):
        path = tmp_path / "config.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigurationError):
            ConfigLoader().load_config(str(path))


class TestWhisperTokens:

    def test_words_are_flattened_in_order(self):
        segments = [
            {"text": " Hello world", "words": [
                {"word": " Hello", "start": 0.0, "end": 0.4, "probability": 0.9},
                {"word": " world", "start": 0.5, "end": 0.9, "probability": 0.8},
            ]},
            {"text": " no words"},
            {"text": " Bye", "words": [{"word": " Bye", "start": 3.0, "end": 3.2}]},
        ]
        tokens = tokens_from_segments(segments)
        assert [(t.text, t.start_in_seconds, t.confidence) for t in tokens] == [
            (" Hello", 0.0, 0.9),
            (" world", 0.5, 0.8),
            (" Bye", 3.0, 1.0),
        ]


class FakeWhisperModel:
    def __init__(self, is_multilingual):
        self.is_multilingual = is_multilingual
        self.calls = []

    def transcribe(self, audio_path, **options):
        self.calls.append(options)
        return {"language": options["language"], "segments": [
            {"text": " Hallo", "words": [{"word": " Hallo", "start": 0.0, "end": 0.4, "probability": 0.7}]},
        ]}


def _whisper(model, model_name="medium"):
    # Skips __init__ so no weights are loaded
    transcriber = WhisperTranscriber.__new__(WhisperTranscriber)
    transcriber.model = model
    transcriber.model_name = model_name
    transcriber.device = "cpu"
    transcriber.fp16 = False
    return transcriber


class TestWhisperTranscriber:

    @pytest.fixture
    def audio(self, tmp_path):
        path = tmp_path / "clip.wav"
        path.write_bytes(b"RIFF")
        return str(path)

    def test_default_model_is_multilingual(self):
        assert DEFAULT_CONFIG["whisper_model"] == "medium"

    def test_english_only_model_rejects_other_languages(self, audio):
        model = FakeWhisperModel(is_multilingual=False)
        with pytest.raises(TranscriptionError, match="English-only"):
            _whisper(model, "medium.en").transcribe(audio, language="de")
        assert model.calls == []

    def test_english_only_model_accepts_english(self, audio):
        model = FakeWhisperModel(is_multilingual=False)
        result = _whisper(model, "medium.en").transcribe(audio, language="en")
        assert [t.text for t in result.tokens] == [" Hallo"]
        assert model.calls[0]["task"] == "transcribe"

    def test_multilingual_model_decodes_requested_language(self, audio):
        model = FakeWhisperModel(is_multilingual=True)
        result = _whisper(model).transcribe(audio, language="de")
        assert result.language == "de"
        assert result.model == "medium"
        assert model.calls[0]["language"] == "de"
        assert model.calls[0]["word_timestamps"] is True

    def test_pipeline_records_unsupported_language_as_failure(self, config, media_tree):
        transcriber = _whisper(FakeWhisperModel(is_multilingual=False), "medium.en")
        pipeline = TranscriptionPipeline(config=config, normalizer=FakeNormalizer(), transcriber=transcriber)
        state = pipeline.process_paths([str(media_tree / "intro.mp4")], "de")
        assert state.failed == [str(media_tree / "intro.mp4")]
        assert not (media_tree / "intro.json").exists()


class TestCLI:

    @pytest.fixture
    def cli(self, monkeypatch):
        transcriber = FakeTranscriber()

        def build_pipeline(self, config, force=False, progress=None):
            return TranscriptionPipeline(config=config, normalizer=FakeNormalizer(), transcriber=transcriber, force=force)

        monkeypatch.setattr(CLIHandler, "build_pipeline", build_pipeline)
        handler = CLIHandler()
        handler.transcriber = transcriber
        return handler

    def test_lang_option_and_paths(self, cli, tmp_path, media_tree, monkeypatch):
        monkeypatch.chdir(tmp_path)
        state = cli.run(["--lang", "de", str(media_tree / "intro.mp4")])
        assert state.processed == [str(media_tree / "intro.mp4")]
        assert cli.transcriber.calls[0][1] == "de"
        assert (media_tree / "intro.json").exists()

    def test_no_paths_processes_assets_root_and_exits(self, cli, tmp_path, media_tree, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as excinfo:
            cli.run([])
        assert excinfo.value.code == 0
        assert len(cli.transcriber.calls) == 3
        assert cli.transcriber.calls[0][1] == "en"

    def test_missing_config_exits(self, cli, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as excinfo:
            cli.run(["-c", "nope.yaml"])
        assert excinfo.value.code == 1
