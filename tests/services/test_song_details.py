"""Tests for AI song detail generation."""

import json
from unittest.mock import MagicMock

import openai
import pytest

from worship_chords.services.song_details import MAX_TAGS, SongDetails, SongDetailsGenerator


def completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


@pytest.fixture
def generator():
    gen = SongDetailsGenerator(api_key="sk-test", model="test-model")
    gen._client = MagicMock()
    return gen


VALID = {
    "artist": "Chris Tomlin",
    "writer": "Matt Redman, Jonas Myrin",
    "original_key": "g",
    "tempo": 73,
    "time_signature": "4/4",
    "difficulty": "Beginner",
    "tags": ["worship", " praise ", ""],
    "lyrics_text": "[Chorus]\nG   D\nBless the Lord",
}


class TestSongDetails:
    """Tests for SongDetails.from_dict validation."""

    def test_valid(self):
        details = SongDetails.from_dict(VALID)
        assert details.original_key == "G"
        assert details.difficulty == "beginner"
        assert details.tags == ["worship", "praise"]
        assert details.tempo == 73

    def test_camel_case_keys(self):
        details = SongDetails.from_dict({"writer": "X", "originalKey": "Eb", "timeSignature": "6/8"})
        assert details.original_key == "Eb"
        assert details.time_signature == "6/8"

    def test_out_of_range_values_are_dropped(self):
        details = SongDetails.from_dict(
            {**VALID, "tempo": 500, "time_signature": "7/4", "difficulty": "expert", "artist": " "}
        )
        assert details.tempo is None
        assert details.time_signature is None
        assert details.difficulty is None
        assert details.artist is None

    def test_tags_are_capped(self):
        details = SongDetails.from_dict({**VALID, "tags": [f"t{i}" for i in range(20)]})
        assert len(details.tags) == MAX_TAGS

    @pytest.mark.parametrize("override", [{"writer": ""}, {"original_key": "H"}])
    def test_required_fields(self, override):
        with pytest.raises(ValueError):
            SongDetails.from_dict({**VALID, **override})


class TestSongDetailsGenerator:
    """Tests for SongDetailsGenerator."""

    def test_generate(self, generator):
        generator._client.chat.completions.create.return_value = completion(json.dumps(VALID))

        details = generator.generate("10,000 Reasons", "Chris Tomlin")

        assert details.writer == "Matt Redman, Jonas Myrin"
        kwargs = generator._client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert '"10,000 Reasons" by "Chris Tomlin"' in kwargs["messages"][0]["content"]

    def test_strips_markdown_fence(self, generator):
        fenced = "```json\n" + json.dumps(VALID) + "\n```"
        generator._client.chat.completions.create.return_value = completion(fenced)
        assert generator.generate("10,000 Reasons").original_key == "G"

    def test_invalid_json(self, generator):
        generator._client.chat.completions.create.return_value = completion("not json")
        with pytest.raises(RuntimeError, match="invalid JSON"):
            generator.generate("Oceans")

    def test_unusable_details(self, generator):
        generator._client.chat.completions.create.return_value = completion(json.dumps({"writer": "X"}))
        with pytest.raises(RuntimeError, match="unusable details"):
            generator.generate("Oceans")

    def test_api_error(self, generator):
        generator._client.chat.completions.create.side_effect = openai.OpenAIError("rate limited")
        with pytest.raises(RuntimeError, match="generation failed"):
            generator.generate("Oceans")

    def test_missing_api_key(self):
        with pytest.raises(ValueError, match="WC_LLM_API_KEY"):
            SongDetailsGenerator(api_key="").generate("Oceans")
