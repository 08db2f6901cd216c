"""
Tests for StreamLoop chunk decoders

Tests cover:
- ToolCallAccumulator (argument joining, empty payloads, decode errors)
- Base ChunkDecoder framing (sentinels, malformed increments)
- GeminiChunkDecoder (text, thoughts, function calls, ids, finish mapping, usage)
- OpenAIChunkDecoder (indexed tool call deltas, trailing usage, finish)
"""

import json

import pytest

from streamloop.errors import (
    MalformedIncrementError,
    ToolArgumentDecodeError,
    UnknownToolCallFragmentError,
)
from streamloop.llm.base import FinishReason, Usage
from streamloop.llm.providers.gemini import GeminiChunkDecoder
from streamloop.llm.providers.openai import OpenAIChunkDecoder
from streamloop.streaming.decoder import (
    FinishFragment,
    TextFragment,
    ToolCallAccumulator,
    ToolCallArgumentsDelta,
    ToolCallEnd,
    ToolCallFragment,
    ToolCallStart,
    UsageFragment,
    new_id,
)


def openai_chunk(delta=None, finish_reason=None, usage=None, choices=True, chunk_id="chatcmpl-1"):
    data = {
        "id": chunk_id,
        "object": "chat.completion.chunk",
        "created": 1741398790,
        "model": "gpt-4o",
        "choices": [],
    }
    if choices:
        data["choices"] = [{"index": 0, "delta": delta or {}, "finish_reason": finish_reason}]
    if usage is not None:
        data["usage"] = usage
    return json.dumps(data)


# =============================================================================
# ToolCallAccumulator
# =============================================================================

class TestToolCallAccumulator:
    """Tests for argument accumulation by call id"""

    def test_joins_argument_chunks(self):
        acc = ToolCallAccumulator()
        assert acc.feed(ToolCallStart(id="call_1", name="weather", reasoning_id="rs_1")) is None
        assert acc.feed(ToolCallArgumentsDelta(id="call_1", chunk='{"city": ')) is None
        assert acc.feed(ToolCallArgumentsDelta(id="call_1", chunk='"Paris"}')) is None

        fragment = acc.feed(ToolCallEnd(id="call_1"))

        assert isinstance(fragment, ToolCallFragment)
        assert fragment.error is None
        call = fragment.tool_call
        assert call.id == "call_1"
        assert call.name == "weather"
        assert call.arguments == {"city": "Paris"}
        assert call.raw_arguments == '{"city": "Paris"}'
        assert call.reasoning_id == "rs_1"

    def test_interleaved_calls(self):
        """Test chunks for different ids never mix"""
        acc = ToolCallAccumulator()
        acc.feed(ToolCallStart(id="a", name="weather"))
        acc.feed(ToolCallStart(id="b", name="search"))
        acc.feed(ToolCallArgumentsDelta(id="b", chunk='{"query": "x"}'))
        acc.feed(ToolCallArgumentsDelta(id="a", chunk='{"city": "Oslo"}'))

        assert acc.pending_ids == ["a", "b"]
        b = acc.feed(ToolCallEnd(id="b"))
        a = acc.feed(ToolCallEnd(id="a"))

        assert a.tool_call.arguments == {"city": "Oslo"}
        assert b.tool_call.arguments == {"query": "x"}
        assert acc.pending_ids == []

    def test_empty_payload_is_empty_object(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallStart(id="call_1", name="now"))
        fragment = acc.feed(ToolCallEnd(id="call_1"))

        assert fragment.error is None
        assert fragment.tool_call.arguments == {}
        assert fragment.tool_call.raw_arguments == ""

    def test_invalid_json_reports_decode_error(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallStart(id="call_1", name="weather"))
        acc.feed(ToolCallArgumentsDelta(id="call_1", chunk='{"city": '))
        fragment = acc.feed(ToolCallEnd(id="call_1"))

        assert isinstance(fragment.error, ToolArgumentDecodeError)
        assert fragment.error.tool_name == "weather"
        assert fragment.error.raw_arguments == '{"city": '
        assert fragment.tool_call.arguments == {}

    def test_non_object_json_reports_decode_error(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallStart(id="call_1", name="weather"))
        acc.feed(ToolCallArgumentsDelta(id="call_1", chunk='["Paris"]'))
        fragment = acc.feed(ToolCallEnd(id="call_1"))

        assert isinstance(fragment.error, ToolArgumentDecodeError)
        assert "expected a JSON object" in str(fragment.error)

    def test_delta_for_unknown_id(self):
        acc = ToolCallAccumulator()
        with pytest.raises(UnknownToolCallFragmentError) as exc_info:
            acc.feed(ToolCallArgumentsDelta(id="ghost", chunk="{}"))
        assert exc_info.value.tool_call_id == "ghost"

    def test_end_after_end(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallStart(id="call_1", name="weather"))
        acc.feed(ToolCallEnd(id="call_1"))
        with pytest.raises(UnknownToolCallFragmentError):
            acc.feed(ToolCallEnd(id="call_1"))

    def test_duplicate_start(self):
        acc = ToolCallAccumulator()
        acc.feed(ToolCallStart(id="call_1", name="weather"))
        with pytest.raises(UnknownToolCallFragmentError):
            acc.feed(ToolCallStart(id="call_1", name="weather"))


def test_new_id_prefix_and_uniqueness():
    first = new_id("call")
    second = new_id("call")
    assert first.startswith("call_")
    assert len(first) == len("call_") + 24
    assert first != second


# =============================================================================
# Base framing
# =============================================================================

class TestDecoderFraming:
    """Tests shared by every decoder"""

    @pytest.mark.parametrize("payload", ["", "   ", "[DONE]", " [DONE] "])
    def test_sentinels_and_blank_payloads(self, payload):
        assert GeminiChunkDecoder().decode(payload) == []

    def test_invalid_json(self):
        with pytest.raises(MalformedIncrementError) as exc_info:
            GeminiChunkDecoder().decode("{oops")
        assert exc_info.value.payload == "{oops"

    def test_non_object_json(self):
        with pytest.raises(MalformedIncrementError):
            GeminiChunkDecoder().decode("[1, 2, 3]")

    def test_finish_flushes_nothing_by_default(self):
        assert GeminiChunkDecoder().finish() == []


# =============================================================================
# Gemini
# =============================================================================

class TestGeminiChunkDecoder:
    """Tests for Gemini increments"""

    def test_text_usage_and_finish(self):
        decoder = GeminiChunkDecoder()
        fragments = decoder.decode(json.dumps({
            "candidates": [{"content": {"parts": [{"text": "Hello"}], "role": "model"}, "finishReason": "STOP"}],
            "usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 1},
        }))

        assert fragments == [
            TextFragment("Hello"),
            UsageFragment(Usage(prompt_tokens=3, completion_tokens=1)),
            FinishFragment(FinishReason.STOP, "STOP"),
        ]

    def test_thought_parts_are_skipped(self):
        decoder = GeminiChunkDecoder()
        fragments = decoder.decode(json.dumps({
            "candidates": [{"content": {"parts": [
                {"text": "Thinking about plants", "thought": True},
                {"text": "Photosynthesis"},
            ]}}],
        }))

        assert fragments == [TextFragment("Photosynthesis")]

    def test_thinking_tokens_count_as_completion(self):
        decoder = GeminiChunkDecoder()
        fragments = decoder.decode(json.dumps({
            "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 7, "thoughtsTokenCount": 30},
        }))

        assert fragments == [UsageFragment(Usage(prompt_tokens=12, completion_tokens=37))]

    def test_function_call_is_complete_in_one_increment(self):
        decoder = GeminiChunkDecoder()
        fragments = decoder.decode(json.dumps({
            "candidates": [{"content": {"parts": [{
                "functionCall": {"name": "weather", "args": {"city": "San Francisco"}},
                "thoughtSignature": "CiQBVKhc7sigTHJpLvy6WQ==",
            }]}}],
        }))

        assert len(fragments) == 1
        call = fragments[0].tool_call
        assert call.name == "weather"
        assert call.arguments == {"city": "San Francisco"}
        assert call.id.startswith("call_")
        assert call.reasoning_id == decoder.reasoning_id
        assert call.signature == "CiQBVKhc7sigTHJpLvy6WQ=="
        assert decoder.tool_call_count == 1

    def test_provider_call_id_is_kept(self):
        decoder = GeminiChunkDecoder()
        fragments = decoder.decode(json.dumps({
            "candidates": [{"content": {"parts": [
                {"functionCall": {"id": "fc-42", "name": "now"}},
            ]}}],
        }))

        assert fragments[0].tool_call.id == "fc-42"
        assert fragments[0].tool_call.arguments == {}

    def test_stop_with_calls_maps_to_tool_calls(self):
        decoder = GeminiChunkDecoder()
        fragments = decoder.decode(json.dumps({
            "candidates": [{
                "content": {"parts": [
                    {"functionCall": {"name": "weather", "args": {"city": "San Francisco"}}},
                    {"functionCall": {"name": "weather", "args": {"city": "Santa Cruz"}}},
                ]},
                "finishReason": "STOP",
            }],
        }))

        calls = [f.tool_call for f in fragments if isinstance(f, ToolCallFragment)]
        assert len(calls) == 2
        assert calls[0].reasoning_id == calls[1].reasoning_id
        assert calls[0].id != calls[1].id
        assert fragments[-1] == FinishFragment(FinishReason.TOOL_CALLS, "STOP")

    @pytest.mark.parametrize("raw,expected", [
        ("MAX_TOKENS", FinishReason.LENGTH),
        ("SAFETY", FinishReason.CONTENT_FILTER),
        ("MALFORMED_FUNCTION_CALL", FinishReason.ERROR),
        ("OTHER", FinishReason.OTHER),
        ("SOMETHING_NEW", FinishReason.UNKNOWN),
    ])
    def test_finish_reason_mapping(self, raw, expected):
        fragments = GeminiChunkDecoder().decode(json.dumps({"candidates": [{"finishReason": raw}]}))
        assert fragments == [FinishFragment(expected, raw)]

    def test_decoders_have_distinct_reasoning_ids(self):
        assert GeminiChunkDecoder().reasoning_id != GeminiChunkDecoder().reasoning_id


# =============================================================================
# OpenAI
# =============================================================================

class TestOpenAIChunkDecoder:
    """Tests for chat.completion.chunk increments"""

    def test_text_delta(self):
        fragments = OpenAIChunkDecoder().decode(openai_chunk({"role": "assistant", "content": "Hi"}))
        assert fragments == [TextFragment("Hi")]

    def test_tool_call_assembled_from_index_deltas(self):
        decoder = OpenAIChunkDecoder()
        out = []
        out += decoder.decode(openai_chunk({"tool_calls": [{
            "index": 0, "id": "call_1", "type": "function",
            "function": {"name": "weather", "arguments": ""},
        }]}))
        out += decoder.decode(openai_chunk({"tool_calls": [{"index": 0, "function": {"arguments": '{"city": '}}]}))
        out += decoder.decode(openai_chunk({"tool_calls": [{"index": 0, "function": {"arguments": '"Paris"}'}}]}))
        # Calls stay open until the finish reason
        assert out == []

        out += decoder.decode(openai_chunk(finish_reason="tool_calls"))

        assert isinstance(out[0], ToolCallFragment)
        assert out[0].tool_call.id == "call_1"
        assert out[0].tool_call.arguments == {"city": "Paris"}
        assert out[0].tool_call.reasoning_id == "chatcmpl-1"
        assert out[1] == FinishFragment(FinishReason.TOOL_CALLS, "tool_calls")

    def test_trailing_usage_chunk(self):
        fragments = OpenAIChunkDecoder().decode(openai_chunk(
            choices=False,
            usage={"prompt_tokens": 9, "completion_tokens": 7, "total_tokens": 16},
        ))
        assert fragments == [UsageFragment(Usage(prompt_tokens=9, completion_tokens=7))]

    def test_delta_for_unstarted_index(self):
        with pytest.raises(UnknownToolCallFragmentError) as exc_info:
            OpenAIChunkDecoder().decode(openai_chunk({"tool_calls": [
                {"index": 2, "function": {"arguments": "{}"}},
            ]}))
        assert exc_info.value.tool_call_id == "index:2"

    def test_invalid_chunk_shape(self):
        with pytest.raises(MalformedIncrementError):
            OpenAIChunkDecoder().decode(json.dumps({"choices": "nope"}))

    @pytest.mark.parametrize("raw,expected", [
        ("stop", FinishReason.STOP),
        ("length", FinishReason.LENGTH),
        ("content_filter", FinishReason.CONTENT_FILTER),
    ])
    def test_finish_reason_mapping(self, raw, expected):
        fragments = OpenAIChunkDecoder().decode(openai_chunk(finish_reason=raw))
        assert fragments == [FinishFragment(expected, raw)]
